"""Station command exception classes."""

from cuub_backend.models.relink_models import CallOutcome


class StationError(Exception):
    """Base exception for station command errors."""

    status_code = 500

    def __init__(self, message: str, outcome: CallOutcome = None):
        super().__init__(message)
        self.message = message
        self.outcome = outcome


class SlotOutOfRangeError(StationError):
    """Raised when a slot number is outside 1-6."""

    status_code = 400


class TokenUnavailableError(StationError):
    """Raised when no usable Relink token could be obtained."""

    status_code = 503


class VendorError(StationError):
    """Raised when the Relink API fails for a reason other than auth."""

    status_code = 502


class PopDeclinedError(StationError):
    """Raised when Relink answers but does not release the battery."""

    status_code = 500


def relink_error_for(outcome: CallOutcome, action: str) -> StationError:
    if outcome.is_auth_failure or outcome.is_token_unavailable:
        return TokenUnavailableError(
            "Token not available. Could not authenticate with Relink API.", outcome
        )
    return VendorError(f"Relink API error while trying to {action}: {outcome.reason}", outcome)
