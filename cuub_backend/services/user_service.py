# cuub_backend/services/user_service.py
from typing import Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

USER_COLUMNS = "id, username, type, created_at, updated_at"


def _stations_for(conn: Connection, user_id: int) -> List[str]:
    rows = conn.execute(
        text("SELECT station_id FROM user_stations WHERE user_id = :user_id"),
        {"user_id": user_id},
    )
    return [row.station_id for row in rows]


def _assign_stations(conn: Connection, user_id: int, station_ids: List[str], role: str):
    for station_id in station_ids:
        conn.execute(
            text(
                "INSERT INTO user_stations (user_id, station_id, role, created_at, updated_at) "
                "VALUES (:user_id, :station_id, :role, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
            ),
            {"user_id": user_id, "station_id": station_id, "role": role},
        )


def stations_to_assign(station_id: Optional[str], station_ids: Optional[List[str]]) -> List[str]:
    """station_ids (list) 優先，其次 station_id (單一)"""
    if station_ids:
        return list(station_ids)
    if station_id:
        return [station_id]
    return []


def list_users(engine: Engine) -> List[Dict]:
    with engine.connect() as conn:
        users = conn.execute(
            text(f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, id DESC")
        ).mappings().all()
        links = conn.execute(text("SELECT user_id, station_id FROM user_stations")).all()

    stations_by_user: Dict[int, List[str]] = {}
    for row in links:
        stations_by_user.setdefault(row.user_id, []).append(row.station_id)

    return [
        {**user, "stations": stations_by_user.get(user["id"], [])}
        for user in users
    ]


def get_user(engine: Engine, user_id: int) -> Optional[Dict]:
    with engine.connect() as conn:
        user = conn.execute(
            text(f"SELECT {USER_COLUMNS} FROM users WHERE id = :id"), {"id": user_id}
        ).mappings().first()
        if user is None:
            return None
        return {**user, "stations": _stations_for(conn, user_id)}


def create_user(engine: Engine, username: str, user_type: str, station_ids: List[str]) -> Dict:
    """
    Insert a user and its station assignments in one transaction.
    Unique violations surface as sqlalchemy IntegrityError.
    """
    with engine.begin() as conn:
        user = conn.execute(
            text(
                "INSERT INTO users (username, type, created_at, updated_at) "
                "VALUES (:username, :type, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP) "
                f"RETURNING {USER_COLUMNS}"
            ),
            {"username": username, "type": user_type},
        ).mappings().one()

        _assign_stations(conn, user["id"], station_ids, user_type)
        return {**user, "stations": _stations_for(conn, user["id"])}


def update_user(engine: Engine, user_id: int, fields: Dict, station_ids: Optional[List[str]]) -> Optional[Dict]:
    """
    fields: 只包含要更新的 username / type。
    station_ids 為 None 代表不動 station；否則整批替換。
    """
    with engine.begin() as conn:
        current = conn.execute(
            text(f"SELECT {USER_COLUMNS} FROM users WHERE id = :id"), {"id": user_id}
        ).mappings().first()
        if current is None:
            return None

        user = current
        if fields:
            assignments = ", ".join(f"{column} = :{column}" for column in fields)
            user = conn.execute(
                text(
                    f"UPDATE users SET {assignments}, updated_at = CURRENT_TIMESTAMP "
                    f"WHERE id = :id RETURNING {USER_COLUMNS}"
                ),
                {**fields, "id": user_id},
            ).mappings().one()

        if station_ids is not None:
            conn.execute(
                text("DELETE FROM user_stations WHERE user_id = :user_id"), {"user_id": user_id}
            )
            _assign_stations(conn, user_id, station_ids, user["type"])

        return {**user, "stations": _stations_for(conn, user_id)}


def delete_user(engine: Engine, user_id: int) -> Optional[Dict]:
    with engine.begin() as conn:
        # foreign key: user_stations first
        conn.execute(text("DELETE FROM user_stations WHERE user_id = :user_id"), {"user_id": user_id})
        deleted = conn.execute(
            text("DELETE FROM users WHERE id = :id RETURNING id, username, type"), {"id": user_id}
        ).mappings().first()
        return dict(deleted) if deleted else None
