"""
Symmetric connections between users.

A connection between users A and B is stored as two rows in
``user_connections`` (A->B and B->A) written in the same transaction, so
either side's connection list is a single indexed lookup.  Connection
requests are accepted immediately; there is no pending state.
"""

import logging
from typing import List

from eventhub_api.app.core.db import from_json, get_cursor, transaction
from eventhub_api.app.core.errors import NotFoundError, StateConflictError, ValidationError
from eventhub_api.app.core.timeutils import to_iso, utcnow
from eventhub_api.app.schemas.user import UserSummary


logger = logging.getLogger(__name__)


class ConnectionService:

    @classmethod
    async def connect(cls, user_id: int, target_id: int) -> None:
        if user_id == target_id:
            raise ValidationError("Cannot send connection request to yourself")
        with transaction() as cursor:
            target = cursor.execute(
                "SELECT id, is_active FROM users WHERE id = ?", (target_id,)
            ).fetchone()
            if not target or not target["is_active"]:
                raise NotFoundError("User not found")
            existing = cursor.execute(
                "SELECT 1 FROM user_connections WHERE user_id = ? AND connected_user_id = ?",
                (user_id, target_id),
            ).fetchone()
            if existing:
                raise StateConflictError("Already connected with this user")
            now = to_iso(utcnow())
            cursor.executemany(
                "INSERT INTO user_connections (user_id, connected_user_id, created_at) VALUES (?, ?, ?)",
                [(user_id, target_id, now), (target_id, user_id, now)],
            )
        logger.info("Users %s and %s connected", user_id, target_id)

    @classmethod
    async def disconnect(cls, user_id: int, target_id: int) -> None:
        with transaction() as cursor:
            cursor.execute(
                "DELETE FROM user_connections "
                "WHERE (user_id = ? AND connected_user_id = ?) OR (user_id = ? AND connected_user_id = ?)",
                (user_id, target_id, target_id, user_id),
            )
            removed = cursor.rowcount
        if not removed:
            raise NotFoundError("Connection not found")
        logger.info("Users %s and %s disconnected", user_id, target_id)

    @classmethod
    async def list_connections(cls, user_id: int) -> List[UserSummary]:
        with get_cursor() as cursor:
            rows = cursor.execute(
                "SELECT u.id, u.name, u.company, u.job_title, u.profile_image, u.bio, u.interests "
                "FROM user_connections c JOIN users u ON u.id = c.connected_user_id "
                "WHERE c.user_id = ? ORDER BY c.created_at DESC, u.name",
                (user_id,),
            ).fetchall()
        return [
            UserSummary(
                id=row["id"],
                name=row["name"],
                company=row["company"],
                job_title=row["job_title"],
                profile_image=row["profile_image"],
                bio=row["bio"],
                interests=from_json(row["interests"], []),
            )
            for row in rows
        ]

    @staticmethod
    def connected_ids(cursor, user_id: int) -> set:
        rows = cursor.execute(
            "SELECT connected_user_id FROM user_connections WHERE user_id = ?", (user_id,)
        ).fetchall()
        return {row["connected_user_id"] for row in rows}

    @staticmethod
    def mutual_count(cursor, user_id: int, other_id: int) -> int:
        return cursor.execute(
            "SELECT COUNT(*) FROM user_connections a "
            "JOIN user_connections b ON a.connected_user_id = b.connected_user_id "
            "WHERE a.user_id = ? AND b.user_id = ?",
            (user_id, other_id),
        ).fetchone()[0]
