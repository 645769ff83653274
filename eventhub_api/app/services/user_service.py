"""
Business logic for user accounts.

Covers self-registration and login, profile reads and updates, user
search and connection suggestions, public profiles, and the user
management operations exposed to administrators.  A user's attended
and organized events are never stored on the user row; the counts are
derived from ``event_attendees`` and ``events.organizer_id``.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from eventhub_api.app.core.db import from_json, get_cursor, to_json, transaction
from eventhub_api.app.core.errors import (
    AuthenticationError,
    DuplicateAccount,
    NotFoundError,
    ValidationError,
)
from eventhub_api.app.core.security import hash_password, verify_password
from eventhub_api.app.core.timeutils import parse_iso, to_iso, utcnow
from eventhub_api.app.schemas.user import (
    ProfileUpdate,
    PublicProfile,
    UserAdminUpdate,
    UserRead,
    UserRegister,
    UserSummary,
)
from eventhub_api.app.services.account_service import CredentialedAccountService
from eventhub_api.app.services.connection_service import ConnectionService


logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 20

DUPLICATE_EMAIL = "User already exists with this email"


def user_from_row(row: sqlite3.Row, stats: Optional[Dict[str, int]] = None) -> UserRead:
    stats = stats or {}
    return UserRead(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        profile_image=row["profile_image"],
        bio=row["bio"],
        company=row["company"],
        job_title=row["job_title"],
        phone=row["phone"],
        interests=from_json(row["interests"], []),
        social_links=from_json(row["social_links"], {}),
        is_active=bool(row["is_active"]),
        last_login=parse_iso(row["last_login"]),
        created_at=parse_iso(row["created_at"]),
        updated_at=parse_iso(row["updated_at"]),
        connections_count=stats.get("connections", 0),
        events_attending_count=stats.get("attending", 0),
        events_organized_count=stats.get("organized", 0),
    )


def summary_from_row(row: sqlite3.Row, include_email: bool = False) -> UserSummary:
    return UserSummary(
        id=row["id"],
        name=row["name"],
        email=row["email"] if include_email else None,
        profile_image=row["profile_image"],
        company=row["company"],
        job_title=row["job_title"],
        bio=row["bio"],
        interests=from_json(row["interests"], []),
    )


def _user_stats(cursor: sqlite3.Cursor, user_id: int) -> Dict[str, int]:
    return {
        "connections": cursor.execute(
            "SELECT COUNT(*) FROM user_connections WHERE user_id = ?", (user_id,)
        ).fetchone()[0],
        "attending": cursor.execute(
            "SELECT COUNT(*) FROM event_attendees WHERE user_id = ?", (user_id,)
        ).fetchone()[0],
        "organized": cursor.execute(
            "SELECT COUNT(*) FROM events WHERE organizer_id = ?", (user_id,)
        ).fetchone()[0],
    }


def _profile_values(data: Dict[str, Any]) -> Dict[str, Any]:
    values = {}
    for key, value in data.items():
        if key in ("interests", "social_links"):
            values[key] = to_json(value)
        elif key == "is_active":
            values[key] = int(value)
        else:
            values[key] = value
    return values


class UserService(CredentialedAccountService):
    """Service for end-user accounts (attendees and organizers)."""

    table = "users"
    account_label = "User"

    @staticmethod
    def _fetch_row(cursor: sqlite3.Cursor, user_id: int) -> sqlite3.Row:
        row = cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            raise NotFoundError("User not found")
        return row

    @classmethod
    async def register(cls, data: UserRegister) -> UserRead:
        """Create a user account.  Emails are unique and stored lowercased.

        The uniqueness check and the insert share one write transaction;
        the ``UNIQUE`` constraint on ``users.email`` backs it up.
        """
        hashed = hash_password(data.password)
        now = to_iso(utcnow())
        try:
            with transaction() as cursor:
                existing = cursor.execute(
                    "SELECT 1 FROM users WHERE email = ?", (data.email,)
                ).fetchone()
                if existing:
                    raise DuplicateAccount(DUPLICATE_EMAIL)
                cursor.execute(
                    "INSERT INTO users (email, password, name, company, job_title, interests, social_links, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        data.email,
                        hashed,
                        data.name,
                        data.company,
                        data.job_title,
                        to_json([]),
                        to_json({}),
                        now,
                        now,
                    ),
                )
                row = cls._fetch_row(cursor, cursor.lastrowid)
        except sqlite3.IntegrityError as exc:
            raise DuplicateAccount(DUPLICATE_EMAIL) from exc
        logger.info("Registered user %s (%s)", row["id"], data.email)
        return user_from_row(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> UserRead:
        """Verify credentials and stamp ``last_login``.

        Raises ``AuthenticationError`` for unknown emails, wrong
        passwords and deactivated accounts.
        """
        with get_cursor() as cursor:
            row = cursor.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            if not row:
                raise AuthenticationError("Invalid credentials")
            if not row["is_active"]:
                raise AuthenticationError("Account is deactivated")
            if not verify_password(password, row["password"]):
                logger.info("Failed login for user %s", row["id"])
                raise AuthenticationError("Invalid credentials")
            cursor.execute(
                "UPDATE users SET last_login = ? WHERE id = ?", (to_iso(utcnow()), row["id"])
            )
            row = cls._fetch_row(cursor, row["id"])
            stats = _user_stats(cursor, row["id"])
        logger.info("User %s logged in", row["id"])
        return user_from_row(row, stats)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        with get_cursor() as cursor:
            row = cls._fetch_row(cursor, user_id)
            stats = _user_stats(cursor, user_id)
        return user_from_row(row, stats)

    @classmethod
    async def update_profile(cls, user_id: int, updates: ProfileUpdate) -> UserRead:
        """Apply a partial profile update.  Fields sent as ``null`` are cleared,
        except ``name`` which is required."""
        changes = updates.model_dump(mode="json", exclude_unset=True)
        if "name" in changes and not changes["name"]:
            raise ValidationError("Name is required")
        if "email" in changes and not changes["email"]:
            raise ValidationError("Email is required")
        if "is_active" in changes and changes["is_active"] is None:
            del changes["is_active"]

        values = _profile_values(changes)
        values["updated_at"] = to_iso(utcnow())
        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with transaction() as cursor:
                cls._fetch_row(cursor, user_id)
                if "email" in changes:
                    taken = cursor.execute(
                        "SELECT 1 FROM users WHERE email = ? AND id != ?", (changes["email"], user_id)
                    ).fetchone()
                    if taken:
                        raise DuplicateAccount(DUPLICATE_EMAIL)
                cursor.execute(
                    f"UPDATE users SET {assignments} WHERE id = ?",
                    tuple(values.values()) + (user_id,),
                )
                row = cls._fetch_row(cursor, user_id)
                stats = _user_stats(cursor, user_id)
        except sqlite3.IntegrityError as exc:
            raise DuplicateAccount(DUPLICATE_EMAIL) from exc
        logger.info("User %s profile updated (%s)", user_id, ", ".join(sorted(changes)))
        return user_from_row(row, stats)

    @classmethod
    async def search_users(cls, q: str, viewer_id: int, limit: int, offset: int) -> Tuple[List[UserSummary], int]:
        """Search active users (other than the viewer) by name, company,
        job title or interests."""
        if not q or not q.strip():
            raise ValidationError("Search query is required")
        pattern = f"%{q.strip()}%"
        where = (
            "is_active = 1 AND id != ? AND "
            "(name LIKE ? OR company LIKE ? OR job_title LIKE ? OR interests LIKE ?)"
        )
        params = (viewer_id, pattern, pattern, pattern, pattern)
        with get_cursor() as cursor:
            total = cursor.execute(f"SELECT COUNT(*) FROM users WHERE {where}", params).fetchone()[0]
            rows = cursor.execute(
                f"SELECT * FROM users WHERE {where} ORDER BY name LIMIT ? OFFSET ?",
                params + (limit, offset),
            ).fetchall()
        return [summary_from_row(row) for row in rows], total

    @classmethod
    async def suggestions(cls, user_id: int) -> List[UserSummary]:
        """Suggest people to connect with.

        Candidates are active users the caller is not yet connected to
        who share the caller's company, at least one interest, or have a
        job title containing the caller's job title.  A caller with an
        empty profile gets the newest users.
        """
        with get_cursor() as cursor:
            me = cls._fetch_row(cursor, user_id)
            excluded = ConnectionService.connected_ids(cursor, user_id) | {user_id}
            rows = cursor.execute(
                "SELECT * FROM users WHERE is_active = 1 ORDER BY created_at DESC, id DESC"
            ).fetchall()

        company = (me["company"] or "").strip().lower()
        job_title = (me["job_title"] or "").strip().lower()
        interests = {i.lower() for i in from_json(me["interests"], [])}
        has_criteria = bool(company or job_title or interests)

        suggestions: List[UserSummary] = []
        for row in rows:
            if row["id"] in excluded:
                continue
            if has_criteria:
                their_interests = {i.lower() for i in from_json(row["interests"], [])}
                matches = (
                    (company and (row["company"] or "").strip().lower() == company)
                    or (interests & their_interests)
                    or (job_title and job_title in (row["job_title"] or "").lower())
                )
                if not matches:
                    continue
            suggestions.append(summary_from_row(row))
            if len(suggestions) >= SUGGESTION_LIMIT:
                break
        return suggestions

    @classmethod
    async def public_profile(cls, user_id: int, viewer_id: int) -> PublicProfile:
        with get_cursor() as cursor:
            row = cls._fetch_row(cursor, user_id)
            if not row["is_active"]:
                raise NotFoundError("User profile not available")
            is_connected = user_id in ConnectionService.connected_ids(cursor, viewer_id)
            mutual = ConnectionService.mutual_count(cursor, viewer_id, user_id)
            organized = _user_stats(cursor, user_id)["organized"]
        return PublicProfile(
            id=row["id"],
            name=row["name"],
            profile_image=row["profile_image"],
            bio=row["bio"],
            company=row["company"],
            job_title=row["job_title"],
            interests=from_json(row["interests"], []),
            social_links=from_json(row["social_links"], {}),
            created_at=parse_iso(row["created_at"]),
            is_connected=is_connected,
            mutual_connections=mutual,
            events_organized_count=organized,
        )

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @classmethod
    async def list_users(
        cls,
        limit: int,
        offset: int,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[UserRead], int]:
        """List users for administrators, newest first.

        ``status`` is ``active`` or ``inactive``; ``search`` matches
        name, email and company.
        """
        where: List[str] = []
        params: List[Any] = []
        if search:
            pattern = f"%{search.strip()}%"
            where.append("(name LIKE ? OR email LIKE ? OR company LIKE ?)")
            params.extend([pattern] * 3)
        if status == "active":
            where.append("is_active = 1")
        elif status == "inactive":
            where.append("is_active = 0")
        where_sql = (" WHERE " + " AND ".join(where)) if where else ""
        with get_cursor() as cursor:
            total = cursor.execute(f"SELECT COUNT(*) FROM users{where_sql}", tuple(params)).fetchone()[0]
            rows = cursor.execute(
                f"SELECT * FROM users{where_sql} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                tuple(params) + (limit, offset),
            ).fetchall()
            users = [user_from_row(row, _user_stats(cursor, row["id"])) for row in rows]
        return users, total

    @classmethod
    async def admin_update(cls, user_id: int, updates: UserAdminUpdate) -> UserRead:
        return await cls.update_profile(user_id, updates)

    @classmethod
    async def set_active(cls, user_id: int, active: bool) -> UserRead:
        with get_cursor() as cursor:
            cls._fetch_row(cursor, user_id)
            cursor.execute(
                "UPDATE users SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(active), to_iso(utcnow()), user_id),
            )
            row = cls._fetch_row(cursor, user_id)
            stats = _user_stats(cursor, user_id)
        logger.info("User %s %s", user_id, "activated" if active else "deactivated")
        return user_from_row(row, stats)

    @classmethod
    async def delete_user(cls, user_id: int) -> None:
        """Delete a user together with their organized events, attendee
        records and connections (``ON DELETE CASCADE``)."""
        with get_cursor() as cursor:
            cls._fetch_row(cursor, user_id)
            cursor.execute("DELETE FROM users WHERE id = ?", (user_id,))
        logger.info("User %s deleted", user_id)
