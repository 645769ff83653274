"""
Business logic for administrator accounts.

Admins log in with a username.  Repeated failed logins lock the
account: every failure increments ``login_attempts`` and reaching
``settings.admin_lock_threshold`` sets ``lock_until`` to
``settings.admin_lock_minutes`` in the future.  While locked, login is
refused with ``AccountLocked`` before the password is checked.  A
failure after an expired lock restarts the counter at one, and a
successful login clears both fields.

Permission flags are derived from the role with
``core.security.permissions_for_role`` whenever an admin is created or
its role changes.
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import List, Optional

from eventhub_api.app.core.config import settings
from eventhub_api.app.core.db import from_json, get_cursor, to_json, transaction
from eventhub_api.app.core.errors import (
    AccountLocked,
    AuthenticationError,
    DuplicateAccount,
    NotFoundError,
    StateConflictError,
)
from eventhub_api.app.core.security import hash_password, permissions_for_role, verify_password
from eventhub_api.app.core.timeutils import parse_iso, to_iso, utcnow
from eventhub_api.app.schemas.admin import (
    AdminCreate,
    AdminProfileUpdate,
    AdminRead,
    AdminRole,
    AdminUpdate,
    OwnerCreate,
)
from eventhub_api.app.services.account_service import CredentialedAccountService


logger = logging.getLogger(__name__)

# The bootstrap owner account; it can never be deleted.
PROTECTED_USERNAME = "admin"


def admin_from_row(row: sqlite3.Row) -> AdminRead:
    return AdminRead(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        name=row["name"],
        role=row["role"],
        permissions=from_json(row["permissions"], {}),
        is_active=bool(row["is_active"]),
        last_login=parse_iso(row["last_login"]),
        created_by=row["created_by"],
        created_at=parse_iso(row["created_at"]),
        updated_at=parse_iso(row["updated_at"]),
    )


def is_locked(row: sqlite3.Row, now: Optional[datetime] = None) -> bool:
    lock_until = parse_iso(row["lock_until"])
    return lock_until is not None and lock_until > (now or utcnow())


class AdminService(CredentialedAccountService):
    """Service for administrator accounts."""

    table = "admin_users"
    account_label = "Admin"

    @staticmethod
    def _fetch_row(cursor: sqlite3.Cursor, admin_id: int) -> sqlite3.Row:
        row = cursor.execute("SELECT * FROM admin_users WHERE id = ?", (admin_id,)).fetchone()
        if not row:
            raise NotFoundError("Admin not found")
        return row

    @staticmethod
    def _ensure_unique(cursor: sqlite3.Cursor, username: Optional[str], email: Optional[str],
                       exclude_id: Optional[int] = None) -> None:
        row = cursor.execute(
            "SELECT 1 FROM admin_users WHERE (username = ? OR email = ?) AND id != ?",
            (username, email, exclude_id or 0),
        ).fetchone()
        if row:
            raise DuplicateAccount("Admin with this username or email already exists")

    @classmethod
    def _insert(cls, cursor: sqlite3.Cursor, username: str, email: str, password: str,
                name: str, role: AdminRole, created_by: Optional[int]) -> sqlite3.Row:
        cls._ensure_unique(cursor, username, email)
        now = to_iso(utcnow())
        cursor.execute(
            "INSERT INTO admin_users (username, email, password, name, role, permissions, created_by, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                username,
                email,
                hash_password(password),
                name,
                role.value,
                to_json(permissions_for_role(role.value)),
                created_by,
                now,
                now,
            ),
        )
        return cls._fetch_row(cursor, cursor.lastrowid)

    @classmethod
    async def login(cls, username: str, password: str) -> AdminRead:
        """Authenticate an admin, applying the lockout policy."""
        now = utcnow()
        with transaction() as cursor:
            row = cursor.execute(
                "SELECT * FROM admin_users WHERE username = ?", (username,)
            ).fetchone()
            if not row:
                raise AuthenticationError("Invalid credentials")
            if is_locked(row, now):
                logger.warning("Login refused for locked admin %s", row["id"])
                raise AccountLocked()
            if not row["is_active"]:
                raise AuthenticationError("Account is deactivated")
            if not verify_password(password, row["password"]):
                cls._register_failure(cursor, row, now)
                # Persist the failed attempt even though the request fails.
                cursor.connection.commit()
                raise AuthenticationError("Invalid credentials")
            cursor.execute(
                "UPDATE admin_users SET login_attempts = 0, lock_until = NULL, last_login = ? WHERE id = ?",
                (to_iso(now), row["id"]),
            )
            row = cls._fetch_row(cursor, row["id"])
        logger.info("Admin %s logged in", row["id"])
        return admin_from_row(row)

    @staticmethod
    def _register_failure(cursor: sqlite3.Cursor, row: sqlite3.Row, now: datetime) -> None:
        lock_until = parse_iso(row["lock_until"])
        if lock_until is not None and lock_until <= now:
            # The previous lock has expired; start counting again.
            attempts = 1
            lock_until = None
        else:
            attempts = row["login_attempts"] + 1
        if attempts >= settings.admin_lock_threshold and lock_until is None:
            lock_until = now + timedelta(minutes=settings.admin_lock_minutes)
            logger.warning(
                "Admin %s locked until %s after %s failed logins",
                row["id"], to_iso(lock_until), attempts,
            )
        cursor.execute(
            "UPDATE admin_users SET login_attempts = ?, lock_until = ? WHERE id = ?",
            (attempts, to_iso(lock_until), row["id"]),
        )

    @classmethod
    async def create_owner(cls, data: OwnerCreate) -> AdminRead:
        """Create the first admin account.  Only allowed while no admin exists."""
        with transaction() as cursor:
            if cursor.execute("SELECT 1 FROM admin_users LIMIT 1").fetchone():
                raise StateConflictError("Admin system already initialized")
            row = cls._insert(
                cursor, data.username, data.email, data.password, data.name,
                AdminRole.OWNER, created_by=None,
            )
        logger.info("Owner admin %s created", row["id"])
        return admin_from_row(row)

    @classmethod
    async def create_admin(cls, data: AdminCreate, created_by: int) -> AdminRead:
        with transaction() as cursor:
            row = cls._insert(
                cursor, data.username, data.email, data.password, data.name,
                data.role, created_by=created_by,
            )
        logger.info("Admin %s created admin %s with role %s", created_by, row["id"], data.role.value)
        return admin_from_row(row)

    @classmethod
    async def list_admins(cls) -> List[AdminRead]:
        with get_cursor() as cursor:
            rows = cursor.execute(
                "SELECT * FROM admin_users ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [admin_from_row(row) for row in rows]

    @classmethod
    async def get_admin(cls, admin_id: int) -> AdminRead:
        with get_cursor() as cursor:
            row = cls._fetch_row(cursor, admin_id)
        return admin_from_row(row)

    @classmethod
    async def update_admin(cls, admin_id: int, updates: AdminUpdate,
                           actor_id: Optional[int] = None) -> AdminRead:
        """Update email, name, role or active flag.  A role change
        recomputes the permission flags.

        The protected owner account and the acting admin's own account
        cannot be deactivated.
        """
        changes = {k: v for k, v in updates.model_dump(exclude_unset=True).items() if v is not None}
        with transaction() as cursor:
            row = cls._fetch_row(cursor, admin_id)
            if changes.get("is_active") is False:
                if row["username"] == PROTECTED_USERNAME:
                    raise StateConflictError("Cannot deactivate the main owner admin")
                if admin_id == actor_id:
                    raise StateConflictError("Cannot deactivate your own admin account")
            if "email" in changes:
                cls._ensure_unique(cursor, None, changes["email"], exclude_id=admin_id)
            values = {}
            for key, value in changes.items():
                if key == "role":
                    values["role"] = value.value
                    values["permissions"] = to_json(permissions_for_role(value.value))
                elif key == "is_active":
                    values["is_active"] = int(value)
                else:
                    values[key] = value
            values["updated_at"] = to_iso(utcnow())
            assignments = ", ".join(f"{column} = ?" for column in values)
            cursor.execute(
                f"UPDATE admin_users SET {assignments} WHERE id = ?",
                tuple(values.values()) + (admin_id,),
            )
            row = cls._fetch_row(cursor, admin_id)
        logger.info("Admin %s updated (%s)", admin_id, ", ".join(sorted(changes)))
        return admin_from_row(row)

    @classmethod
    async def update_profile(cls, admin_id: int, updates: AdminProfileUpdate) -> AdminRead:
        return await cls.update_admin(admin_id, AdminUpdate(**updates.model_dump(exclude_unset=True)))

    @classmethod
    async def delete_admin(cls, admin_id: int, actor_id: int) -> None:
        with transaction() as cursor:
            row = cls._fetch_row(cursor, admin_id)
            if row["username"] == PROTECTED_USERNAME:
                raise StateConflictError("Cannot delete the main owner admin")
            if admin_id == actor_id:
                raise StateConflictError("Cannot delete your own admin account")
            cursor.execute("DELETE FROM admin_users WHERE id = ?", (admin_id,))
        logger.info("Admin %s deleted admin %s", actor_id, admin_id)
