"""
Behaviour shared by every account type that logs in with a password.

``UserService`` and ``AdminService`` both subclass
:class:`CredentialedAccountService` and only differ in the table they
store accounts in.  Callers pick the subclass from the ``type`` claim
of the access token.
"""

import logging

from eventhub_api.app.core.db import get_cursor
from eventhub_api.app.core.errors import NotFoundError, ValidationError
from eventhub_api.app.core.security import hash_password, verify_password
from eventhub_api.app.core.timeutils import to_iso, utcnow


logger = logging.getLogger(__name__)


class CredentialedAccountService:
    """Base class for services owning a table of password-protected accounts."""

    table: str = ""
    account_label: str = "Account"

    @classmethod
    async def change_password(cls, account_id: int, current_password: str, new_password: str) -> None:
        """Replace the password hash after verifying the current password.

        Parameters
        ----------
        account_id : int
            Primary key in ``cls.table``.
        current_password : str
            Must match the stored hash, otherwise ``ValidationError``.
        new_password : str
            Plain text password of at least six characters.
        """
        if len(new_password) < 6:
            raise ValidationError("New password must be at least 6 characters long")
        with get_cursor() as cursor:
            row = cursor.execute(
                f"SELECT password FROM {cls.table} WHERE id = ?", (account_id,)
            ).fetchone()
            if not row:
                raise NotFoundError(f"{cls.account_label} not found")
            if not verify_password(current_password, row["password"]):
                raise ValidationError("Current password is incorrect")
            cursor.execute(
                f"UPDATE {cls.table} SET password = ?, updated_at = ? WHERE id = ?",
                (hash_password(new_password), to_iso(utcnow()), account_id),
            )
        logger.info("%s %s changed password", cls.account_label, account_id)
