"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC-SHA256 signatures and base64url encoding.  Tokens carry the
account id (``sub``), the account type (``user`` or ``admin``) and an
expiration timestamp (``exp``).  Passwords are hashed with
PBKDF2-HMAC-SHA256 and a random salt.

The FastAPI dependencies at the bottom resolve the bearer token to a
*principal* dictionary::

    {"id": 7, "type": "user", "email": "...", "role": None, "permissions": {}}
    {"id": 1, "type": "admin", "email": "...", "role": "owner", "permissions": {...}}

and gate routes on account type or a single admin permission flag.
"""

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import from_json, get_cursor
from .errors import AuthenticationError, AuthorizationError


ACCOUNT_USER = "user"
ACCOUNT_ADMIN = "admin"

PASSWORD_ITERATIONS = 100_000


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with ``iat`` and ``exp`` fields (UNIX
    timestamps).  Clients must send the token in the ``Authorization``
    header as ``Bearer <token>``.

    Parameters
    ----------
    data : dict
        Claims to embed in the token, e.g. ``{"sub": "7", "type": "user"}``.
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = data.copy()
    now = int(time.time())
    to_encode["iat"] = now
    to_encode["exp"] = now + (expires_delta or settings.access_token_expire_minutes * 60)
    header = {"alg": settings.algorithm, "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(",", ":")).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify and decode a JWT token.

    Returns the payload if the signature is valid and the token has
    not expired, otherwise ``None``.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    try:
        actual_sig = _b64_url_decode(signature_b64)
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if not hmac.compare_digest(_sign(signing_input, settings.secret_key), actual_sig):
        return None
    if not isinstance(data, dict):
        return None
    if data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


def create_account_token(account_id: int, account_type: str, **claims: Any) -> str:
    """Issue a token for a user or admin account."""
    return create_access_token({"sub": str(account_id), "type": account_type, **claims})


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2-HMAC with SHA-256.

    A 16-byte random salt is generated for each password.  The result
    is ``"<salt hex>$<hash hex>"``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PASSWORD_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    if not hashed_password or "$" not in hashed_password:
        return False
    salt_hex, hash_hex = hashed_password.split("$", 1)
    try:
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PASSWORD_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

security = HTTPBearer(auto_error=False)


def _load_principal(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Map a decoded token to an active account, or raise 401."""
    account_type = payload.get("type")
    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token.")

    with get_cursor() as cursor:
        if account_type == ACCOUNT_ADMIN:
            row = cursor.execute(
                "SELECT id, email, username, role, permissions, is_active FROM admin_users WHERE id = ?",
                (account_id,),
            ).fetchone()
        elif account_type == ACCOUNT_USER:
            row = cursor.execute(
                "SELECT id, email, name, is_active FROM users WHERE id = ?",
                (account_id,),
            ).fetchone()
        else:
            raise AuthenticationError("Invalid token.")

    if not row:
        label = "Admin" if account_type == ACCOUNT_ADMIN else "User"
        raise AuthenticationError(f"Invalid token. {label} not found.")
    if not row["is_active"]:
        raise AuthenticationError("Account is deactivated.")

    if account_type == ACCOUNT_ADMIN:
        return {
            "id": row["id"],
            "type": ACCOUNT_ADMIN,
            "email": row["email"],
            "username": row["username"],
            "role": row["role"],
            "permissions": from_json(row["permissions"], {}),
        }
    return {
        "id": row["id"],
        "type": ACCOUNT_USER,
        "email": row["email"],
        "name": row["name"],
        "role": None,
        "permissions": {},
    }


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    """Resolve the bearer token to a principal or raise 401."""
    if credentials is None:
        raise AuthenticationError()
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid or expired token. Please login again.")
    return _load_principal(payload)


def get_optional_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Dict[str, Any]]:
    """Like ``get_current_account`` but returns ``None`` instead of failing."""
    if credentials is None:
        return None
    payload = decode_access_token(credentials.credentials)
    if not payload:
        return None
    try:
        return _load_principal(payload)
    except AuthenticationError:
        return None


def require_user(principal: Dict[str, Any] = Depends(get_current_account)) -> Dict[str, Any]:
    """Allow only end-user accounts (attendees, organizers)."""
    if principal["type"] != ACCOUNT_USER:
        raise AuthorizationError("Access denied. User account required.")
    return principal


def require_admin(principal: Dict[str, Any] = Depends(get_current_account)) -> Dict[str, Any]:
    if principal["type"] != ACCOUNT_ADMIN:
        raise AuthorizationError("Access denied. Admin privileges required.")
    return principal


def require_permission(permission: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory enforcing a single admin permission flag.

    Use in endpoints as ``Depends(require_permission("manage_events"))``.
    """

    def _permission_dependency(principal: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
        if not principal["permissions"].get(permission):
            raise AuthorizationError(f"Access denied. Missing permission: {permission}")
        return principal

    return _permission_dependency


ADMIN_PERMISSIONS = (
    "create_admins",
    "manage_users",
    "manage_events",
    "view_analytics",
    "moderate_content",
    "system_settings",
    "delete_data",
)

_USER_ROLE_PERMISSIONS = frozenset({"manage_users", "manage_events", "view_analytics", "moderate_content"})


def permissions_for_role(role: str) -> Dict[str, bool]:
    """Return the full permission map for an admin role.

    ``owner`` receives every flag; ``user`` receives day-to-day
    moderation rights but cannot create admins, change system settings
    or delete data.
    """
    if role == "owner":
        return {name: True for name in ADMIN_PERMISSIONS}
    return {name: name in _USER_ROLE_PERMISSIONS for name in ADMIN_PERMISSIONS}
