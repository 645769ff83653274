"""
Authentication endpoints for API v1.

Users log in with email and password, admins with username and
password; both receive a bearer token whose ``type`` claim records the
account kind.  Tokens are stateless, so logout only tells the client to
discard its token.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from pydantic import ValidationError as PydanticValidationError

from eventhub_api.app.core.errors import ValidationError
from eventhub_api.app.core.security import (
    ACCOUNT_ADMIN,
    ACCOUNT_USER,
    create_account_token,
    get_current_account,
)
from eventhub_api.app.schemas.admin import AdminLogin, AdminProfileUpdate, OwnerCreate
from eventhub_api.app.schemas.auth import AdminToken, Me, PasswordChange, UserToken
from eventhub_api.app.schemas.common import envelope
from eventhub_api.app.schemas.user import ProfileUpdate, UserLogin, UserRegister
from eventhub_api.app.services.admin_service import AdminService
from eventhub_api.app.services.user_service import UserService


router = APIRouter()

# Password changes are dispatched on the token's account type.
ACCOUNT_SERVICES = {
    ACCOUNT_USER: UserService,
    ACCOUNT_ADMIN: AdminService,
}


def _validate(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(details=exc.errors(include_url=False, include_context=False)) from exc


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(data: UserRegister) -> dict:
    """Create a user account and return it together with an access token."""
    user = await UserService.register(data)
    token = create_account_token(user.id, ACCOUNT_USER)
    return envelope(UserToken(token=token, user=user), message="User registered successfully")


@router.post("/login")
async def login(data: UserLogin) -> dict:
    user = await UserService.authenticate(data.email, data.password)
    token = create_account_token(user.id, ACCOUNT_USER)
    return envelope(UserToken(token=token, user=user), message="Login successful")


@router.post("/admin/login")
async def admin_login(data: AdminLogin) -> dict:
    """Authenticate an admin.

    Five consecutive failures lock the account for two hours; while
    locked the endpoint answers 423 without checking the password.
    """
    admin = await AdminService.login(data.username, data.password)
    token = create_account_token(admin.id, ACCOUNT_ADMIN, role=admin.role.value)
    return envelope(AdminToken(token=token, admin=admin), message="Admin login successful")


@router.post("/admin/create-owner", status_code=status.HTTP_201_CREATED)
async def create_owner(data: OwnerCreate) -> dict:
    """One-time bootstrap of the owner admin; fails once any admin exists."""
    admin = await AdminService.create_owner(data)
    token = create_account_token(admin.id, ACCOUNT_ADMIN, role=admin.role.value)
    return envelope(AdminToken(token=token, admin=admin), message="Owner admin created successfully")


@router.get("/me")
async def me(principal: dict = Depends(get_current_account)) -> dict:
    if principal["type"] == ACCOUNT_ADMIN:
        return envelope(Me(admin=await AdminService.get_admin(principal["id"])))
    return envelope(Me(user=await UserService.get_user(principal["id"])))


@router.put("/me")
async def update_me(
    payload: Dict[str, Any] = Body(...),
    principal: dict = Depends(get_current_account),
) -> dict:
    """Update the caller's own account.

    Users may change their profile fields; admins may change their name
    and email.
    """
    if principal["type"] == ACCOUNT_ADMIN:
        admin = await AdminService.update_profile(principal["id"], _validate(AdminProfileUpdate, payload))
        return envelope(Me(admin=admin), message="Admin profile updated successfully")
    user = await UserService.update_profile(principal["id"], _validate(ProfileUpdate, payload))
    return envelope(Me(user=user), message="Profile updated successfully")


@router.post("/change-password")
async def change_password(
    data: PasswordChange,
    principal: dict = Depends(get_current_account),
) -> dict:
    service = ACCOUNT_SERVICES[principal["type"]]
    await service.change_password(principal["id"], data.current_password, data.new_password)
    return envelope(message="Password changed successfully")


@router.post("/logout")
async def logout(principal: dict = Depends(get_current_account)) -> dict:
    return envelope(message="Logged out successfully")
