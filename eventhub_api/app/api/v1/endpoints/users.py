"""
User profile and networking endpoints for API v1.

All routes require a user account.  Connections are symmetric and are
established immediately; there is no request/accept step.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from eventhub_api.app.core.security import require_user
from eventhub_api.app.schemas.common import PageParams, envelope, page_params
from eventhub_api.app.schemas.user import ProfileUpdate
from eventhub_api.app.services.connection_service import ConnectionService
from eventhub_api.app.services.user_service import UserService


router = APIRouter()


@router.get("/profile")
async def get_profile(principal: dict = Depends(require_user)) -> dict:
    return envelope(await UserService.get_user(principal["id"]))


@router.put("/profile")
async def update_profile(
    updates: ProfileUpdate,
    principal: dict = Depends(require_user),
) -> dict:
    user = await UserService.update_profile(principal["id"], updates)
    return envelope(user, message="Profile updated successfully")


@router.get("/connections")
async def list_connections(principal: dict = Depends(require_user)) -> dict:
    return envelope(await ConnectionService.list_connections(principal["id"]))


@router.post("/connections/{user_id}")
async def connect(user_id: int, principal: dict = Depends(require_user)) -> dict:
    await ConnectionService.connect(principal["id"], user_id)
    return envelope(message="Connection established successfully")


@router.delete("/connections/{user_id}")
async def disconnect(user_id: int, principal: dict = Depends(require_user)) -> dict:
    await ConnectionService.disconnect(principal["id"], user_id)
    return envelope(message="Connection removed successfully")


@router.get("/search")
async def search_users(
    q: Optional[str] = Query(None),
    page: PageParams = Depends(page_params),
    principal: dict = Depends(require_user),
) -> dict:
    """Search active users by name, company, job title or interests."""
    users, total = await UserService.search_users(q or "", principal["id"], page.limit, page.offset)
    return envelope(users, pagination=page.paginate(total))


@router.get("/suggestions")
async def suggestions(principal: dict = Depends(require_user)) -> dict:
    return envelope(await UserService.suggestions(principal["id"]))


@router.get("/{user_id}/public-profile")
async def public_profile(user_id: int, principal: dict = Depends(require_user)) -> dict:
    return envelope(await UserService.public_profile(user_id, principal["id"]))
