"""
Administration endpoints for API v1.

Every route requires an admin token and one permission flag:

* ``view_analytics``: dashboard, system health and analytics.
* ``create_admins``: admin account management.
* ``manage_users`` / ``manage_events``: user and event moderation.
* ``delete_data``: deleting users and events.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from eventhub_api.app.core.security import require_permission
from eventhub_api.app.schemas.admin import AdminCreate, AdminUpdate
from eventhub_api.app.schemas.common import PageParams, envelope, page_params
from eventhub_api.app.schemas.event import EventCategory, EventStatus, EventUpdate
from eventhub_api.app.schemas.user import UserAdminUpdate
from eventhub_api.app.services.admin_service import AdminService
from eventhub_api.app.services.analytics_service import AnalyticsService
from eventhub_api.app.services.event_service import EventService
from eventhub_api.app.services.user_service import UserService


router = APIRouter()


# ---------------------------------------------------------------------------
# Dashboard and analytics
# ---------------------------------------------------------------------------

@router.get("/dashboard/stats")
async def dashboard_stats(admin: dict = Depends(require_permission("view_analytics"))) -> dict:
    return envelope(await AnalyticsService.dashboard_stats())


@router.get("/dashboard/system-health")
async def system_health(admin: dict = Depends(require_permission("view_analytics"))) -> dict:
    return envelope(await AnalyticsService.system_health())


@router.get("/analytics/events")
async def event_analytics(admin: dict = Depends(require_permission("view_analytics"))) -> dict:
    return envelope(await AnalyticsService.admin_event_analytics())


@router.get("/analytics/users")
async def user_analytics(admin: dict = Depends(require_permission("view_analytics"))) -> dict:
    return envelope(await AnalyticsService.admin_user_analytics())


@router.get("/analytics/revenue")
async def revenue_analytics(admin: dict = Depends(require_permission("view_analytics"))) -> dict:
    return envelope(await AnalyticsService.admin_revenue_analytics())


# ---------------------------------------------------------------------------
# Admin accounts
# ---------------------------------------------------------------------------

@router.get("/admins")
async def list_admins(admin: dict = Depends(require_permission("create_admins"))) -> dict:
    return envelope(await AdminService.list_admins())


@router.post("/admins", status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    admin: dict = Depends(require_permission("create_admins")),
) -> dict:
    created = await AdminService.create_admin(data, created_by=admin["id"])
    return envelope(created, message="Admin created successfully")


@router.get("/admins/{admin_id}")
async def get_admin(admin_id: int, admin: dict = Depends(require_permission("create_admins"))) -> dict:
    return envelope(await AdminService.get_admin(admin_id))


@router.put("/admins/{admin_id}")
async def update_admin(
    admin_id: int,
    updates: AdminUpdate,
    admin: dict = Depends(require_permission("create_admins")),
) -> dict:
    """Update an admin; changing the role recomputes its permissions."""
    updated = await AdminService.update_admin(admin_id, updates, actor_id=admin["id"])
    return envelope(updated, message="Admin updated successfully")


@router.delete("/admins/{admin_id}")
async def delete_admin(admin_id: int, admin: dict = Depends(require_permission("create_admins"))) -> dict:
    await AdminService.delete_admin(admin_id, actor_id=admin["id"])
    return envelope(message="Admin deleted successfully")


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------

@router.get("/users")
async def list_users(
    page: PageParams = Depends(page_params),
    search: Optional[str] = Query(None),
    user_status: Optional[str] = Query(None, alias="status", pattern="^(active|inactive)$"),
    admin: dict = Depends(require_permission("manage_users")),
) -> dict:
    users, total = await UserService.list_users(page.limit, page.offset, search=search, status=user_status)
    return envelope(users, pagination=page.paginate(total))


@router.get("/users/{user_id}")
async def get_user(user_id: int, admin: dict = Depends(require_permission("manage_users"))) -> dict:
    return envelope(await UserService.get_user(user_id))


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    updates: UserAdminUpdate,
    admin: dict = Depends(require_permission("manage_users")),
) -> dict:
    user = await UserService.admin_update(user_id, updates)
    return envelope(user, message="User updated successfully")


@router.put("/users/{user_id}/activate")
async def activate_user(user_id: int, admin: dict = Depends(require_permission("manage_users"))) -> dict:
    user = await UserService.set_active(user_id, True)
    return envelope(user, message="User activated successfully")


@router.put("/users/{user_id}/deactivate")
async def deactivate_user(user_id: int, admin: dict = Depends(require_permission("manage_users"))) -> dict:
    user = await UserService.set_active(user_id, False)
    return envelope(user, message="User deactivated successfully")


@router.delete("/users/{user_id}")
async def delete_user(user_id: int, admin: dict = Depends(require_permission("delete_data"))) -> dict:
    await UserService.delete_user(user_id)
    return envelope(message="User deleted successfully")


# ---------------------------------------------------------------------------
# Event moderation
# ---------------------------------------------------------------------------

@router.get("/events")
async def list_events(
    page: PageParams = Depends(page_params),
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    category: Optional[EventCategory] = Query(None),
    search: Optional[str] = Query(None),
    admin: dict = Depends(require_permission("manage_events")),
) -> dict:
    """List events in any status, newest first."""
    events, total = await EventService.list_events(
        limit=page.limit,
        offset=page.offset,
        status=event_status.value if event_status else None,
        category=category.value if category else None,
        search=search,
        order_by="e.created_at DESC, e.id DESC",
    )
    return envelope(events, pagination=page.paginate(total))


@router.get("/events/{event_id}")
async def get_event(event_id: int, admin: dict = Depends(require_permission("manage_events"))) -> dict:
    return envelope(await EventService.get_event(event_id))


@router.put("/events/{event_id}")
async def update_event(
    event_id: int,
    updates: EventUpdate,
    admin: dict = Depends(require_permission("manage_events")),
) -> dict:
    event = await EventService.update_event(event_id, updates)
    return envelope(event, message="Event updated successfully")


@router.put("/events/{event_id}/approve")
async def approve_event(event_id: int, admin: dict = Depends(require_permission("manage_events"))) -> dict:
    event = await EventService.set_status(event_id, EventStatus.ACTIVE)
    return envelope(event, message="Event approved successfully")


@router.put("/events/{event_id}/reject")
async def reject_event(event_id: int, admin: dict = Depends(require_permission("manage_events"))) -> dict:
    event = await EventService.set_status(event_id, EventStatus.CANCELLED)
    return envelope(event, message="Event rejected successfully")


@router.get("/events/{event_id}/attendees")
async def event_attendees(event_id: int, admin: dict = Depends(require_permission("manage_events"))) -> dict:
    return envelope(await EventService.list_attendees(event_id, full_list=True))


@router.delete("/events/{event_id}")
async def delete_event(event_id: int, admin: dict = Depends(require_permission("delete_data"))) -> dict:
    await EventService.delete_event(event_id)
    return envelope(message="Event deleted successfully")
