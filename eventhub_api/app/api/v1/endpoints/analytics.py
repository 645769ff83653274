"""
Analytics endpoints for API v1.

Personal and organizer statistics for the calling user.  System-wide
figures live under ``/admin/analytics``.
"""

from fastapi import APIRouter, Depends

from eventhub_api.app.core.security import require_user
from eventhub_api.app.schemas.common import envelope
from eventhub_api.app.services.analytics_service import AnalyticsService


router = APIRouter()


@router.get("/events/attended")
async def attended_events(principal: dict = Depends(require_user)) -> dict:
    return envelope(await AnalyticsService.user_event_analytics(principal["id"]))


@router.get("/connections/growth")
async def connection_growth(principal: dict = Depends(require_user)) -> dict:
    return envelope(await AnalyticsService.connection_growth(principal["id"]))


@router.get("/engagement")
async def engagement(principal: dict = Depends(require_user)) -> dict:
    """Profile completeness and a 0-100 engagement score."""
    return envelope(await AnalyticsService.user_engagement(principal["id"]))


@router.get("/events/organized/summary")
async def organizer_summary(principal: dict = Depends(require_user)) -> dict:
    return envelope(await AnalyticsService.organizer_summary(principal["id"]))


@router.get("/events/{event_id}")
async def event_analytics(event_id: int, principal: dict = Depends(require_user)) -> dict:
    """Statistics for one event; only its organizer may read them."""
    return envelope(await AnalyticsService.event_analytics(event_id, user_id=principal["id"]))
