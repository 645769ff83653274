"""
Top-level router for version 1 of the API.

This router aggregates the domain routers under their prefixes.  When a
new domain is introduced, add its module to ``endpoints`` and include
its router here.
"""

from fastapi import APIRouter

from .endpoints import admin, analytics, auth, events, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
