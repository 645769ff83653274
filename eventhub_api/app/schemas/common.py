"""
Response envelope and pagination helpers shared by all endpoints.

Every response body has the shape::

    {"success": true, "message": "...", "data": ..., "pagination": {...}}

with ``message``, ``data`` and ``pagination`` omitted when not set.
Errors use the same envelope with ``success: false`` and an ``error``
code (see ``main.create_app``).
"""

import math
from typing import Any, Optional

from fastapi import Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from eventhub_api.app.core.config import settings


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PageParams(BaseModel):
    """Validated ``page``/``limit`` query parameters."""

    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def paginate(self, total: int) -> Pagination:
        return Pagination(
            page=self.page,
            limit=self.limit,
            total=total,
            pages=math.ceil(total / self.limit) if total else 0,
        )


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> PageParams:
    """FastAPI dependency reading pagination parameters from the query string."""
    return PageParams(page=page, limit=limit)


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    pagination: Optional[Pagination] = None,
) -> dict:
    """Wrap a successful result in the response envelope.

    Pydantic models (and lists of them) are converted with
    ``jsonable_encoder`` so datetimes become ISO strings.
    """
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if pagination is not None:
        body["pagination"] = pagination.model_dump()
    return body


def error_envelope(message: str, code: str, details: Any = None) -> dict:
    body: dict = {"success": False, "message": message, "error": code}
    if details is not None:
        body["errors"] = jsonable_encoder(details)
    return body
