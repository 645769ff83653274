"""
Service layer for analytics and reporting.

All methods are read-only reducers: they fetch the relevant rows with
parameterized queries and aggregate them in Python (counts, sums and
groupings by category, month or company).  Revenue is always the event
price multiplied by the number of seated attendees (``registered`` or
``attended``); no payments are recorded.

User-facing analytics describe the calling user; organizer analytics
require the caller to own the event; the admin reducers cover the whole
system.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from eventhub_api.app.core.db import from_json, get_cursor, ping
from eventhub_api.app.core.errors import AuthorizationError, NotFoundError
from eventhub_api.app.core.roster import SEATED_STATUSES, AttendeeStatus
from eventhub_api.app.core.timeutils import month_label, parse_iso, utcnow


logger = logging.getLogger(__name__)

_SEATED = tuple(status.value for status in SEATED_STATUSES)
_REVENUE_STATUSES = ("active", "completed")


def round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def _increment(bucket: Dict[str, Any], key: str, amount: Any = 1) -> None:
    bucket[key] = bucket.get(key, 0) + amount


def _events_with_seats(cursor, where: str = "", params: tuple = ()) -> List[Dict[str, Any]]:
    """Return event rows as dicts with a ``seated`` attendee count."""
    rows = cursor.execute(
        "SELECT e.id, e.title, e.category, e.status, e.date_time, e.price, e.capacity, "
        f"(SELECT COUNT(*) FROM event_attendees a WHERE a.event_id = e.id AND a.status IN ({','.join('?' * len(_SEATED))})) AS seated "
        f"FROM events e {where}",
        _SEATED + params,
    ).fetchall()
    return [dict(row) for row in rows]


def profile_completeness(user: Dict[str, Any], attending_count: int) -> int:
    """Percentage of the ten profile signals that are filled in."""
    filled = sum(
        1
        for present in (
            user.get("name"),
            user.get("email"),
            user.get("company"),
            user.get("job_title"),
            user.get("bio"),
            user.get("phone"),
            user.get("profile_image"),
            from_json(user.get("interests"), []),
            {k: v for k, v in from_json(user.get("social_links"), {}).items() if v},
            attending_count > 0,
        )
        if present
    )
    return round_half_up(filled / 10 * 100)


def engagement_score(attended: int, organized: int, connections: int, completeness: int) -> int:
    """Score in 0..100 from capped contributions of each activity."""
    score = 0.0
    score += min(attended * 5, 30)
    score += min(organized * 10, 20)
    score += min(connections * 2, 25)
    score += min(completeness * 0.25, 25)
    return round_half_up(score)


class AnalyticsService:
    """Aggregated statistics for users, organizers and administrators."""

    # ------------------------------------------------------------------
    # User analytics
    # ------------------------------------------------------------------

    @classmethod
    async def user_event_analytics(cls, user_id: int) -> Dict[str, Any]:
        """Breakdown of the events the user holds an attendee record for."""
        with get_cursor() as cursor:
            rows = cursor.execute(
                "SELECT e.category, e.status, e.date_time, e.price FROM events e "
                "JOIN event_attendees a ON a.event_id = e.id WHERE a.user_id = ?",
                (user_id,),
            ).fetchall()
        now = utcnow()
        analytics: Dict[str, Any] = {
            "total_events_attended": len(rows),
            "events_by_category": {},
            "events_by_month": {},
            "total_spent": 0,
            "upcoming_events": 0,
        }
        for row in rows:
            date_time = parse_iso(row["date_time"])
            _increment(analytics["events_by_category"], row["category"])
            _increment(analytics["events_by_month"], month_label(date_time))
            analytics["total_spent"] += row["price"] or 0
            if date_time > now and row["status"] == "active":
                analytics["upcoming_events"] += 1
        return analytics

    @classmethod
    async def connection_growth(cls, user_id: int) -> Dict[str, Any]:
        """Connections grouped by the month they were made."""
        with get_cursor() as cursor:
            rows = cursor.execute(
                "SELECT created_at FROM user_connections WHERE user_id = ?", (user_id,)
            ).fetchall()
        by_month: Dict[str, int] = {}
        for row in rows:
            _increment(by_month, month_label(parse_iso(row["created_at"])))
        total = len(rows)
        return {
            "total_connections": total,
            "connections_by_month": by_month,
            "average_connections_per_month": round_half_up(total / len(by_month)) if by_month else 0,
        }

    @classmethod
    async def user_engagement(cls, user_id: int) -> Dict[str, Any]:
        with get_cursor() as cursor:
            row = cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if not row:
                raise NotFoundError("User not found")
            attended = cursor.execute(
                "SELECT COUNT(*) FROM event_attendees WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
            organized = cursor.execute(
                "SELECT COUNT(*) FROM events WHERE organizer_id = ?", (user_id,)
            ).fetchone()[0]
            connections = cursor.execute(
                "SELECT COUNT(*) FROM user_connections WHERE user_id = ?", (user_id,)
            ).fetchone()[0]
        completeness = profile_completeness(dict(row), attended)
        return {
            "profile_completeness": completeness,
            "events_attended": attended,
            "events_organized": organized,
            "total_connections": connections,
            "last_active": parse_iso(row["last_login"]),
            "engagement_score": engagement_score(attended, organized, connections, completeness),
        }

    # ------------------------------------------------------------------
    # Organizer analytics
    # ------------------------------------------------------------------

    @classmethod
    async def organizer_summary(cls, user_id: int) -> Dict[str, Any]:
        """Totals over every event the user organizes.

        ``average_attendance`` is the mean capacity utilization (percent)
        of the organizer's completed events.
        """
        with get_cursor() as cursor:
            events = _events_with_seats(cursor, "WHERE e.organizer_id = ?", (user_id,))
        now = utcnow()
        summary: Dict[str, Any] = {
            "total_events": len(events),
            "events_by_status": {"draft": 0, "active": 0, "completed": 0, "cancelled": 0},
            "total_attendees": 0,
            "total_revenue": 0,
            "average_attendance": 0,
            "top_performing_event": None,
            "upcoming_events": 0,
        }
        max_attendees = 0
        utilization_sum = 0.0
        for event in events:
            seated = event["seated"]
            _increment(summary["events_by_status"], event["status"])
            summary["total_attendees"] += seated
            summary["total_revenue"] += event["price"] * seated
            if seated > max_attendees:
                max_attendees = seated
                summary["top_performing_event"] = {
                    "id": event["id"],
                    "title": event["title"],
                    "attendees": seated,
                    "revenue": event["price"] * seated,
                }
            if event["status"] == "active" and parse_iso(event["date_time"]) > now:
                summary["upcoming_events"] += 1
            if event["status"] == "completed":
                utilization_sum += seated / event["capacity"] * 100
        completed = summary["events_by_status"]["completed"]
        if completed:
            summary["average_attendance"] = round_half_up(utilization_sum / completed)
        return summary

    @classmethod
    async def event_analytics(cls, event_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        """Detailed statistics for one event.

        When ``user_id`` is given it must be the organizer, otherwise
        ``AuthorizationError`` is raised.
        """
        with get_cursor() as cursor:
            event = cursor.execute(
                "SELECT id, organizer_id, title, price, capacity, views, shares FROM events WHERE id = ?",
                (event_id,),
            ).fetchone()
            if not event:
                raise NotFoundError("Event not found")
            if user_id is not None and event["organizer_id"] != user_id:
                raise AuthorizationError("Not authorized to view analytics for this event")
            attendees = cursor.execute(
                "SELECT a.status, a.registered_at, u.company FROM event_attendees a "
                "JOIN users u ON u.id = a.user_id WHERE a.event_id = ? ORDER BY a.id",
                (event_id,),
            ).fetchall()

        by_status = {status.value: 0 for status in AttendeeStatus}
        by_company: Dict[str, int] = {}
        trend: Dict[str, int] = {}
        for row in attendees:
            _increment(by_status, row["status"])
            if row["company"]:
                _increment(by_company, row["company"])
            _increment(trend, parse_iso(row["registered_at"]).date().isoformat())
        seated = sum(by_status[status] for status in _SEATED)
        return {
            "event_id": event["id"],
            "title": event["title"],
            "total_registrations": len(attendees),
            "attendees_by_status": by_status,
            "attendees_by_company": by_company,
            "registration_trend": trend,
            "revenue": {"total": event["price"] * seated, "per_attendee": event["price"]},
            "capacity": {
                "total": event["capacity"],
                "filled": seated,
                "utilization": round_half_up(seated / event["capacity"] * 100),
            },
            "views": event["views"],
            "shares": event["shares"],
        }

    # ------------------------------------------------------------------
    # Admin analytics
    # ------------------------------------------------------------------

    @classmethod
    async def dashboard_stats(cls) -> Dict[str, Any]:
        now = utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0)
        with get_cursor() as cursor:
            total_users = cursor.execute(
                "SELECT COUNT(*) FROM users WHERE is_active = 1"
            ).fetchone()[0]
            status_counts = {
                row["status"]: row["total"]
                for row in cursor.execute(
                    "SELECT status, COUNT(*) AS total FROM events GROUP BY status"
                ).fetchall()
            }
            events = _events_with_seats(
                cursor, "WHERE e.status IN (?, ?)", _REVENUE_STATUSES
            )
        total_revenue = 0.0
        monthly_revenue = 0.0
        registrations = 0
        for event in events:
            revenue = event["price"] * event["seated"]
            total_revenue += revenue
            registrations += event["seated"]
            if parse_iso(event["date_time"]) >= month_start:
                monthly_revenue += revenue
        return {
            "total_users": total_users,
            "total_events": sum(status_counts.values()),
            "active_events": status_counts.get("active", 0),
            "total_revenue": total_revenue,
            "monthly_revenue": monthly_revenue,
            "total_registrations": registrations,
            "completed_events": status_counts.get("completed", 0),
            "draft_events": status_counts.get("draft", 0),
        }

    @classmethod
    async def system_health(cls) -> Dict[str, Any]:
        """Report database reachability and round-trip time."""
        try:
            elapsed_ms = ping()
        except Exception:
            logger.exception("Database health check failed")
            return {"database": {"status": "unhealthy"}, "checked_at": utcnow()}
        return {
            "database": {"status": "healthy", "response_time_ms": round(elapsed_ms, 2)},
            "checked_at": utcnow(),
        }

    @classmethod
    async def admin_event_analytics(cls) -> Dict[str, Any]:
        with get_cursor() as cursor:
            events = _events_with_seats(cursor)
            attended_total = cursor.execute(
                "SELECT COUNT(*) FROM event_attendees WHERE status = ?",
                (AttendeeStatus.ATTENDED.value,),
            ).fetchone()[0]
        by_status = {"active": 0, "completed": 0, "draft": 0, "cancelled": 0}
        by_category: Dict[str, int] = {}
        total_revenue = 0.0
        for event in events:
            _increment(by_status, event["status"])
            _increment(by_category, event["category"])
            total_revenue += event["price"] * event["seated"]
        return {
            "total_events": len(events),
            "events_by_status": by_status,
            "events_by_category": by_category,
            "average_attendees": round_half_up(attended_total / len(events)) if events else 0,
            "total_revenue": total_revenue,
        }

    @classmethod
    async def admin_user_analytics(cls) -> Dict[str, Any]:
        with get_cursor() as cursor:
            users = cursor.execute(
                "SELECT id, company, job_title, is_active, created_at FROM users"
            ).fetchall()
            total_connections = cursor.execute(
                "SELECT COUNT(*) FROM user_connections"
            ).fetchone()[0]
            total_attending = cursor.execute(
                "SELECT COUNT(*) FROM event_attendees"
            ).fetchone()[0]
        by_company: Dict[str, int] = {}
        by_job_title: Dict[str, int] = {}
        growth: Dict[str, int] = {}
        for row in users:
            if row["company"]:
                _increment(by_company, row["company"])
            if row["job_title"]:
                _increment(by_job_title, row["job_title"])
            created_at = parse_iso(row["created_at"])
            if created_at is not None:
                _increment(growth, month_label(created_at))
        return {
            "total_users": len(users),
            "active_users": sum(1 for row in users if row["is_active"]),
            "user_growth": growth,
            "demographics": {"by_company": by_company, "by_job_title": by_job_title},
            "engagement": {
                "total_connections": total_connections,
                "average_events_per_user": round_half_up(total_attending / len(users)) if users else 0,
            },
        }

    @classmethod
    async def admin_revenue_analytics(cls) -> Dict[str, Any]:
        with get_cursor() as cursor:
            events = _events_with_seats(
                cursor, "WHERE e.status IN (?, ?)", _REVENUE_STATUSES
            )
        total = 0.0
        by_month: Dict[str, float] = {}
        by_category: Dict[str, float] = {}
        top: List[Dict[str, Any]] = []
        for event in events:
            revenue = event["price"] * event["seated"]
            total += revenue
            _increment(by_month, month_label(parse_iso(event["date_time"])), revenue)
            _increment(by_category, event["category"], revenue)
            top.append({"id": event["id"], "title": event["title"], "revenue": revenue, "attendees": event["seated"]})
        top.sort(key=lambda item: item["revenue"], reverse=True)
        return {
            "total_revenue": total,
            "monthly_revenue": by_month,
            "revenue_by_category": by_category,
            "top_revenue_events": top[:10],
        }
