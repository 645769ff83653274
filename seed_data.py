#!/usr/bin/env python3
"""
Fill an EventHub SQLite database with demo data.

Creates an owner admin and a user-role admin, five sample users with
profiles, five events (four active, one completed), registrations for
the first three events and a few connections.  Everything goes through
the service layer, so the data obeys the same rules as the API.

Usage:
    python seed_data.py
    python seed_data.py --db ./eventhub.db --reset

Without --reset the script refuses to touch a database that already
has accounts.
"""

import argparse
import asyncio
import os
import sys
from datetime import timedelta
from typing import Optional, Sequence

from eventhub_api.app.core.config import settings
from eventhub_api.app.core.db import get_cursor, init_db
from eventhub_api.app.core.timeutils import utcnow
from eventhub_api.app.schemas.admin import AdminCreate, AdminRole, OwnerCreate
from eventhub_api.app.schemas.event import EventCreate, EventStatus
from eventhub_api.app.schemas.user import ProfileUpdate, UserRegister
from eventhub_api.app.services.admin_service import AdminService
from eventhub_api.app.services.connection_service import ConnectionService
from eventhub_api.app.services.event_service import EventService
from eventhub_api.app.services.registration_service import RegistrationService
from eventhub_api.app.services.user_service import UserService


OWNER = {"username": "admin", "email": "admin@eventapp.com", "password": "owner123", "name": "Owner Admin"}
USER_ADMIN = {"username": "useradmin", "email": "useradmin@eventapp.com", "password": "admin123", "name": "User Admin"}
USER_PASSWORD = "password123"

USERS = [
    ("demo@example.com", "Demo User", "Tech Corp", "Software Engineer",
     "Passionate about technology and networking", ["technology", "programming", "ai"]),
    ("john.doe@company.com", "John Doe", "StartupXYZ", "Product Manager",
     "Building innovative products", ["product management", "startups", "innovation"]),
    ("jane.smith@consulting.com", "Jane Smith", "Consulting Firm", "Senior Consultant",
     "Strategy and business transformation expert", ["consulting", "strategy", "business"]),
    ("alex.wilson@design.co", "Alex Wilson", "Design Co", "UX Designer",
     "Creating beautiful and user-friendly experiences", ["design", "ux", "creative"]),
    ("sarah.brown@marketing.com", "Sarah Brown", "Marketing Agency", "Marketing Director",
     "Digital marketing and brand strategy specialist", ["marketing", "branding", "digital"]),
]

# (organizer index, days from now, hours long, final status, event fields)
EVENTS = [
    (0, 30, 8, EventStatus.ACTIVE, {
        "title": "Tech Conference",
        "description": "Join industry leaders for the biggest tech conference of the year.",
        "category": "conference",
        "location": {"venue": "Convention Center", "address": "123 Main Street", "city": "San Francisco",
                     "state": "CA", "country": "USA", "zip_code": "94105"},
        "capacity": 500,
        "price": 299.99,
        "tags": ["technology", "innovation", "networking"],
        "sessions": [{"title": "AI and the Future of Work", "speaker": "Dr. Tech Expert", "location": "Main Hall"}],
    }),
    (4, 15, 4, EventStatus.ACTIVE, {
        "title": "Digital Marketing Workshop",
        "description": "Learn the latest digital marketing strategies and tools in this hands-on workshop.",
        "category": "workshop",
        "location": {"venue": "Learning Hub", "address": "456 Business Ave", "city": "New York",
                     "state": "NY", "country": "USA", "zip_code": "10001"},
        "capacity": 50,
        "price": 149.99,
        "tags": ["marketing", "digital", "workshop"],
    }),
    (1, 7, 3, EventStatus.ACTIVE, {
        "title": "Startup Networking Mixer",
        "description": "Connect with fellow entrepreneurs, investors and startup enthusiasts.",
        "category": "networking",
        "location": {"venue": "Rooftop Bar", "address": "789 Startup Street", "city": "Austin",
                     "state": "TX", "country": "USA", "zip_code": "73301"},
        "capacity": 100,
        "price": 0,
        "tags": ["networking", "startup", "entrepreneur"],
    }),
    (3, 10, 2, EventStatus.ACTIVE, {
        "title": "Virtual UX Design Seminar",
        "description": "An online seminar covering the latest trends and best practices in UX design.",
        "category": "seminar",
        "location": {"venue": "Online", "address": "Virtual Event", "city": "Virtual", "country": "Online"},
        "is_virtual": True,
        "virtual_link": "https://zoom.us/j/example",
        "capacity": 200,
        "price": 49.99,
        "tags": ["ux", "design", "virtual"],
    }),
    (2, -30, 6, EventStatus.COMPLETED, {
        "title": "Business Strategy Summit",
        "description": "A past event about business strategy and planning.",
        "category": "conference",
        "location": {"venue": "Business Center", "address": "321 Corporate Blvd", "city": "Chicago",
                     "state": "IL", "country": "USA", "zip_code": "60601"},
        "capacity": 150,
        "price": 199.99,
        "tags": ["business", "strategy", "planning"],
    }),
]


def clear_data() -> None:
    with get_cursor() as cursor:
        for table in ("user_connections", "event_attendees", "events", "users", "admin_users"):
            cursor.execute(f"DELETE FROM {table}")


def has_accounts() -> bool:
    with get_cursor() as cursor:
        users = cursor.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        admins = cursor.execute("SELECT COUNT(*) FROM admin_users").fetchone()[0]
    return bool(users or admins)


async def seed() -> dict:
    owner = await AdminService.create_owner(OwnerCreate(**OWNER))
    await AdminService.create_admin(AdminCreate(**USER_ADMIN, role=AdminRole.USER), created_by=owner.id)

    users = []
    for email, name, company, job_title, bio, interests in USERS:
        user = await UserService.register(
            UserRegister(email=email, password=USER_PASSWORD, name=name, company=company, job_title=job_title)
        )
        await UserService.update_profile(user.id, ProfileUpdate(bio=bio, interests=interests))
        users.append(user)

    now = utcnow()
    events = []
    for organizer_index, days, hours, status, fields in EVENTS:
        start = now + timedelta(days=days)
        data = EventCreate(date_time=start, end_date_time=start + timedelta(hours=hours), **fields)
        event = await EventService.create_event(data, users[organizer_index].id)
        await EventService.set_status(event.id, status)
        events.append(event)

    registrations = 0
    for user in users:
        for event in events[:3]:
            if event.organizer_id != user.id:
                await RegistrationService.register(event.id, user.id)
                registrations += 1

    connections = 0
    for i, user in enumerate(users):
        for other in users[i + 1:i + 3]:
            await ConnectionService.connect(user.id, other.id)
            connections += 1

    return {
        "users": len(users),
        "events": len(events),
        "registrations": registrations,
        "connections": connections,
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Seed an EventHub database with demo data (SQLite).")
    ap.add_argument("--db", help="Path to the SQLite DB file. Defaults to DATABASE_URL.")
    ap.add_argument("--reset", action="store_true", help="Delete all existing accounts and events first")
    args = ap.parse_args(argv)

    if args.db:
        settings.database_url = os.path.abspath(args.db)
    init_db()

    if args.reset:
        clear_data()
    elif has_accounts():
        print("[!] Database already has accounts; rerun with --reset to replace them.", file=sys.stderr)
        return 2

    totals = asyncio.run(seed())
    print(
        f"[+] Seeded {totals['users']} users, {totals['events']} events, "
        f"{totals['registrations']} registrations and {totals['connections']} connections"
    )
    print(f"[+] Owner admin: {OWNER['username']} / {OWNER['password']}")
    print(f"[+] User admin: {USER_ADMIN['username']} / {USER_ADMIN['password']}")
    print(f"[+] Sample user: {USERS[0][0]} / {USER_PASSWORD}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
