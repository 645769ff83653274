"""
Pydantic schema definitions for API payloads.

Each domain (users, admins, events) defines its own models for request
and response bodies.  Schemas are separated from the SQLite rows so the
API representation does not leak storage details such as JSON columns
or password hashes.
"""
