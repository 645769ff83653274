"""
Service layer.

Each service encapsulates the business logic for one domain and talks
to SQLite through ``core.db``.  Services raise ``core.errors.AppError``
subclasses; endpoints never build error responses themselves.
"""
