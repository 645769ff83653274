"""
Application package initializer.

The project is organised by layer: ``core`` holds configuration,
persistence, security and the registration lifecycle; ``schemas`` the
pydantic request/response models; ``services`` the business logic, one
class per domain; and ``api/v1/endpoints`` one router per domain.
"""

from .main import app  # noqa: F401
