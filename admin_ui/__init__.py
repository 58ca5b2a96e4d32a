"""Views of the iSkate admin portal."""

from . import app_management, common, dashboard, reports, users

__all__ = [
    "app_management",
    "common",
    "dashboard",
    "reports",
    "users",
]
