# src/circle_hub/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .communities import router as communities_router
from .diagnostics import router as diagnostics_router
from .payments import router as payments_router
from .submissions import router as submissions_router

__all__ = [
    "submissions_router",
    "communities_router",
    "diagnostics_router",
    "payments_router",
]
