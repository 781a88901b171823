# src/circle_hub/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    communities_router,
    diagnostics_router,
    payments_router,
    submissions_router,
)

__all__ = [
    "submissions_router",
    "communities_router",
    "diagnostics_router",
    "payments_router",
]
