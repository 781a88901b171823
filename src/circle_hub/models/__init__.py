"""SQLAlchemy models for the Circle Hub application."""

from .community import CommunityMembership
from .submission import CommunitySubmission

__all__ = [
    "CommunityMembership",
    "CommunitySubmission",
]
