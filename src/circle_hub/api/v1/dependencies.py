"""Shared API dependencies for authentication and service lookup."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from circle_hub.core.security import ADMIN_ROLE
from circle_hub.core.settings import settings
from circle_hub.db.session import get_db
from circle_hub.services.approval import ApprovalOrchestrator, get_approval_orchestrator
from circle_hub.services.listing import ListingRefresher, get_listing_refresher
from circle_hub.services.payments import PaymentService, get_payment_service

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def require_admin(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the admin subject from a bearer token.

    Raises:
        HTTPException: If the token is invalid or lacks the admin role.
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    if payload.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return str(payload.get("sub") or ADMIN_ROLE)


def require_payments() -> PaymentService:
    service = get_payment_service()
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payments are not configured",
        )
    return service


# Type aliases for dependencies
AdminDep = Annotated[str, Depends(require_admin)]
OrchestratorDep = Annotated[ApprovalOrchestrator, Depends(get_approval_orchestrator)]
ListingDep = Annotated[ListingRefresher, Depends(get_listing_refresher)]
PaymentsDep = Annotated[PaymentService, Depends(require_payments)]
