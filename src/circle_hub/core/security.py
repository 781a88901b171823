"""Admin token helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta

from jose import jwt

from circle_hub.core.settings import settings

ADMIN_ROLE = "admin"


def create_admin_token(subject: str = "admin", expires_minutes: int | None = None) -> str:
    """Return a signed bearer token carrying the admin role."""
    minutes = expires_minutes if expires_minutes is not None else settings.admin_token_expire_minutes
    to_encode: dict[str, object] = {
        "sub": subject,
        "role": ADMIN_ROLE,
        "exp": datetime.now(UTC) + timedelta(minutes=minutes),
    }
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt
