import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

SUPER_ADMIN_ROLE = "superadmin"

db_dep = Annotated[AsyncSession, Depends(get_db)]
settings_dep = Annotated[Settings, Depends(get_settings)]

# auto_error=False so a missing header becomes our AuthenticationError, not a 403
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallerSession:
    """Who is asking, derived once per request and never mutated."""

    caller_id: str
    tenant_id: Optional[str]
    role: str
    display_name: str

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN_ROLE


def create_access_token(data: dict, config: Optional[Settings] = None):
    config = config or get_settings()
    to_encode = data.copy()

    expire_time = datetime.now(timezone.utc) + timedelta(
        minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    to_encode.update({"exp": expire_time})

    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def session_from_profile(profile: models.Profile) -> CallerSession:
    display_name = " ".join(
        part for part in (profile.first_name, profile.last_name) if part
    )
    return CallerSession(
        caller_id=str(profile.id),
        tenant_id=str(profile.tenant_id) if profile.tenant_id else None,
        role=profile.role,
        display_name=display_name or "Unknown user",
    )


# Decode the token and see who is asking
async def get_current_session(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)
    ],
    db: db_dep,
    config: settings_dep,
) -> CallerSession:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authorization header is required")

    try:
        payload = jwt.decode(
            credentials.credentials, config.SECRET_KEY, algorithms=[config.ALGORITHM]
        )
        user_id = uuid.UUID(str(payload.get("user_id")))
    # Expired, tampered or missing claim
    except (jwt.InvalidTokenError, ValueError) as error:
        logger.warning(f"Rejected bearer token: {type(error).__name__}")
        raise AuthenticationError("Authentication failed")

    # Go to the Database and find the caller's profile
    query = select(models.Profile).where(models.Profile.id == user_id)
    result = await db.execute(query)
    profile = result.scalars().first()

    if profile is None:
        raise AuthenticationError("Failed to get user profile")

    session = session_from_profile(profile)
    if session.tenant_id is None and not session.is_super_admin:
        raise AuthenticationError("User profile is not attached to a tenant")

    return session
