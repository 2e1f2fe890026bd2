"""Authentication dependency resolving the TMDb token for a request."""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from catalog.core.config import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_api_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Return the bearer token from the request, or the configured one."""

    if credentials is not None and credentials.credentials:
        return credentials.credentials

    settings = get_settings()
    if settings.tmdb_api_token:
        return settings.tmdb_api_token

    logger.warning("No bearer token on request and TMDB_API_TOKEN is not configured")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="TMDb API token is required",
        headers={"WWW-Authenticate": "Bearer"},
    )
