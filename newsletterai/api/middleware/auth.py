"""Admin authentication for the NewsLetterAI API"""

from __future__ import annotations

import secrets

from fastapi import Header, HTTPException, status

from newsletterai.config import ADMIN_API_KEY
from newsletterai.observability.logging import get_logger

logger = get_logger(__name__)


class APIKeyAuth:
    """
    Simple API key authentication for the newsletter endpoints.

    API key should be set in NEWSLETTERAI_ADMIN_API_KEY environment variable.
    """

    def __init__(self, api_key: str | None = ADMIN_API_KEY):
        self.api_key = api_key
        if not self.api_key:
            # Auth is optional for development
            logger.warning("NEWSLETTERAI_ADMIN_API_KEY not set - newsletter endpoints are unprotected!")

    def verify_api_key(self, authorization: str | None = Header(None)) -> bool:
        """
        Verify API key from Authorization header.

        Expected format: "Bearer {api_key}"
        """
        # No API key configured: development mode
        if not self.api_key:
            return True

        if not authorization:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing authorization header",
                headers={"WWW-Authenticate": "Bearer"},
            )

        try:
            scheme, token = authorization.split()
            if scheme.lower() != "bearer":
                raise ValueError("Invalid authentication scheme")
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authorization header format. Expected: Bearer {api_key}",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        # Timing-safe comparison
        if not secrets.compare_digest(token, self.api_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid API key",
            )

        return True


# Global auth instance
auth = APIKeyAuth()


def require_admin_auth(authorization: str | None = Header(None)) -> bool:
    """
    Dependency for endpoints that require admin authentication.

    Usage:
        router = APIRouter(dependencies=[Depends(require_admin_auth)])
    """
    return auth.verify_api_key(authorization)
