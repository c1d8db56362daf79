"""
Caller identity for the NewsLetterAI API.

Session handling lives in the web front end; by the time a request reaches
this service the caller's user id is forwarded in the X-User-ID header. The
dependency here only resolves that id to a stored User.
"""

from __future__ import annotations

import asyncio

from fastapi import HTTPException, Request, status

from newsletterai.observability.logging import get_logger
from newsletterai.users.models import User
from newsletterai.users.repository import UserRepository
from newsletterai.utils.redaction import redact

logger = get_logger(__name__)

USER_ID_HEADER = "X-User-ID"


async def get_current_user(request: Request) -> User:
    """
    FastAPI dependency to get the calling user.

    Usage:
        @router.get("/endpoint")
        async def endpoint(user: User = Depends(get_current_user)):
            # user.categories drives listing
            ...

    Raises:
        HTTPException: 401 if the header is missing or names no known user
    """
    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {USER_ID_HEADER} header",
        )

    try:
        user = await asyncio.to_thread(UserRepository.get_by_id, user_id)
    except Exception as e:
        logger.error("User lookup failed for %s: %s", redact(user_id), e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        ) from None

    if user is None:
        logger.warning("Unknown caller %s", redact(user_id))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )

    return user
