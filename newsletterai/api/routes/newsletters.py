"""
Newsletter API endpoints.

Provides endpoints for:
- Listing newsletters for the caller's categories
- Generating (and storing) a newsletter PDF
- Downloading a stored PDF
- Changing status / deleting (admin workflow)
- Sending a newsletter to users
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, NoReturn
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, Field

from newsletterai.api.middleware.auth import require_admin_auth
from newsletterai.api.middleware.user_auth import get_current_user
from newsletterai.config import (
    API_LIST_LIMIT_DEFAULT,
    API_LIST_LIMIT_MAX,
    API_PREFIX,
    API_RECIPIENTS_MAX,
)
from newsletterai.newsletters.errors import (
    IllegalTransitionError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)
from newsletterai.newsletters.models import Newsletter, NewsletterStatus, NewsletterSummary
from newsletterai.newsletters.service import NewsletterService, get_newsletter_service
from newsletterai.observability.logging import get_logger
from newsletterai.users.models import User
from newsletterai.utils.error_sanitizer import sanitize_error_message

router = APIRouter(
    prefix=API_PREFIX,
    tags=["newsletters"],
    dependencies=[Depends(require_admin_auth)],
)
logger = get_logger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateAPIRequest(BaseModel):
    """Fields are optional here so that missing ones get a 400 from the pipeline."""

    title: str | None = None
    category: str | None = None
    articles: list[dict[str, Any]] | None = None


class StatusAPIRequest(BaseModel):
    status: str


class SendAPIRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_ids: list[str] | None = Field(
        default=None, alias="userIds", max_length=API_RECIPIENTS_MAX
    )


class NewsletterResponse(BaseModel):
    """Newsletter metadata (never the artifact bytes or markup)."""

    id: str
    title: str
    category: str
    status: NewsletterStatus
    article_refs: list[str]
    recipients: list[str]
    has_artifact: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_newsletter(cls, newsletter: Newsletter) -> NewsletterResponse:
        return cls(
            id=newsletter.id,
            title=newsletter.title,
            category=newsletter.category,
            status=newsletter.status,
            article_refs=newsletter.article_refs,
            recipients=newsletter.recipients,
            has_artifact=newsletter.has_artifact,
            created_at=newsletter.created_at,
            updated_at=newsletter.updated_at,
        )


class SendAPIResponse(BaseModel):
    message: str
    notifications_degraded: bool | None = None


class MessageResponse(BaseModel):
    message: str


# ============================================================================
# Helpers
# ============================================================================


def content_disposition(filename: str) -> str:
    """inline disposition; non-latin titles get an RFC 5987 filename* as well."""
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "")
    if ascii_name == filename:
        return f'inline; filename="{filename}"'
    fallback = ascii_name or "newsletter.pdf"
    return f"inline; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def pdf_response(newsletter: Newsletter) -> Response:
    artifact = newsletter.artifact
    return Response(
        content=artifact.data,
        media_type=artifact.media_type,
        headers={"Content-Disposition": content_disposition(newsletter.filename)},
    )


def raise_http_error(e: Exception, action: str) -> NoReturn:
    """Translate a pipeline error into an HTTPException."""
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, (ValidationError, InvalidStatusError)):
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    if isinstance(e, NotFoundError):
        raise HTTPException(status_code=404, detail="Newsletter not found") from None
    if isinstance(e, IllegalTransitionError):
        raise HTTPException(status_code=409, detail=sanitize_error_message(str(e), 409)) from None

    logger.error("Failed to %s: %s: %s", action, type(e).__name__, e)
    raise HTTPException(status_code=500, detail=sanitize_error_message(str(e), 500)) from None


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/", response_model=list[NewsletterSummary])
async def list_newsletters(
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    user: User = Depends(get_current_user),
    service: NewsletterService = Depends(get_newsletter_service),
) -> list[NewsletterSummary]:
    """Newsletters in the caller's categories, newest first."""
    try:
        return await service.list_for_user(user, limit=limit)
    except Exception as e:
        raise_http_error(e, "list newsletters")


@router.post("/generate-and-save")
async def generate_and_save(
    request: GenerateAPIRequest,
    user: User = Depends(get_current_user),
    service: NewsletterService = Depends(get_newsletter_service),
) -> Response:
    """
    Generate a newsletter from curated articles, store it, and return the PDF.

    Takes as long as the generation service and the renderer take; the
    record only exists if both succeed.
    """
    try:
        newsletter = await service.generate(
            title=request.title,
            category=request.category,
            articles=request.articles,
            requested_by=user.id,
        )
    except Exception as e:
        raise_http_error(e, "generate newsletter")

    logger.info("Generated newsletter %s for user %s", newsletter.id, user.id)
    return pdf_response(newsletter)


@router.get("/{newsletter_id}/download")
async def download_newsletter(
    newsletter_id: str,
    service: NewsletterService = Depends(get_newsletter_service),
) -> Response:
    try:
        newsletter = await service.download(newsletter_id)
    except Exception as e:
        raise_http_error(e, "download newsletter")

    return pdf_response(newsletter)


@router.patch("/{newsletter_id}/status", response_model=NewsletterResponse)
async def update_newsletter_status(
    newsletter_id: str,
    request: StatusAPIRequest,
    service: NewsletterService = Depends(get_newsletter_service),
) -> NewsletterResponse:
    """Set status to any enumerated value (no transition check)."""
    try:
        newsletter = await service.update_status(newsletter_id, request.status)
    except Exception as e:
        raise_http_error(e, "update newsletter status")

    return NewsletterResponse.from_newsletter(newsletter)


@router.delete("/{newsletter_id}", response_model=MessageResponse)
async def delete_newsletter(
    newsletter_id: str,
    service: NewsletterService = Depends(get_newsletter_service),
) -> MessageResponse:
    try:
        await service.delete(newsletter_id)
    except Exception as e:
        raise_http_error(e, "delete newsletter")

    return MessageResponse(message="Newsletter deleted successfully.")


@router.post(
    "/{newsletter_id}/send",
    response_model=SendAPIResponse,
    response_model_exclude_none=True,
)
async def send_newsletter(
    newsletter_id: str,
    request: SendAPIRequest,
    service: NewsletterService = Depends(get_newsletter_service),
) -> SendAPIResponse:
    """
    Email the newsletter to the given users and mark it sent.

    Notification failures don't fail the request; they are reported with
    ``notifications_degraded: true``.
    """
    try:
        outcome = await service.send(newsletter_id, request.user_ids)
    except Exception as e:
        raise_http_error(e, "send newsletter")

    return SendAPIResponse(
        message=f"Newsletter successfully sent to {outcome.requested} user(s).",
        notifications_degraded=True if outcome.notifications_degraded else None,
    )
