"""
NewsLetterAI newsletters module - generation pipeline and distribution workflow.

Curated articles go through prompt composition, the generation service, the
content validator and the PDF renderer before a Newsletter is stored; the
distribution workflow then emails it and tracks its status.
"""

from newsletterai.newsletters.models import (
    Artifact,
    ArticleSummary,
    Newsletter,
    NewsletterStatus,
    NewsletterSummary,
    SendOutcome,
)

__all__ = [
    # Models
    "Artifact",
    "ArticleSummary",
    "Newsletter",
    "NewsletterStatus",
    "NewsletterSummary",
    "SendOutcome",
]
