"""
Prompt composer for newsletter HTML synthesis.

Pure data transformation: the same articles, title, flyer and edition date
always produce the same prompt text. The edition date is an input (not read
from the clock here) so a composed prompt is reproducible.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from newsletterai.llm.prompts import get_newsletter_prompt
from newsletterai.newsletters.models import ArticleSummary

EDITION_LABEL = "Edition 1, Volume 1"


@dataclass(frozen=True)
class GenerationPrompt:
    """A fully composed request for the generation service."""

    text: str
    title: str
    article_count: int
    data: dict[str, Any] = field(default_factory=dict)


def format_edition_date(edition_date: date) -> str:
    """Medium date, e.g. ``Oct 16, 2026``."""
    return f"{edition_date:%b} {edition_date.day}, {edition_date.year}"


def serialize_articles(
    articles: list[ArticleSummary], flyer_image_url: str | None
) -> dict[str, Any]:
    return {
        "articles": [article.to_prompt_dict() for article in articles],
        "flyerImageUrl": flyer_image_url,
    }


def compose_prompt(
    articles: list[ArticleSummary],
    title: str,
    flyer_image_url: str | None,
    edition_date: date,
) -> GenerationPrompt:
    """
    Build the generation request.

    The layout rules (600px container, inline styles only, single-column
    article blocks, pull-quote from the first article's summary) live in the
    template; article data is appended as indented JSON.
    """
    data = serialize_articles(articles, flyer_image_url)
    pull_quote = articles[0].summary if articles else ""

    text = get_newsletter_prompt(
        title=title,
        edition_date=format_edition_date(edition_date),
        edition_label=EDITION_LABEL,
        pull_quote=pull_quote,
        data_json=json.dumps(data, indent=2, ensure_ascii=False),
    )

    return GenerationPrompt(text=text, title=title, article_count=len(articles), data=data)
