"""Tests for the prompt composer"""

from __future__ import annotations

import json
from datetime import date

from newsletterai.newsletters.models import ArticleSummary
from newsletterai.newsletters.prompt import (
    EDITION_LABEL,
    compose_prompt,
    format_edition_date,
    serialize_articles,
)


def _articles():
    return [
        ArticleSummary.model_validate(
            {
                "_id": "a1",
                "title": "Chips get smaller",
                "summary": "Transistors keep shrinking.",
                "sourceName": "Wired",
                "category": "Tech",
                "originalUrl": "https://example.com/chips",
                "imageUrl": "https://example.com/chips.png",
            }
        ),
        ArticleSummary.model_validate(
            {
                "title": "Robots learn to fold laundry",
                "summary": "Finally.",
                "sourceName": "Verge",
                "originalUrl": "https://example.com/robots",
            }
        ),
    ]


def test_format_edition_date():
    assert format_edition_date(date(2026, 10, 16)) == "Oct 16, 2026"
    assert format_edition_date(date(2026, 3, 5)) == "Mar 5, 2026"


def test_compose_prompt_is_deterministic():
    edition = date(2026, 10, 16)
    first = compose_prompt(_articles(), "Weekly Digest", "https://cdn/flyer.png", edition)
    second = compose_prompt(_articles(), "Weekly Digest", "https://cdn/flyer.png", edition)

    assert first == second
    assert first.text == second.text


def test_compose_prompt_contains_header_and_layout_rules():
    prompt = compose_prompt(_articles(), "Weekly Digest", None, date(2026, 10, 16))

    assert "Weekly Digest" in prompt.text
    assert "Oct 16, 2026" in prompt.text
    assert EDITION_LABEL in prompt.text
    assert "600px" in prompt.text
    assert "<!DOCTYPE html>" in prompt.text
    assert prompt.article_count == 2


def test_pull_quote_comes_from_first_article_summary():
    prompt = compose_prompt(_articles(), "Weekly Digest", None, date(2026, 10, 16))

    assert "Transistors keep shrinking." in prompt.text


def test_article_data_is_embedded_as_json():
    prompt = compose_prompt(_articles(), "Weekly Digest", "https://cdn/flyer.png", date(2026, 10, 16))

    embedded = json.dumps(prompt.data, indent=2, ensure_ascii=False)
    assert embedded in prompt.text
    assert prompt.data["flyerImageUrl"] == "https://cdn/flyer.png"
    assert [a["title"] for a in prompt.data["articles"]] == [
        "Chips get smaller",
        "Robots learn to fold laundry",
    ]


def test_serialize_articles_uses_client_field_names():
    data = serialize_articles(_articles()[:1], None)

    assert data == {
        "articles": [
            {
                "title": "Chips get smaller",
                "summary": "Transistors keep shrinking.",
                "source": "Wired",
                "category": "Tech",
                "originalUrl": "https://example.com/chips",
                "imageUrl": "https://example.com/chips.png",
            }
        ],
        "flyerImageUrl": None,
    }


def test_article_order_is_preserved():
    articles = list(reversed(_articles()))
    prompt = compose_prompt(articles, "Digest", None, date(2026, 1, 1))

    assert prompt.text.index("Robots learn to fold laundry") < prompt.text.index("Chips get smaller")
