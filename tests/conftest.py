"""
Pytest configuration for NewsLetterAI tests

Every test gets its own sqlite database; generation, rendering and delivery
are replaced by in-process fakes.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Before any newsletterai import: the API module initialises the database and
# the admin key on import.
os.environ.setdefault(
    "NEWSLETTERAI_DB_PATH", str(Path(tempfile.mkdtemp(prefix="newsletterai-tests-")) / "import.db")
)
os.environ.pop("NEWSLETTERAI_ADMIN_API_KEY", None)

import pytest  # noqa: E402

from newsletterai.distribution.dispatcher import Dispatcher  # noqa: E402
from newsletterai.distribution.mailer import EmailMessage  # noqa: E402
from newsletterai.infrastructure.database import close_pools, init_database  # noqa: E402
from newsletterai.newsletters.errors import RenderError  # noqa: E402
from newsletterai.newsletters.models import Artifact  # noqa: E402
from newsletterai.newsletters.service import NewsletterService  # noqa: E402
from newsletterai.observability import telemetry  # noqa: E402
from newsletterai.users.models import Category, User  # noqa: E402
from newsletterai.users.repository import CategoryRepository, UserRepository  # noqa: E402

VALID_MARKUP = (
    "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\"></head>"
    "<body><div style=\"width:600px;margin:0 auto;font-family:Georgia,serif\">"
    "<h1 style=\"font-size:32px\">Weekly Digest</h1>"
    "<p style=\"color:#555\">X</p></div></body></html>"
)

FAKE_PDF = b"%PDF-1.7\n% fake newsletter artifact\n%%EOF\n"


class FakeGenerator:
    """TextGenerator returning a canned response (or raising)."""

    def __init__(self, response: str = VALID_MARKUP, error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


class FakeRenderer:
    """ArtifactRenderer returning fixed bytes (or raising)."""

    def __init__(self, data: bytes = FAKE_PDF, error: Exception | None = None):
        self.data = data
        self.error = error
        self.rendered: list[str] = []

    async def render(self, markup: str) -> Artifact:
        self.rendered.append(markup)
        if self.error:
            raise self.error
        return Artifact(data=self.data, media_type="application/pdf")


class FakeProvider:
    """DeliveryProvider recording every delivery."""

    def __init__(self, configured: bool = True, error: Exception | None = None):
        self.configured = configured
        self.error = error
        self.deliveries: list[tuple[EmailMessage, list[str]]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def deliver(self, message: EmailMessage, addresses: list[str]) -> int:
        if self.error:
            raise self.error
        self.deliveries.append((message, list(addresses)))
        return len(addresses)


@pytest.fixture(autouse=True)
def _reset_telemetry():
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh initialised database for one test."""
    db_path = tmp_path / "newsletterai.db"
    monkeypatch.setenv("NEWSLETTERAI_DB_PATH", str(db_path))
    close_pools()
    init_database()
    yield db_path
    close_pools()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def service(temp_db, generator, renderer, provider):
    return NewsletterService(
        generator=generator,
        renderer=renderer,
        dispatcher=Dispatcher(provider=provider),
        send_policy="override",
    )


@pytest.fixture
def users(temp_db):
    """Three subscribers plus an editor managing Tech."""
    saved = [
        UserRepository.save(User(id="u1", email="ada@example.com", name="Ada")),
        UserRepository.save(User(id="u2", email="grace@example.com", name="Grace")),
        UserRepository.save(User(id="u3", email="linus@example.com", name="Linus")),
        UserRepository.save(
            User(id="editor", email="editor@example.com", name="Editor", categories=["Tech"])
        ),
    ]
    CategoryRepository.upsert(
        Category(name="Tech", keywords=["ai"], flyer_image_url="https://cdn.example.com/tech.png")
    )
    return {user.id: user for user in saved}


@pytest.fixture
def article():
    return {
        "_id": "a1",
        "title": "X",
        "summary": "Y",
        "sourceName": "Z",
        "originalUrl": "http://example.com/x",
    }


@pytest.fixture
def failing_renderer():
    return FakeRenderer(error=RenderError("chrome crashed"))
