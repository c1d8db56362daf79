"""NewsLetterAI - Generate branded newsletters from curated articles and email them"""

from __future__ import annotations

__version__ = "1.0.0"


def __getattr__(name: str):
    """
    Lazy imports to avoid loading pydantic and friends when only importing lightweight modules.
    """
    if name in ("Newsletter", "NewsletterStatus"):
        from newsletterai.newsletters import models

        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
