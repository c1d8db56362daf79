"""
Prompt Management Module

Loads LLM prompt templates from the .txt files next to this module so the
layout rules can be tuned without touching code.
"""

from __future__ import annotations

import os
from pathlib import Path

PROMPTS_DIR = Path(__file__).parent

# Set NEWSLETTERAI_NEWSLETTER_PROMPT to try an alternate template file
NEWSLETTER_PROMPT_NAME = os.getenv("NEWSLETTERAI_NEWSLETTER_PROMPT", "newsletter_html")


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self, prompts_dir: Path = PROMPTS_DIR):
        self.prompts_dir = prompts_dir
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Load a prompt template from file.

        Args:
            prompt_name: Name of the prompt file (without .txt extension)

        Raises:
            FileNotFoundError: If the template does not exist
        """
        if prompt_name not in self._cache:
            prompt_path = self.prompts_dir / f"{prompt_name}.txt"

            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

            self._cache[prompt_name] = prompt_path.read_text(encoding="utf-8")

        return self._cache[prompt_name]

    def get_newsletter_prompt(self, **kwargs: str) -> str:
        """
        Get the newsletter HTML prompt with variables injected.

        Args:
            title: Newsletter title
            edition_date: Display date for the header
            edition_label: Edition/volume line
            pull_quote: Quote text (first article's summary)
            data_json: Serialized article data
        """
        template = self.load_prompt(NEWSLETTER_PROMPT_NAME)
        return template.format(**kwargs)

    def reload(self) -> None:
        """Clear cache and reload prompts from disk"""
        self._cache.clear()


_loader = PromptLoader()


def get_newsletter_prompt(**kwargs: str) -> str:
    """Get newsletter prompt (convenience function)"""
    return _loader.get_newsletter_prompt(**kwargs)


def reload_prompts() -> None:
    """Reload all prompts from disk (convenience function)"""
    _loader.reload()
