"""Prompt Registry - Load prompts from external files.

Prompts ship as Markdown files inside this package and use
{variable_name} placeholders, filled in a single pass.

Usage:
    from aicademy.prompts.registry import get_prompt

    prompt = get_prompt(
        "tutor/system_prompt",
        student_name="Ana",
        module_title="Introduction to Programming",
    )
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

# Prompt files are package data next to this module
PROMPTS_DIR = Path(__file__).parent

PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _get_prompt_uncached(key: str) -> str:
    """Load raw prompt from file without caching.

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    file_path = PROMPTS_DIR / f"{key}.md"
    if not file_path.exists():
        raise FileNotFoundError(f"Prompt not found: {key} (looked at {file_path})")

    return file_path.read_text(encoding="utf-8")


@lru_cache(maxsize=64)
def _get_cached_prompt(key: str) -> str:
    return _get_prompt_uncached(key)


def get_prompt(key: str, use_cache: bool = True, **variables: str) -> str:
    """Load prompt from file and substitute variables.

    Placeholders without a matching variable are left as they are.

    Args:
        key: Path-like key, e.g., "tutor/system_prompt"
        use_cache: Whether to use cached version (default True)
        **variables: Variables to substitute, e.g., student_name="Ana"

    Returns:
        Prompt string with variables substituted

    Raises:
        FileNotFoundError: If prompt file doesn't exist
    """
    if use_cache:
        content = _get_cached_prompt(key)
    else:
        content = _get_prompt_uncached(key)

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        return str(variables[name]) if name in variables else match.group(0)

    return PLACEHOLDER.sub(_substitute, content)


def list_prompts() -> list[str]:
    """List all available prompt keys, e.g. ["tutor/system_prompt"]."""
    if not PROMPTS_DIR.exists():
        logger.warning("prompts_dir_not_found", path=str(PROMPTS_DIR))
        return []

    prompts = []
    for path in PROMPTS_DIR.rglob("*.md"):
        key = str(path.relative_to(PROMPTS_DIR)).replace(".md", "").replace("\\", "/")
        prompts.append(key)
    return sorted(prompts)


def clear_cache() -> None:
    """Clear the prompt cache."""
    _get_cached_prompt.cache_clear()
