"""
Text utilities for narration.

Cleans post/comment text and splits it into narration units (pages) that are
each spoken as one audio clip and shown as one caption image.
"""

import html
import re

_URL_PATTERN = re.compile(r"https?://[^\s/$.?#].[^\s]*", re.IGNORECASE)
_MARKDOWN_LINK_PATTERN = re.compile(r"\[(.*?)\]\(.*?\)")
_EMOJI_PATTERN = re.compile(
    "["
    "\U0001F000-\U0001FAFF"  # pictographs, emoticons, transport, flags
    "\u2600-\u27BF"  # misc symbols and dingbats
    "\uFE0F\u200D"  # variation selector, zero-width joiner
    "]"
)
_WHITESPACE_PATTERN = re.compile(r"\s+")


def sanitize_post_content(text: str | None) -> str:
    """Clean post text for narration.

    Decodes HTML entities, removes links and emojis, and collapses whitespace.

    Args:
        text: Raw post or comment text.

    Returns:
        Sanitized text, or an empty string for empty input.
    """
    if not text or not text.strip():
        return ""

    sanitized = html.unescape(text)
    # Markdown links first, so the label survives and the URL is dropped
    sanitized = _MARKDOWN_LINK_PATTERN.sub(r"\1", sanitized)
    sanitized = _URL_PATTERN.sub("", sanitized)
    sanitized = _EMOJI_PATTERN.sub("", sanitized)
    return _WHITESPACE_PATTERN.sub(" ", sanitized).strip()


def paginate(text: str, max_chars_per_unit: int) -> list[str]:
    """Split text into narration units without breaking words.

    Words are joined with single spaces. A unit is emitted when adding the
    next word would make it longer than ``max_chars_per_unit``. A word that is
    longer than the limit on its own occupies a unit by itself.

    Args:
        text: Text to split.
        max_chars_per_unit: Maximum characters per unit.

    Returns:
        List of units; empty for empty or whitespace-only input.
    """
    if max_chars_per_unit < 1:
        raise ValueError(f"max_chars_per_unit must be positive, got {max_chars_per_unit}")

    units: list[str] = []
    current: list[str] = []
    current_length = 0

    for word in text.split():
        if current and current_length + 1 + len(word) > max_chars_per_unit:
            units.append(" ".join(current))
            current = []
            current_length = 0

        current_length += len(word) if not current else len(word) + 1
        current.append(word)

    if current:
        units.append(" ".join(current))

    return units


def sanitize_filename(name: str, max_length: int = 40) -> str:
    """Turn a title into a filesystem-safe file stem.

    Args:
        name: Title text.
        max_length: Maximum length of the stem.

    Returns:
        Stem containing only letters, digits, dashes and underscores.
    """
    clean = re.sub(r"[^\w\s-]", "", sanitize_post_content(name))
    clean = re.sub(r"\s+", "_", clean.strip())
    return clean[:max_length] or "video"
