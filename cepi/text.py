"""Word counting and word-limit enforcement for agent output."""

import re
from dataclasses import dataclass
from typing import Optional

_MARKDOWN_RULES = [
    (re.compile(r"#{1,6}\s"), ""),                   # headers
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),           # bold
    (re.compile(r"\*(.*?)\*"), r"\1"),               # italic
    (re.compile(r"`(.*?)`"), r"\1"),                 # inline code
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),   # links, keep text
    (re.compile(r"^\s*[-*+]\s", re.MULTILINE), ""),  # bullets
    (re.compile(r"^\s*\d+\.\s", re.MULTILINE), ""),  # numbered lists
    (re.compile(r">\s"), ""),                        # blockquotes
    (re.compile(r"\n+"), " "),
]

_WORD = re.compile(r"\S+")

ELLIPSIS = "..."


def strip_markdown(text: str) -> str:
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def count_words(text: Optional[str]) -> int:
    """Count words after removing markdown syntax."""
    if not text or not isinstance(text, str):
        return 0
    return len(strip_markdown(text).split())


@dataclass(slots=True)
class WordLimitCheck:
    is_valid: bool
    word_count: int
    max_words: int
    message: Optional[str] = None


def validate_word_limit(text: str, max_words: int = 250) -> WordLimitCheck:
    word_count = count_words(text)
    is_valid = word_count <= max_words
    return WordLimitCheck(
        is_valid=is_valid,
        word_count=word_count,
        max_words=max_words,
        message=None if is_valid else f"Text exceeds word limit: {word_count}/{max_words} words",
    )


def truncate_to_word_limit(text: str, max_words: int = 250) -> str:
    """Cut text down to at most ``max_words`` words.

    The result is always a prefix of ``text`` plus an optional trailing
    ellipsis. If a sentence ends within the last 20% of the kept span the
    cut lands there, otherwise it is a hard cut after the last whole word.
    """
    if not text or validate_word_limit(text, max_words).is_valid:
        return text or ""
    if max_words <= 0:
        return ELLIPSIS

    words = list(_WORD.finditer(text))
    end = words[max_words - 1].end() if len(words) >= max_words else len(text)
    truncated = text[:end]

    last_sentence_end = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    if last_sentence_end > len(truncated) * 0.8:
        truncated = truncated[:last_sentence_end + 1]

    if len(truncated) < len(text.rstrip()):
        return truncated + ELLIPSIS
    return truncated


def format_word_count(text: str, max_words: int = 250) -> str:
    word_count = count_words(text)
    percentage = round(word_count / max_words * 100) if max_words else 0
    if word_count <= max_words:
        return f"{word_count}/{max_words} words ({percentage}%)"
    return f"{word_count}/{max_words} words ({percentage}% - OVER LIMIT)"
