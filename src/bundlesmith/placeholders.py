"""Placeholder sentinels written by the scaffolder.

Every value the scaffolder cannot know (description, author details) is
written as an explicit sentinel so validation can tell "never filled in"
apart from "legitimately empty". Detection is exact or prefix match against
a closed set of tokens, never a free substring search.
"""

from collections.abc import Iterable
from enum import Enum


class PlaceholderToken(str, Enum):
    """Recognized placeholder sentinels."""

    TODO = "TODO"
    FIXME = "FIXME"
    TBD = "TBD"
    CHANGE_ME = "CHANGEME"

    def matches(self, value: str) -> bool:
        """Return True if value is this token or starts with ``<token>:``."""
        text = value.strip()
        return text == self.value or text.startswith(f"{self.value}:")


def placeholder_text(token: PlaceholderToken, hint: str) -> str:
    """Build a placeholder value such as ``TODO: Add your name``."""
    return f"{token.value}: {hint}"


def find_placeholder(
    value: object, extra_tokens: Iterable[str] = ()
) -> PlaceholderToken | str | None:
    """Return the sentinel a value carries, or None.

    Args:
        value: Field value read from a manifest or descriptor. Non-strings
            never carry placeholders.
        extra_tokens: Additional project-specific sentinels from config,
            matched with the same exact-or-prefix rule.
    """
    if not isinstance(value, str):
        return None

    for token in PlaceholderToken:
        if token.matches(value):
            return token

    text = value.strip()
    for extra in extra_tokens:
        if text == extra or text.startswith(f"{extra}:"):
            return extra

    return None


def is_placeholder(value: object, extra_tokens: Iterable[str] = ()) -> bool:
    return find_placeholder(value, extra_tokens) is not None
