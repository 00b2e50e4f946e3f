"""
Centralized status detection patterns.

This module contains the pattern lists used by the status classifier to
identify an agent's current state, and the matcher that evaluates them.

Patterns are regular expression fragments matched case-insensitively with
re.search. A fragment that does not compile (e.g. "(y/n" from a hand-written
config) is matched as a literal substring instead, so one bad pattern never
aborts classification.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class CompiledPattern:
    """A configured pattern, compiled as a regex or degraded to a literal.

    Attributes:
        source: The pattern text as configured
        is_literal: True when the source failed to compile as a regex
    """

    __slots__ = ("source", "is_literal", "_regex", "_needle")

    def __init__(self, source: str):
        self.source = source
        self._needle = source.lower()
        try:
            self._regex = re.compile(source, re.IGNORECASE)
            self.is_literal = False
        except re.error as e:
            logger.debug("Pattern %r is not a valid regex (%s), matching literally", source, e)
            self._regex = None
            self.is_literal = True

    def search(self, text: str) -> bool:
        """Return True if the pattern occurs anywhere in text."""
        if self._regex is not None:
            return self._regex.search(text) is not None
        return self._needle in text.lower()

    def __repr__(self) -> str:
        kind = "literal" if self.is_literal else "regex"
        return f"CompiledPattern({self.source!r}, {kind})"


@lru_cache(maxsize=256)
def _compile_tuple(patterns: Tuple[str, ...]) -> Tuple[CompiledPattern, ...]:
    return tuple(CompiledPattern(p) for p in patterns)


def compile_patterns(patterns: Iterable[str]) -> Tuple[CompiledPattern, ...]:
    """Compile a pattern list, reusing earlier compilations of the same list."""
    return _compile_tuple(tuple(patterns))


def matches_any(text: str, patterns: Sequence[CompiledPattern]) -> bool:
    """Check if text matches any of the compiled patterns."""
    return any(p.search(text) for p in patterns)


def find_matching_pattern(text: str, patterns: Sequence[CompiledPattern]) -> Optional[str]:
    """Return the source of the first pattern found in text, or None."""
    for pattern in patterns:
        if pattern.search(text):
            return pattern.source
    return None


# Braille spinner frames used by most Node-based CLIs
_BRAILLE_SPINNER = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]


@dataclass(frozen=True)
class StatusPatterns:
    """Default pattern lists, one per status category.

    All patterns are case-insensitive.
    """

    # Busy indicators - checked against the last working_lines lines only,
    # so a spinner that scrolled up does not keep the agent "working".
    working: Tuple[str, ...] = field(default_factory=lambda: (
        "esc to interrupt",
        "esc interrupt",
        "thinking",
        "pondering",
        "processing",
        "analyzing",
        "generating",
        "writing",
        "reading",
        "searching",
        "delegating work",
        "planning next steps",
        "gathering context",
        "making edits",
        "running commands",
        "gathering thoughts",
        "considering next steps",
        *_BRAILLE_SPINNER,
        # Progress bar blocks
        "█", "■", "▮", "▪", "▰",
        # Claude Code thinking glyphs
        "✻", "✽", "✶", "✳", "✢",
    ))

    # Prompts needing a decision from the user. Outrank working.
    # Note: no bare "permission" or "deny" - both show up in status bars.
    waiting: Tuple[str, ...] = field(default_factory=lambda: (
        "esc to cancel",
        "yes, allow once",
        "yes, allow always",
        "no, and tell",
        "do you trust",
        "run this command",
        "execute this",
        r"continue\?",
        r"proceed\?",
        r"\(y/n\)",
        r"\[y/n\]",
        "approve this plan",
        "do you want to proceed",
        "press enter to continue",
    ))

    # Ready-prompt lines, matched per trimmed line within the last idle_lines.
    # The bare ">" prompt is always recognized in addition to these.
    idle: Tuple[str, ...] = field(default_factory=lambda: (
        r"^>\s*$",
        "ask anything",
    ))

    def for_category(self, category: str) -> Tuple[str, ...]:
        return getattr(self, category)


# Default patterns instance
DEFAULT_PATTERNS = StatusPatterns()


def get_patterns() -> StatusPatterns:
    """Get the default status detection patterns."""
    return DEFAULT_PATTERNS


def merge_patterns(
    overrides: Optional[Mapping[str, Sequence[str]]],
    base: StatusPatterns = None,
) -> StatusPatterns:
    """Apply per-category overrides on top of base patterns.

    Each category present in overrides replaces the base list for that
    category; missing categories keep the base list.
    """
    base = base or DEFAULT_PATTERNS
    if not overrides:
        return base
    return StatusPatterns(**{
        category: tuple(overrides[category]) if category in overrides else base.for_category(category)
        for category in ("working", "waiting", "idle")
    })


def patterns_for_agent(agent) -> StatusPatterns:
    """Status patterns for an agent descriptor, with its overrides applied."""
    return merge_patterns(getattr(agent, "status_patterns", None))


_BARE_PROMPT = re.compile(r"^>(\s.*)?$")


def is_prompt_line(line: str) -> bool:
    """Check if a line is the agent's ready prompt.

    Matches ">" alone, or ">" followed by whitespace and optional text
    (e.g. "> Try something...") once surrounding whitespace is trimmed.
    """
    return _BARE_PROMPT.match(line.strip()) is not None


def is_idle_line(line: str, idle_patterns: Sequence[CompiledPattern]) -> bool:
    """Check if a trimmed line is a prompt or matches an idle pattern."""
    trimmed = line.strip()
    return is_prompt_line(trimmed) or matches_any(trimmed, idle_patterns)
