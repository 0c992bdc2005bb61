"""Level and category filtering for log targets."""

from __future__ import annotations

from typing import Iterable, Protocol, Tuple

from .errors import ConfigurationError
from .message import Level, Message

WILDCARD = "*"


class Filterable(Protocol):
    """Filter settings a target exposes to the predicate."""

    levels: frozenset
    categories: Tuple[str, ...]
    except_: Tuple[str, ...]


def validate_patterns(patterns: Iterable[str], *, field: str = "categories") -> Tuple[str, ...]:
    """Validate category patterns and return them as a tuple.

    A pattern is either an exact category or a prefix followed by a single
    trailing ``*``.
    """

    validated = []

    for pattern in patterns:
        if not isinstance(pattern, str):
            raise ConfigurationError(f"{field} pattern must be a string, got {pattern!r}")

        candidate = pattern.strip()

        if not candidate:
            raise ConfigurationError(f"{field} pattern must not be empty")

        if WILDCARD in candidate[:-1]:
            raise ConfigurationError(
                f"{field} pattern {pattern!r} may only use '*' as its last character"
            )

        validated.append(candidate)

    return tuple(validated)


def parse_levels(levels: Iterable["Level | str"]) -> frozenset:
    """Resolve level names into a frozenset of :class:`Level`."""

    return frozenset(Level.parse(level) for level in levels)


def category_matches(category: str, pattern: str) -> bool:
    """Exact match, or prefix match when the pattern ends with ``*``."""

    if pattern.endswith(WILDCARD):
        return category.startswith(pattern[:-1])

    return category == pattern


def matches_any(category: str, patterns: Iterable[str]) -> bool:
    return any(category_matches(category, pattern) for pattern in patterns)


def matches(message: Message, target: Filterable) -> bool:
    """Return whether ``target`` accepts ``message``.

    Empty level and category filters accept everything. Exclusion patterns
    always override inclusion patterns.
    """

    if target.levels and message.level not in target.levels:
        return False

    if target.categories and not matches_any(message.category, target.categories):
        return False

    if target.except_ and matches_any(message.category, target.except_):
        return False

    return True


def filter_messages(messages: Iterable[Message], target: Filterable) -> list:
    """Return the messages ``target`` accepts, in their original order."""

    return [message for message in messages if matches(message, target)]
