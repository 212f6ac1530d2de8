from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ..models.collaborator import Collaborator

"""Collaborator resolver: free-text assignee cell -> project member.

Ordered cascade, first match wins (no scoring):
1. exact email (case-insensitive), only when the text contains "@"
2. exact display name (case-insensitive)
3. initials ("JD", "ALG"): 2-4 letters equal to exactly one member's initials
4. partial name: whole-string substring either way, then token substrings
   (input tokens of 3+ characters)

Matching is heuristic and may produce false positives; an unresolved value is
not an error, the caller keeps the original text.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "initials",
    "resolve_collaborator",
]

_TOKEN_SPLIT = re.compile(r"[\s.\-]+")
_NON_LETTERS = re.compile(r"[^A-Z]")
MIN_TOKEN_LENGTH = 3


def initials(name: str) -> str:
    """First letter of each whitespace/period/hyphen separated token, upper-cased."""
    return "".join(part[0].upper() for part in _TOKEN_SPLIT.split(name.strip()) if part)


def _tokens(text: str) -> list[str]:
    return [t for t in _TOKEN_SPLIT.split(text) if t]


def _by_email(needle: str, directory: Sequence[Collaborator]) -> Collaborator | None:
    for collab in directory:
        if collab.email and collab.email.strip().lower() == needle:
            return collab
    return None


def _by_name(needle: str, directory: Sequence[Collaborator]) -> Collaborator | None:
    for collab in directory:
        if collab.display_name and collab.display_name.strip().lower() == needle:
            return collab
    return None


def _by_initials(text: str, directory: Sequence[Collaborator]) -> Collaborator | None:
    wanted = _NON_LETTERS.sub("", text.upper())
    if not 2 <= len(wanted) <= 4:
        return None
    hits = [c for c in directory if c.display_name and initials(c.display_name) == wanted]
    if len(hits) == 1:
        return hits[0]
    if len(hits) > 1:
        logger.debug(f"initials {wanted!r} are ambiguous ({len(hits)} members), not resolved")
    return None


def _by_partial(needle: str, directory: Sequence[Collaborator]) -> Collaborator | None:
    search_tokens = [t for t in _tokens(needle) if len(t) >= MIN_TOKEN_LENGTH]
    for collab in directory:
        name = (collab.display_name or "").strip().lower()
        if not name:
            continue
        if needle in name or name in needle:
            return collab
        name_tokens = _tokens(name)
        for token in search_tokens:
            for part in name_tokens:
                if token in part or part in token:
                    return collab
    return None


def resolve_collaborator(text: str | None, directory: Sequence[Collaborator]) -> Collaborator | None:
    """Best matching directory entry for ``text``, or None."""
    raw = (text or "").strip()
    if not raw or not directory:
        return None
    needle = raw.lower()

    if "@" in needle:
        found = _by_email(needle, directory)
        if found is not None:
            return found

    found = _by_name(needle, directory)
    if found is None:
        found = _by_initials(raw, directory)
    if found is None:
        found = _by_partial(needle, directory)
    if found is None:
        logger.debug(f"assignee {raw!r} did not resolve to a collaborator")
    return found
