"""
Best-move extraction from the coach's advice text.

The advice prompt asks for a reply shaped like:

    **Best Move:** Nf3

    **Reasoning:** ...

extract_best_move() looks for the "Best Move:" marker (case-insensitive, markdown bold
around the marker tolerated), skips spaces/tabs on the same line and takes the next
contiguous non-whitespace token. It never guesses: without the marker, or with nothing
but whitespace after it, the result is not-found. Legality is left to the Referee.
"""
from __future__ import annotations

import re
from typing import TypedDict

BEST_MOVE_RE = re.compile(r"best[ \t]+move[ \t]*:(?:\*\*|__)?[ \t]*(\S+)", re.I)
_WRAPPERS = "*_`\"'"
_TRAILING = ".,;:"


class ExtractedMove(TypedDict, total=False):
    found: bool
    move: str
    reason: str


def _clean_token(token: str) -> str:
    """Drop markdown emphasis/quotes around the token and trailing sentence punctuation."""
    token = token.strip(_WRAPPERS)
    token = token.rstrip(_TRAILING)
    return token.strip(_WRAPPERS)


def extract_best_move(text: str | None) -> ExtractedMove:
    """Return {"found": True, "move": token} or {"found": False, "reason": ...}."""
    if not text:
        return {"found": False, "reason": "empty_reply"}
    match = BEST_MOVE_RE.search(text)
    if not match:
        return {"found": False, "reason": "no_marker"}
    token = _clean_token(match.group(1))
    if not token:
        return {"found": False, "reason": "empty_token"}
    return {"found": True, "move": token}


__all__ = ["extract_best_move", "ExtractedMove", "BEST_MOVE_RE"]
