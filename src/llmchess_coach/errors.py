"""Exception types raised across the coach package."""
from __future__ import annotations


class CoachError(Exception):
    """Base class for coach errors surfaced to callers."""


class AdvisorError(CoachError):
    """The LLM request failed, returned nothing, or no credential is configured."""


class NoActiveContext(CoachError):
    """A follow-up was sent without an open conversational context."""


class ChatBusy(CoachError):
    """A follow-up was sent while another one is still in flight."""


class MatchNotStarted(CoachError):
    """An operation needs a running match but none is configured."""
