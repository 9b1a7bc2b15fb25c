"""
Advice/Chat gateway.

- request_advice(): one "analyze this position" request per analysis cycle. On success it
  returns the narrative and opens a follow-up ChatContext seeded with the position and
  that narrative; on failure it returns a record carrying a warning-prefixed message.
  Transport errors never escape this boundary.
- send_follow_up(): continues the open context. The human turn is appended before the
  request goes out; the advisor reply (or an error entry) follows.
- Conversation turns belong to the current cycle. begin_cycle()/reset() clear them and
  bump the cycle counter so replies from an older cycle are dropped on arrival.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .errors import AdvisorError, ChatBusy, NoActiveContext
from .llm_client import ask_conversation
from .move_extractor import ExtractedMove, extract_best_move
from .prompting import PromptConfig, build_advice_messages, build_chat_seed

log = logging.getLogger("advisor")

WARNING_PREFIX = "⚠️"


def error_text(exc: Exception) -> str:
    return f"{WARNING_PREFIX} Advisor error: {exc}"


def warning_text(message: str) -> str:
    return f"{WARNING_PREFIX} {message}"


@dataclass
class ConversationTurn:
    speaker: str  # "human" | "advisor"
    text: str
    kind: str = "reply"  # advice | reply | question | notice | error

    def to_dict(self) -> Dict[str, str]:
        return {"speaker": self.speaker, "text": self.text, "kind": self.kind}


@dataclass
class AdviceRecord:
    """Outcome of one advice request for one position."""

    requested_for: str
    narrative: str
    ok: bool
    extraction: ExtractedMove = field(default_factory=dict)

    @property
    def extracted_move(self) -> Optional[str]:
        return self.extraction.get("move") if self.extraction.get("found") else None

    def to_dict(self) -> dict:
        return {
            "requested_for": self.requested_for,
            "narrative": self.narrative,
            "ok": self.ok,
            "extracted_move": self.extracted_move,
            "extraction": dict(self.extraction),
        }


class ChatContext:
    """Follow-up conversation scoped to one advice record."""

    def __init__(self, messages: List[Dict[str, str]], model: Optional[str] = None,
                 transport: Callable = ask_conversation):
        self.messages = list(messages)
        self.model = model
        self._transport = transport

    async def send(self, text: str) -> str:
        pending = self.messages + [{"role": "user", "content": text}]
        reply = await self._transport(pending, model=self.model)
        self.messages = pending + [{"role": "assistant", "content": reply}]
        return reply


class AdvisorGateway:
    def __init__(self, model: Optional[str] = None, prompt_cfg: Optional[PromptConfig] = None,
                 transport: Callable | None = None):
        self.model = model
        self.prompt_cfg = prompt_cfg or PromptConfig()
        # Resolved at call time so tests can patch the module-level ask_conversation
        self._transport = transport
        self.context: Optional[ChatContext] = None
        self.turns: List[ConversationTurn] = []
        self.last_advice: Optional[AdviceRecord] = None
        self.advice_in_flight = False
        self.chat_in_flight = False
        self._cycle = 0

    def _send(self, messages, model=None):
        return (self._transport or ask_conversation)(messages, model=model)

    # -- cycle lifecycle ---------------------------------------------------
    def begin_cycle(self) -> int:
        """Start a new analysis cycle: drop the old context, conversation and loading flags.

        Requests still pending from the old cycle no longer own the flags; they are
        dropped on arrival.
        """
        self._cycle += 1
        self.context = None
        self.turns = []
        self.advice_in_flight = False
        self.chat_in_flight = False
        return self._cycle

    def reset(self) -> None:
        self.begin_cycle()
        self.last_advice = None

    def is_current(self, cycle: int) -> bool:
        return cycle == self._cycle

    def post(self, text: str, kind: str = "notice") -> ConversationTurn:
        turn = ConversationTurn(speaker="advisor", text=text, kind=kind)
        self.turns.append(turn)
        return turn

    # -- advice -------------------------------------------------------------
    async def request_advice(self, fen: str, pgn: str, last_move: str, publish: bool = True) -> Optional[AdviceRecord]:
        """Ask for analysis of `fen`. Returns None when the cycle went stale mid-request.

        With publish=False (bot move selection) the narrative is not shown and no
        follow-up context is opened; failures are still posted.
        """
        cycle = self.begin_cycle()
        self.advice_in_flight = True
        messages = build_advice_messages(fen, pgn, last_move, self.prompt_cfg)
        try:
            narrative = await self._send(messages, model=self.model)
        except AdvisorError as exc:
            if not self.is_current(cycle):
                log.debug("Dropping stale advice failure (cycle %d)", cycle)
                return None
            log.warning("Advice request failed: %s", exc)
            record = AdviceRecord(requested_for=fen, narrative=error_text(exc), ok=False)
            self.post(record.narrative, kind="error")
            self.last_advice = record
            return record
        finally:
            if self.is_current(cycle):
                self.advice_in_flight = False
        if not self.is_current(cycle):
            log.debug("Dropping stale advice (cycle %d)", cycle)
            return None
        record = AdviceRecord(
            requested_for=fen,
            narrative=narrative,
            ok=True,
            extraction=extract_best_move(narrative),
        )
        self.last_advice = record
        if publish:
            self.turns.append(ConversationTurn(speaker="advisor", text=narrative, kind="advice"))
            self.context = ChatContext(build_chat_seed(fen, narrative, self.prompt_cfg), model=self.model,
                                       transport=self._send)
        return record

    # -- follow-up chat -------------------------------------------------------
    async def send_follow_up(self, text: str) -> Optional[ConversationTurn]:
        """Send a follow-up question. Returns the advisor's turn, or None if it went stale."""
        cycle = self.begin_follow_up(text)
        return await self.finish_follow_up(text, cycle)

    def begin_follow_up(self, text: str) -> int:
        """Validate and record the human turn; raises instead of queueing."""
        text = (text or "").strip()
        if not text:
            raise ValueError("message must not be empty")
        if self.context is None:
            raise NoActiveContext("No analysis to discuss yet.")
        if self.chat_in_flight:
            raise ChatBusy("A follow-up is already in flight.")
        self.turns.append(ConversationTurn(speaker="human", text=text, kind="question"))
        self.chat_in_flight = True
        return self._cycle

    async def finish_follow_up(self, text: str, cycle: int) -> Optional[ConversationTurn]:
        text = (text or "").strip()
        if not self.is_current(cycle):
            log.debug("Follow-up context closed before sending (cycle %d)", cycle)
            return None
        context = self.context
        try:
            reply = await context.send(text)
            turn = ConversationTurn(speaker="advisor", text=reply, kind="reply")
        except AdvisorError as exc:
            log.warning("Follow-up request failed: %s", exc)
            turn = ConversationTurn(speaker="advisor", text=error_text(exc), kind="error")
        finally:
            if self.is_current(cycle):
                self.chat_in_flight = False
        if not self.is_current(cycle):
            log.debug("Dropping stale follow-up reply (cycle %d)", cycle)
            return None
        self.turns.append(turn)
        return turn
