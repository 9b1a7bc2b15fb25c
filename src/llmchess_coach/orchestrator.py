"""
Turn orchestrator: the state machine that decides what happens after each position change.

States: idle → (awaiting_human_move | requesting_advice | requesting_bot_move) → terminal.

- A human drop is accepted only in awaiting_human_move; an applied move always leads to
  an advice request (commentary), which then routes to the bot's turn (vs AI) or back
  to the human.
- A bot turn picks its move from the advice for the current position (fetched unless
  the commentary just produced it), applies it and asks for fresh advice on the
  resulting position. No marker, an illegal token or a failed request hands the turn
  back to the human with a warning entry.
- Every background step runs on the one asyncio loop and carries the generation it
  was started under; starting or ending a match bumps the generation so late replies
  from the old match are ignored.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from .advisor import AdvisorGateway, error_text, warning_text
from .board_view import BoardView, RecordingBoardView
from .config import SETTINGS
from .errors import NoActiveContext
from .session import GameMode, GameSessionController, Side

log = logging.getLogger("orchestrator")

GAME_OVER_NOTICE = "The game is over. Start a new game to get more advice!"


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_HUMAN_MOVE = "awaiting_human_move"
    REQUESTING_ADVICE = "requesting_advice"
    REQUESTING_BOT_MOVE = "requesting_bot_move"
    TERMINAL = "terminal"


class TurnOrchestrator:
    def __init__(self, session: Optional[GameSessionController] = None, advisor: Optional[AdvisorGateway] = None,
                 board: Optional[BoardView] = None, bot_delay_s: Optional[float] = None,
                 advise_on_start: Optional[bool] = None):
        self.session = session or GameSessionController()
        self.advisor = advisor or AdvisorGateway()
        self.board = board or RecordingBoardView()
        self.bot_delay_s = SETTINGS.bot_move_delay_s if bot_delay_s is None else bot_delay_s
        self.advise_on_start = SETTINGS.advise_on_start if advise_on_start is None else advise_on_start
        self.state = TurnState.IDLE
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()

    # ---------------- Match lifecycle -----------------
    def start_match(self, mode: GameMode, human_side: Side) -> TurnState:
        """Begin a fresh match. Must be called on the event loop thread."""
        gen = self._next_generation()
        cfg = self.session.start_match(mode, human_side)
        self.board.set_orientation(cfg.human_side if cfg.mode == "pve" else "white")
        self._sync_board()
        if self.session.bot_to_move():
            self.state = TurnState.REQUESTING_BOT_MOVE
            self._spawn(self._bot_turn(gen), gen)
        elif self.advise_on_start:
            self.state = TurnState.REQUESTING_ADVICE
            self._spawn(self._advice_cycle(gen), gen)
        else:
            self.state = TurnState.AWAITING_HUMAN_MOVE
        return self.state

    def end_match(self) -> None:
        """New game: drop config and conversation now; in-flight replies become stale."""
        self._next_generation()
        self.session.end_match()
        self.board.reset()
        self.state = TurnState.IDLE
        log.info("Returned to idle")

    new_game = end_match

    def _next_generation(self) -> int:
        self._generation += 1
        self.advisor.reset()
        return self._generation

    def _is_current(self, gen: int) -> bool:
        return gen == self._generation

    # ---------------- Human input -----------------
    def handle_drop(self, from_square: str, to_square: str) -> str:
        """Board drop event. Returns "accept" or "snapback"."""
        if self.state != TurnState.AWAITING_HUMAN_MOVE or not self.session.active:
            return "snapback"
        if self.session.apply_human_move(from_square, to_square) != "applied":
            return "snapback"
        self._sync_board()
        gen = self._generation
        if self._check_terminal():
            return "accept"
        self.state = TurnState.REQUESTING_ADVICE
        self._spawn(self._advice_cycle(gen), gen)
        return "accept"

    def retry_bot_move(self) -> bool:
        """Ask the bot again after a failed bot turn left the move with the bot side."""
        if self.state != TurnState.AWAITING_HUMAN_MOVE or not self.session.active:
            return False
        if not self.session.bot_to_move():
            return False
        gen = self._generation
        self.state = TurnState.REQUESTING_BOT_MOVE
        self._spawn(self._bot_turn(gen, reuse_advice=False), gen)
        return True

    def submit_chat(self, text: str) -> None:
        """Queue a follow-up question; the human turn shows up immediately."""
        if not self.session.active or self.state in (TurnState.REQUESTING_ADVICE, TurnState.REQUESTING_BOT_MOVE):
            raise NoActiveContext("Chat is unavailable while the advisor is busy.")
        cycle = self.advisor.begin_follow_up(text)
        self._track(self._guarded_chat(self.advisor.finish_follow_up(text, cycle), cycle))

    async def send_chat(self, text: str):
        """Awaitable variant of submit_chat returning the advisor's turn."""
        if not self.session.active or self.state in (TurnState.REQUESTING_ADVICE, TurnState.REQUESTING_BOT_MOVE):
            raise NoActiveContext("Chat is unavailable while the advisor is busy.")
        return await self.advisor.send_follow_up(text)

    # ---------------- Background steps -----------------
    async def _advice_cycle(self, gen: int) -> None:
        if not self._is_current(gen):
            return
        ref = self.session.ref
        record = await self.advisor.request_advice(ref.fen(), ref.pgn(), ref.last_move_san())
        if record is None or not self._is_current(gen):
            log.debug("Advice for generation %d arrived late; ignored", gen)
            return
        await self._route_next(gen)

    async def _route_next(self, gen: int) -> None:
        if self._check_terminal():
            return
        if self.session.bot_to_move():
            self.state = TurnState.REQUESTING_BOT_MOVE
            await self._bot_turn(gen)
        else:
            self.state = TurnState.AWAITING_HUMAN_MOVE

    async def _bot_turn(self, gen: int, reuse_advice: bool = True) -> None:
        if self.bot_delay_s > 0:
            await asyncio.sleep(self.bot_delay_s)
        if not self._is_current(gen):
            return
        ref = self.session.ref
        fen = ref.fen()
        record = self.advisor.last_advice if reuse_advice else None
        if record is None or not record.ok or record.requested_for != fen:
            record = await self.advisor.request_advice(fen, ref.pgn(), ref.last_move_san(), publish=False)
            if record is None or not self._is_current(gen):
                log.debug("Bot advice for generation %d arrived late; ignored", gen)
                return
        if not record.ok:
            self.state = TurnState.AWAITING_HUMAN_MOVE
            return
        move = record.extracted_move
        if not move:
            log.warning("No best move in advice (%s)", record.extraction.get("reason"))
            self.advisor.post(warning_text("The advisor couldn't decide on a move. It's your turn."))
            self.state = TurnState.AWAITING_HUMAN_MOVE
            return
        san = self.session.apply_bot_move(move)
        if san is None:
            log.warning("Advisor suggested an illegal move: %s (fen=%s)", move, fen)
            self.advisor.post(warning_text(f"The advisor suggested an illegal move ({move}). It's still your turn."))
            self.state = TurnState.AWAITING_HUMAN_MOVE
            return
        self._sync_board()
        if self._check_terminal():
            return
        self.state = TurnState.REQUESTING_ADVICE
        await self._advice_cycle(gen)

    def _check_terminal(self) -> bool:
        if not self.session.is_terminal():
            return False
        self.state = TurnState.TERMINAL
        self.advisor.begin_cycle()
        self.advisor.post(GAME_OVER_NOTICE)
        log.info("Game over: %s", self.session.status())
        return True

    def _sync_board(self) -> None:
        self.board.set_position(self.session.ref.fen())

    # ---------------- Task plumbing -----------------
    def _spawn(self, coro, gen: int) -> asyncio.Task:
        return self._track(self._guarded(coro, gen))

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(self, coro, gen: int) -> None:
        try:
            await coro
        except Exception as exc:  # noqa: BLE001
            log.exception("Background step failed")
            if not self._is_current(gen) or not self.session.active:
                return
            self.advisor.post(error_text(exc), kind="error")
            self.state = TurnState.TERMINAL if self.session.is_terminal() else TurnState.AWAITING_HUMAN_MOVE

    async def _guarded_chat(self, coro, cycle: int) -> None:
        # Chat runs beside the turn flow; a failure here never moves the state machine.
        try:
            await coro
        except Exception as exc:  # noqa: BLE001
            log.exception("Follow-up failed")
            if self.advisor.is_current(cycle):
                self.advisor.post(error_text(exc), kind="error")

    async def drain(self) -> None:
        """Wait until no background step is pending (used by the console client and tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ---------------- Read model -----------------
    def snapshot(self) -> dict:
        ref = self.session.ref
        cfg = self.session.config
        advice = self.advisor.last_advice
        return {
            "state": self.state.value,
            "status": self.session.status(),
            "config": cfg.to_dict() if cfg else None,
            "board": self.board.to_dict() if hasattr(self.board, "to_dict") else None,
            "fen": ref.fen() if ref else None,
            "side_to_move": ref.side_to_move() if ref else None,
            "terminal_status": ref.terminal_status() if ref else None,
            "pgn": ref.pgn() if ref else "",
            "history": ref.move_history(verbose=True) if ref else [],
            "advice_in_flight": self.advisor.advice_in_flight,
            "chat_in_flight": self.advisor.chat_in_flight,
            "chat_available": self.advisor.context is not None and self.state not in (
                TurnState.REQUESTING_ADVICE, TurnState.REQUESTING_BOT_MOVE),
            "conversation": [t.to_dict() for t in self.advisor.turns],
            "last_advice": advice.to_dict() if advice else None,
        }
