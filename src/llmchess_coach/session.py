"""
Game session controller: match configuration plus the single Referee instance.

- SessionConfig is fixed once a match starts and dropped on new game.
- apply_human_move() is the only path for human input into the rules engine; it
  guards on terminal state and, against the AI, on whose turn it is.
- status() renders exactly one label (checkmate > draw > game over > check > turn).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from .errors import MatchNotStarted
from .referee import Referee

log = logging.getLogger("session")

GameMode = Literal["pve", "pvp"]
Side = Literal["white", "black"]

IDLE_STATUS = "Ready to start a new game."


@dataclass(frozen=True)
class SessionConfig:
    mode: GameMode
    human_side: Side

    @property
    def ai_side(self) -> Optional[Side]:
        if self.mode != "pve":
            return None
        return "black" if self.human_side == "white" else "white"

    def to_dict(self) -> dict:
        return {"mode": self.mode, "human_side": self.human_side, "ai_side": self.ai_side}


def parse_mode(value: str | None) -> GameMode:
    v = str(value or "pve").lower().replace("_", "-")
    if v in ("pve", "human-vs-ai", "ai"):
        return "pve"
    if v in ("pvp", "human-vs-human", "human"):
        return "pvp"
    raise ValueError(f"unknown mode '{value}'")


def parse_side(value: str | None) -> Side:
    v = str(value or "white").lower()
    if v in ("white", "w", "first"):
        return "white"
    if v in ("black", "b", "second"):
        return "black"
    raise ValueError(f"unknown side '{value}'")


class GameSessionController:
    def __init__(self, referee_factory: Callable[[], Referee] = Referee):
        self._referee_factory = referee_factory
        self.config: Optional[SessionConfig] = None
        self.ref: Optional[Referee] = None

    # ---------------- Lifecycle -----------------
    def start_match(self, mode: GameMode, human_side: Side) -> SessionConfig:
        self.config = SessionConfig(mode=mode, human_side=human_side)
        self.ref = self._referee_factory()
        human, bot = "Human", "Coach AI"
        if mode == "pvp":
            self.ref.set_headers(white=human, black=human)
        elif human_side == "white":
            self.ref.set_headers(white=human, black=bot)
        else:
            self.ref.set_headers(white=bot, black=human)
        log.info("Match started mode=%s human_side=%s", mode, human_side)
        return self.config

    def end_match(self) -> None:
        if self.config is not None:
            log.info("Match ended mode=%s plies=%d", self.config.mode, len(self.ref.board.move_stack))
        self.config = None
        self.ref = None

    @property
    def active(self) -> bool:
        return self.config is not None

    def _require(self) -> Referee:
        if self.ref is None or self.config is None:
            raise MatchNotStarted("No match in progress.")
        return self.ref

    # ---------------- Turn helpers -----------------
    def is_terminal(self) -> bool:
        return self.ref is not None and self.ref.is_game_over()

    def human_to_move(self) -> bool:
        ref = self._require()
        if self.config.mode == "pvp":
            return True
        return ref.side_to_move() == self.config.human_side

    def bot_to_move(self) -> bool:
        ref = self._require()
        return self.config.mode == "pve" and ref.side_to_move() == self.config.ai_side

    # ---------------- Moves -----------------
    def apply_human_move(self, from_square: str, to_square: str) -> str:
        """Returns "applied" or "rejected"; a rejection never touches the board."""
        ref = self._require()
        if ref.is_game_over():
            return "rejected"
        if not self.human_to_move():
            return "rejected"
        san = ref.apply_move(from_square, to_square, promotion="q")
        if san is None:
            log.debug("Rejected human move %s-%s", from_square, to_square)
            return "rejected"
        log.info("Human played %s", san)
        return "applied"

    def apply_bot_move(self, token: str) -> Optional[str]:
        """Apply an advisor-proposed token for the bot side. Returns SAN or None if illegal."""
        ref = self._require()
        if not self.bot_to_move() or ref.is_game_over():
            return None
        san = ref.apply_san(token)
        if san:
            log.info("Bot played %s", san)
        return san

    # ---------------- Status -----------------
    def status(self) -> str:
        if self.ref is None:
            return IDLE_STATUS
        ref = self.ref
        turn = "White to move" if ref.side_to_move() == "white" else "Black to move"
        if ref.is_checkmate():
            winner = "Black" if ref.side_to_move() == "white" else "White"
            return f"Checkmate! {winner} wins."
        if ref.is_draw():
            return "Draw!"
        if ref.is_game_over():
            return "Game over."
        if ref.is_check():
            return f"{turn} - Check!"
        return turn
