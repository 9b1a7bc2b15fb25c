"""
Board display capability.

The orchestrator never renders anything itself; it tells a BoardView when the
displayed position must re-sync with the Referee. Two views ship with the package:
RecordingBoardView (state for polling HTTP clients) and TerminalBoardView (console).
"""
from __future__ import annotations

import chess

START_FEN = chess.STARTING_FEN


class BoardView:
    """Interface: implementations display whatever position they are told to."""

    def set_position(self, fen: str) -> None:
        raise NotImplementedError

    def set_orientation(self, side: str) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        self.set_position(START_FEN)
        self.set_orientation("white")


class RecordingBoardView(BoardView):
    """Keeps the last position and a revision counter clients compare to re-sync."""

    def __init__(self):
        self.fen = START_FEN
        self.orientation = "white"
        self.revision = 0

    def set_position(self, fen: str) -> None:
        self.fen = fen
        self.revision += 1

    def set_orientation(self, side: str) -> None:
        self.orientation = side

    def to_dict(self) -> dict:
        return {"fen": self.fen, "orientation": self.orientation, "revision": self.revision}


class TerminalBoardView(BoardView):
    """Prints the board from the human's side whenever the position changes."""

    def __init__(self, unicode: bool = False, out=print):
        self.unicode = unicode
        self.orientation = "white"
        self._out = out
        self._last_fen: str | None = None

    def set_position(self, fen: str) -> None:
        if fen == self._last_fen:
            return
        self._last_fen = fen
        board = chess.Board(fen)
        if self.unicode:
            text = board.unicode(orientation=self.orientation == "white", empty_square=".")
        else:
            text = str(board if self.orientation == "white" else board.transform(chess.flip_vertical).transform(chess.flip_horizontal))
        self._out("\n" + text + "\n")

    def set_orientation(self, side: str) -> None:
        self.orientation = side

    def reset(self) -> None:
        self._last_fen = None
        self.orientation = "white"
