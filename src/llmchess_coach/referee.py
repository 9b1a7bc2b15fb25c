"""
Referee: the rules-engine adapter around a python-chess Board.

- Applies human drops (from/to squares with implicit queen promotion) and advisor
  tokens (SAN, with UCI accepted as well); illegal input returns None and leaves the
  board untouched.
- Answers the read-only queries the orchestrator needs: FEN, side to move, terminal flags.
- Exposes move_history() and pgn() for prompts and the API snapshot.
"""
from __future__ import annotations
import chess, chess.pgn, datetime
from typing import Optional

CASTLE_ZERO = {"0-0": "O-O", "0-0-0": "O-O-O", "o-o": "O-O", "o-o-o": "O-O-O"}
PROMOTION_PIECES = {"q": chess.QUEEN, "r": chess.ROOK, "b": chess.BISHOP, "n": chess.KNIGHT}


class Referee:
    """Plain chess referee around python-chess Board and PGN export."""
    def __init__(self, starting_fen: str | None = None):
        self.board = chess.Board(fen=starting_fen) if starting_fen else chess.Board()
        self._headers: dict[str, str] = {}

    # ---------------- Header Management -----------------
    def set_headers(self, event: str = "LLM Chess Coach", site: str = "?", date: Optional[str] = None,
                    white: str = "?", black: str = "?") -> None:
        date = date or datetime.date.today().strftime("%Y.%m.%d")
        self._headers.update({
            "Event": event,
            "Site": site,
            "Date": date,
            "White": white,
            "Black": black,
        })

    # ---------------- Move Application -----------------
    def apply_move(self, from_square: str, to_square: str, promotion: str | None = "q") -> str | None:
        """Apply a from/to move; promotion is used only when the pawn actually promotes.

        Returns the SAN of the applied move, or None if the move is illegal.
        """
        try:
            frm = chess.parse_square(from_square.strip().lower())
            to = chess.parse_square(to_square.strip().lower())
        except (AttributeError, ValueError):
            return None
        mv = chess.Move(frm, to)
        if mv not in self.board.legal_moves and promotion:
            piece = PROMOTION_PIECES.get(promotion.lower())
            if piece is None:
                return None
            mv = chess.Move(frm, to, promotion=piece)
        if mv not in self.board.legal_moves:
            return None
        return self._push(mv)

    def apply_san(self, token: str) -> str | None:
        """Apply a move given as SAN (UCI is accepted too). Returns SAN or None if illegal."""
        token = (token or "").strip().rstrip("!?")
        if not token:
            return None
        token = CASTLE_ZERO.get(token.lower(), token)
        try:
            mv = self.board.parse_san(token)
        except ValueError:
            mv = None
        if mv is None:
            try:
                mv = chess.Move.from_uci(token.lower())
            except ValueError:
                return None
        if mv not in self.board.legal_moves:
            return None
        return self._push(mv)

    def _push(self, mv: chess.Move) -> str:
        san = self.board.san(mv)
        self.board.push(mv)
        return san

    # ---------------- Queries -----------------
    def fen(self) -> str:
        return self.board.fen()

    def side_to_move(self) -> str:
        return "white" if self.board.turn == chess.WHITE else "black"

    def is_checkmate(self) -> bool:
        return self.board.is_checkmate()

    def is_stalemate(self) -> bool:
        return self.board.is_stalemate()

    def is_draw(self) -> bool:
        b = self.board
        return (
            b.is_stalemate()
            or b.is_insufficient_material()
            or b.is_fifty_moves()
            or b.is_repetition(3)
        )

    def is_game_over(self) -> bool:
        return self.board.is_game_over() or self.is_draw()

    def is_check(self) -> bool:
        return self.board.is_check()

    def terminal_status(self) -> str:
        """One of checkmate | stalemate | draw | ongoing."""
        if self.is_checkmate():
            return "checkmate"
        if self.is_stalemate():
            return "stalemate"
        if self.is_game_over():
            return "draw"
        return "ongoing"

    # ---------------- History / PGN -----------------
    def move_history(self, verbose: bool = False) -> list:
        """SAN list, or per-ply dicts (ply, color, from, to, san, uci) when verbose."""
        replay = chess.Board(fen=self.board.root().fen())
        out: list = []
        for idx, mv in enumerate(self.board.move_stack):
            san = replay.san(mv)
            if verbose:
                out.append({
                    "ply": idx + 1,
                    "color": "white" if replay.turn == chess.WHITE else "black",
                    "from": chess.square_name(mv.from_square),
                    "to": chess.square_name(mv.to_square),
                    "san": san,
                    "uci": mv.uci(),
                })
            else:
                out.append(san)
            replay.push(mv)
        return out

    def last_move_san(self) -> str:
        history = self.move_history()
        return history[-1] if history else "none"

    def pgn(self) -> str:
        game = chess.pgn.Game.from_board(self.board)
        for k, v in self._headers.items():
            game.headers[k] = v
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=False)
        return game.accept(exporter)
