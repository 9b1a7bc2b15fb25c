import unittest

import chess

from src.llmchess_coach.referee import Referee

STALEMATE_FEN = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
PROMOTION_FEN = "8/4P3/8/8/8/8/k7/7K w - - 0 1"


class RefereeTests(unittest.TestCase):
    def test_apply_move_returns_san_and_updates_fen(self):
        ref = Referee()
        expected = chess.Board()
        expected.push_uci("g1f3")
        self.assertEqual(ref.apply_move("g1", "f3"), "Nf3")
        self.assertEqual(ref.fen(), expected.fen())
        self.assertEqual(ref.side_to_move(), "black")

    def test_illegal_move_leaves_board_untouched(self):
        ref = Referee()
        before = ref.fen()
        self.assertIsNone(ref.apply_move("e2", "e5"))
        self.assertIsNone(ref.apply_move("z9", "e4"))
        self.assertEqual(ref.fen(), before)
        self.assertEqual(ref.move_history(), [])

    def test_implicit_queen_promotion(self):
        ref = Referee(PROMOTION_FEN)
        self.assertEqual(ref.apply_move("e7", "e8"), "e8=Q")
        self.assertEqual(ref.board.piece_at(chess.E8), chess.Piece(chess.QUEEN, chess.WHITE))

    def test_apply_san_accepts_san_uci_and_zero_castling(self):
        ref = Referee()
        self.assertEqual(ref.apply_san("e4"), "e4")
        self.assertEqual(ref.apply_san("e7e5"), "e5")
        self.assertEqual(ref.apply_san("Nf3!"), "Nf3")
        for san in ("Nc6", "Bc4", "Nf6"):
            ref.apply_san(san)
        self.assertEqual(ref.apply_san("0-0"), "O-O")

    def test_apply_san_rejects_illegal_and_garbage(self):
        ref = Referee()
        self.assertIsNone(ref.apply_san("Nf6"))
        self.assertIsNone(ref.apply_san("banana"))
        self.assertIsNone(ref.apply_san(""))
        self.assertEqual(ref.fen(), chess.STARTING_FEN)

    def test_history_and_last_move(self):
        ref = Referee()
        self.assertEqual(ref.last_move_san(), "none")
        ref.apply_move("e2", "e4")
        ref.apply_move("c7", "c5")
        self.assertEqual(ref.move_history(), ["e4", "c5"])
        verbose = ref.move_history(verbose=True)
        self.assertEqual(verbose[1]["color"], "black")
        self.assertEqual(verbose[1]["from"], "c7")
        self.assertEqual(verbose[1]["uci"], "c7c5")
        self.assertEqual(ref.last_move_san(), "c5")

    def test_pgn_contains_headers_and_moves(self):
        ref = Referee()
        ref.set_headers(white="Human", black="Coach AI")
        ref.apply_move("d2", "d4")
        pgn = ref.pgn()
        self.assertIn('[White "Human"]', pgn)
        self.assertIn("1. d4", pgn)

    def test_terminal_flags(self):
        ref = Referee(STALEMATE_FEN)
        self.assertTrue(ref.is_draw())
        self.assertTrue(ref.is_game_over())
        self.assertFalse(ref.is_checkmate())
        self.assertEqual(ref.terminal_status(), "stalemate")
        self.assertEqual(Referee().terminal_status(), "ongoing")


if __name__ == "__main__":
    unittest.main()
