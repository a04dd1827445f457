"""
Piece-placement tracking for engine matches.

The match loop never validates moves; it only mirrors where the pieces are so
the terminal can draw them and repeated positions can be counted. The board
is a fixed 64-square ``chess.BaseBoard`` used purely as a placement container.
"""

from __future__ import annotations

import logging
from typing import Dict

import chess

logger = logging.getLogger(__name__)

EMPTY_SQUARE = "-"

PROMOTION_PIECES = {
    "q": chess.QUEEN,
    "r": chess.ROOK,
    "b": chess.BISHOP,
    "n": chess.KNIGHT,
}


class PlacementBoard:
    """
    Mirrors piece placement by applying coordinate move tokens verbatim.

    Handles the parts of a move that relocate more than one piece (castling
    rook, en-passant capture) and promotion letters, but performs no legality
    checks: a token whose origin square is empty is ignored.
    """

    def __init__(self):
        self._board = chess.BaseBoard()

    def reset(self) -> None:
        """Return to the standard starting placement."""
        self._board.reset_board()

    def apply(self, token: str) -> bool:
        """
        Apply a move token such as ``e2e4`` or ``e7e8q``.

        Trailing characters beyond the promotion letter are ignored.

        Returns:
            True if a piece was moved
        """
        try:
            from_square = chess.parse_square(token[0:2])
            to_square = chess.parse_square(token[2:4])
        except ValueError:
            logger.warning(f"Cannot place move token {token!r}")
            return False

        board = self._board
        piece = board.piece_at(from_square)
        if piece is None:
            logger.debug(f"No piece on {token[0:2]} for move {token}")
            return False

        if piece.piece_type == chess.KING and abs(chess.square_file(to_square) - chess.square_file(from_square)) == 2:
            self._move_castling_rook(from_square, to_square)
        elif (piece.piece_type == chess.PAWN
              and chess.square_file(from_square) != chess.square_file(to_square)
              and board.piece_at(to_square) is None):
            # En passant: the captured pawn sits beside the origin square
            board.remove_piece_at(chess.square(chess.square_file(to_square), chess.square_rank(from_square)))

        board.remove_piece_at(from_square)
        promotion = token[4:5].lower()
        if piece.piece_type == chess.PAWN and promotion in PROMOTION_PIECES:
            piece = chess.Piece(PROMOTION_PIECES[promotion], piece.color)
        board.set_piece_at(to_square, piece)
        return True

    def _move_castling_rook(self, king_from: chess.Square, king_to: chess.Square) -> None:
        rank = chess.square_rank(king_from)
        if chess.square_file(king_to) > chess.square_file(king_from):
            rook_from, rook_to = chess.square(7, rank), chess.square(5, rank)
        else:
            rook_from, rook_to = chess.square(0, rank), chess.square(3, rank)
        rook = self._board.remove_piece_at(rook_from)
        if rook is not None:
            self._board.set_piece_at(rook_to, rook)

    def position_key(self) -> str:
        """
        Occupancy of all 64 squares, rank 8 to rank 1 and file a to h.

        Pieces use FEN letters (uppercase for white), empty squares ``-``.
        """
        chars = []
        for rank in range(7, -1, -1):
            for file in range(8):
                piece = self._board.piece_at(chess.square(file, rank))
                chars.append(piece.symbol() if piece else EMPTY_SQUARE)
        return "".join(chars)

    def placement(self) -> str:
        """Piece placement field of the current position in FEN."""
        return self._board.board_fen()

    def snapshot(self) -> chess.BaseBoard:
        """Independent copy of the current placement."""
        return self._board.copy()

    def __str__(self) -> str:
        return str(self._board)


class RepetitionTracker:
    """Counts how often each PositionKey occurred in the current game."""

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def record(self, key: str) -> int:
        """Record one occurrence of ``key`` and return its count so far."""
        self._counts[key] = self._counts.get(key, 0) + 1
        return self._counts[key]

    def count(self, key: str) -> int:
        return self._counts.get(key, 0)

    def clear(self) -> None:
        self._counts.clear()

    def __len__(self) -> int:
        return len(self._counts)
