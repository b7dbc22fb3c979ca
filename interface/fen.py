"""FEN conversion for the engine's inputs and positions.

The engine core never reads FEN; this module converts between FEN text and
piece lists / Positions using python-chess, which also does the validation.
Invalid text raises ``ValueError``.
"""

from typing import Iterable, List, Sequence

import chess

from tempo.core.position import (
    BLACK_KINGSIDE,
    BLACK_QUEENSIDE,
    WHITE_KINGSIDE,
    WHITE_QUEENSIDE,
    Position,
)
from tempo.main import PieceSpec, normalize_pieces

_RIGHTS = [
    (WHITE_KINGSIDE, chess.WHITE, chess.BB_H1),
    (WHITE_QUEENSIDE, chess.WHITE, chess.BB_A1),
    (BLACK_KINGSIDE, chess.BLACK, chess.BB_H8),
    (BLACK_QUEENSIDE, chess.BLACK, chess.BB_A8),
]


def pieces_from_fen(fen: str) -> List[PieceSpec]:
    """Piece list from a FEN (only the placement field is read).

    Pieces come out in FEN reading order: rank 8 to rank 1, file a to h.
    """
    fields = fen.split()
    if not fields:
        raise ValueError("empty FEN")
    board = chess.BaseBoard(fields[0])
    squares = sorted(board.piece_map(), key=lambda sq: (-chess.square_rank(sq), chess.square_file(sq)))
    return [
        PieceSpec(board.piece_type_at(sq), board.color_at(sq), chess.square_file(sq), chess.square_rank(sq))
        for sq in squares
    ]


def fen_from_pieces(pieces: Iterable[Sequence]) -> str:
    """Placement field for a piece list."""
    board = chess.BaseBoard.empty()
    for spec in normalize_pieces(pieces):
        board.set_piece_at(spec.square, chess.Piece(spec.kind, spec.color))
    return board.board_fen()


def position_from_fen(fen: str) -> Position:
    """Full Position (side to move, castling, en passant) from a FEN."""
    board = chess.Board(fen)
    castling = 0
    for right, color, rook_bb in _RIGHTS:
        if board.clean_castling_rights() & rook_bb and board.king(color) == (chess.E1 if color == chess.WHITE else chess.E8):
            castling |= right
    return Position.from_pieces(
        ((p.piece_type, p.color, sq) for sq, p in board.piece_map().items()),
        turn=board.turn,
        castling=castling,
        ep_square=board.ep_square,
    )


def position_to_fen(position: Position) -> str:
    board = chess.Board.empty()
    for sq, piece in position.piece_map():
        board.set_piece_at(sq, chess.Piece(piece.piece_type, piece.color))
    board.turn = position.turn
    rights = 0
    for right, _color, rook_bb in _RIGHTS:
        if position.castling & right:
            rights |= rook_bb
    board.castling_rights = rights
    board.ep_square = position.ep_square
    return board.fen()
