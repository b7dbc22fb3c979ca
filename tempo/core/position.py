"""Mailbox position with reversible make/unmake.

Squares follow python-chess numbering (a1 = 0, h8 = 63) and piece kinds and
colors are the python-chess constants, so a ``Position`` can be compared
square by square with a ``chess.Board``.

The grid is the only source of truth. King squares are cached for check
detection and are kept in step with the grid on every make/unmake.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import chess

from .errors import InvalidPositionError, PositionStateError

WHITE_KINGSIDE = 1
WHITE_QUEENSIDE = 2
BLACK_KINGSIDE = 4
BLACK_QUEENSIDE = 8
ALL_CASTLING = 15

KINGSIDE = "K"
QUEENSIDE = "Q"


class Piece(NamedTuple):
    piece_type: int
    color: bool

    def symbol(self) -> str:
        s = chess.piece_symbol(self.piece_type)
        return s.upper() if self.color == chess.WHITE else s


PIECES: Dict[Tuple[int, bool], Piece] = {
    (pt, color): Piece(pt, color) for pt in chess.PIECE_TYPES for color in chess.COLORS
}

_KEY_SYMBOLS: Dict[Optional[Piece], str] = {p: p.symbol() for p in PIECES.values()}
_KEY_SYMBOLS[None] = "."


class CastleRule(NamedTuple):
    king_from: int
    king_to: int
    rook_from: int
    rook_to: int
    right: int


CASTLES: Dict[Tuple[bool, str], CastleRule] = {
    (chess.WHITE, KINGSIDE): CastleRule(chess.E1, chess.G1, chess.H1, chess.F1, WHITE_KINGSIDE),
    (chess.WHITE, QUEENSIDE): CastleRule(chess.E1, chess.C1, chess.A1, chess.D1, WHITE_QUEENSIDE),
    (chess.BLACK, KINGSIDE): CastleRule(chess.E8, chess.G8, chess.H8, chess.F8, BLACK_KINGSIDE),
    (chess.BLACK, QUEENSIDE): CastleRule(chess.E8, chess.C8, chess.A8, chess.D8, BLACK_QUEENSIDE),
}

# Rights that survive a piece leaving or landing on each square.
_KEEP_RIGHTS: List[int] = [ALL_CASTLING] * 64
_KEEP_RIGHTS[chess.E1] &= ~(WHITE_KINGSIDE | WHITE_QUEENSIDE)
_KEEP_RIGHTS[chess.H1] &= ~WHITE_KINGSIDE
_KEEP_RIGHTS[chess.A1] &= ~WHITE_QUEENSIDE
_KEEP_RIGHTS[chess.E8] &= ~(BLACK_KINGSIDE | BLACK_QUEENSIDE)
_KEEP_RIGHTS[chess.H8] &= ~BLACK_KINGSIDE
_KEEP_RIGHTS[chess.A8] &= ~BLACK_QUEENSIDE


@dataclass
class Move:
    from_square: int
    to_square: int
    piece: int
    captured: Optional[int] = None
    promotion: Optional[int] = None
    castle: Optional[str] = None
    en_passant: bool = False
    score: int = field(default=0, compare=False)

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    def uci(self) -> str:
        text = chess.square_name(self.from_square) + chess.square_name(self.to_square)
        if self.promotion:
            text += chess.piece_symbol(self.promotion)
        return text

    def __str__(self) -> str:
        return self.uci()


class _Undo(NamedTuple):
    move: Move
    captured: Optional[Piece]
    captured_square: int
    castling: int
    ep_square: Optional[int]


class Position:
    """Board state for one search request.

    ``make_move`` trusts that the move is pseudo-legal; whether it leaves the
    mover's own king attacked is for the caller to check.
    """

    def __init__(self) -> None:
        self.squares: List[Optional[Piece]] = [None] * 64
        self.turn: bool = chess.WHITE
        self.castling: int = 0
        self.ep_square: Optional[int] = None
        self.kings: Dict[bool, Optional[int]] = {chess.WHITE: None, chess.BLACK: None}
        self._stack: List[_Undo] = []

    @classmethod
    def from_pieces(
        cls,
        pieces: Iterable[Tuple[int, bool, int]],
        turn: bool = chess.WHITE,
        castling: Optional[int] = None,
        ep_square: Optional[int] = None,
    ) -> "Position":
        """Build a position from ``(piece_type, color, square)`` triples.

        When ``castling`` is None the rights are derived from the placement:
        a right is granted when the king and the matching rook stand on
        their home squares.
        """
        pos = cls()
        for piece_type, color, square in pieces:
            if piece_type not in chess.PIECE_TYPES:
                raise InvalidPositionError(f"Unknown piece type {piece_type!r}")
            if not 0 <= square < 64:
                raise InvalidPositionError(f"Square {square!r} is off the board")
            if pos.squares[square] is not None:
                raise InvalidPositionError(
                    f"Two pieces on {chess.square_name(square)}"
                )
            if piece_type == chess.PAWN and chess.square_rank(square) in (0, 7):
                raise InvalidPositionError(
                    f"Pawn on back rank square {chess.square_name(square)}"
                )
            if piece_type == chess.KING:
                if pos.kings[bool(color)] is not None:
                    raise InvalidPositionError(
                        f"More than one {chess.COLOR_NAMES[bool(color)]} king"
                    )
                pos.kings[bool(color)] = square
            pos.squares[square] = PIECES[(piece_type, bool(color))]

        pos.turn = bool(turn)
        pos.castling = pos._derive_castling() if castling is None else castling
        pos.ep_square = ep_square
        return pos

    def _derive_castling(self) -> int:
        rights = 0
        for (color, _side), rule in CASTLES.items():
            if (
                self.squares[rule.king_from] == PIECES[(chess.KING, color)]
                and self.squares[rule.rook_from] == PIECES[(chess.ROOK, color)]
            ):
                rights |= rule.right
        return rights

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def piece_at(self, square: int) -> Optional[Piece]:
        return self.squares[square]

    def king_square(self, color: bool) -> Optional[int]:
        return self.kings[color]

    def has_castling_right(self, right: int) -> bool:
        return bool(self.castling & right)

    def piece_map(self) -> Iterator[Tuple[int, Piece]]:
        for square, piece in enumerate(self.squares):
            if piece is not None:
                yield square, piece

    @property
    def ply_count(self) -> int:
        """Moves currently on the undo stack."""
        return len(self._stack)

    def position_key(self) -> Tuple[bool, int, int, str]:
        """Content-only key: equal for identical positions however reached."""
        ep_file = -1 if self.ep_square is None else chess.square_file(self.ep_square)
        return (
            self.turn,
            self.castling,
            ep_file,
            "".join([_KEY_SYMBOLS[p] for p in self.squares]),
        )

    def snapshot(self) -> tuple:
        return (
            tuple(self.squares),
            self.turn,
            self.castling,
            self.ep_square,
            self.kings[chess.WHITE],
            self.kings[chess.BLACK],
        )

    def color_swapped(self) -> "Position":
        """Mirror the ranks and swap piece colors, keeping the side to move."""
        pos = Position()
        for square, piece in self.piece_map():
            mirrored = chess.square_mirror(square)
            pos.squares[mirrored] = PIECES[(piece.piece_type, not piece.color)]
            if piece.piece_type == chess.KING:
                pos.kings[not piece.color] = mirrored
        pos.turn = self.turn
        pos.castling = ((self.castling & 3) << 2) | (self.castling >> 2)
        if self.ep_square is not None:
            pos.ep_square = chess.square_mirror(self.ep_square)
        return pos

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def make_move(self, move: Move) -> None:
        squares = self.squares
        piece = squares[move.from_square]
        if piece is None:
            raise PositionStateError(
                f"make_move {move.uci()}: no piece on {chess.square_name(move.from_square)}"
            )
        if piece.piece_type != move.piece:
            raise PositionStateError(
                f"make_move {move.uci()}: expected {chess.piece_name(move.piece)}, "
                f"found {chess.piece_name(piece.piece_type)}"
            )
        color = piece.color

        captured_square = move.to_square
        if move.en_passant:
            captured_square = move.to_square - 8 if color == chess.WHITE else move.to_square + 8
        captured = squares[captured_square]

        self._stack.append(
            _Undo(move, captured, captured_square, self.castling, self.ep_square)
        )

        squares[captured_square] = None
        squares[move.from_square] = None
        if move.promotion:
            squares[move.to_square] = PIECES[(move.promotion, color)]
        else:
            squares[move.to_square] = piece

        if move.castle:
            rule = CASTLES[(color, move.castle)]
            squares[rule.rook_to] = squares[rule.rook_from]
            squares[rule.rook_from] = None

        if piece.piece_type == chess.KING:
            self.kings[color] = move.to_square
        if captured is not None and captured.piece_type == chess.KING:
            self.kings[captured.color] = None

        self.castling &= _KEEP_RIGHTS[move.from_square] & _KEEP_RIGHTS[move.to_square]

        self.ep_square = None
        if piece.piece_type == chess.PAWN and abs(move.to_square - move.from_square) == 16:
            self._set_ep_target(move, color)

        self.turn = not color

    def _set_ep_target(self, move: Move, color: bool) -> None:
        # Only recorded when an enemy pawn could actually take en passant,
        # so that otherwise identical positions share a key.
        enemy_pawn = PIECES[(chess.PAWN, not color)]
        file = chess.square_file(move.to_square)
        for df in (-1, 1):
            if 0 <= file + df <= 7 and self.squares[move.to_square + df] == enemy_pawn:
                self.ep_square = (move.from_square + move.to_square) // 2
                return

    def unmake_move(self) -> None:
        if not self._stack:
            raise PositionStateError("unmake_move called with no move to undo")
        undo = self._stack.pop()
        move = undo.move
        squares = self.squares

        self.turn = not self.turn
        color = self.turn

        piece = squares[move.to_square]
        if move.promotion:
            piece = PIECES[(chess.PAWN, color)]
        squares[move.to_square] = None
        squares[move.from_square] = piece
        squares[undo.captured_square] = undo.captured

        if move.castle:
            rule = CASTLES[(color, move.castle)]
            squares[rule.rook_from] = squares[rule.rook_to]
            squares[rule.rook_to] = None

        if move.piece == chess.KING:
            self.kings[color] = move.from_square
        if undo.captured is not None and undo.captured.piece_type == chess.KING:
            self.kings[undo.captured.color] = undo.captured_square

        self.castling = undo.castling
        self.ep_square = undo.ep_square

    def __str__(self) -> str:
        rows = []
        for rank in range(7, -1, -1):
            row = []
            for file in range(8):
                piece = self.squares[chess.square(file, rank)]
                row.append(piece.symbol() if piece else ".")
            rows.append(" ".join(row))
        return "\n".join(rows)
