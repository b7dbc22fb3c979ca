"""Request-level entry point: a piece list in, one move per requested side out.

Each requested side is searched on its own freshly built position, with that
side to move and with its own search state. Castling rights are derived
from the placement (king and rook on their home squares); no en-passant
target is assumed.

A side whose opponent is already in check is not searched: the placement
cannot arise with that side to move, and its result is
``Outcome.OPPONENT_IN_CHECK`` with no move.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence

import chess

from tempo.config import CONFIG, Config
from tempo.core.errors import InvalidPositionError, MissingKingError
from tempo.core.evaluator import Evaluator
from tempo.core.position import Position
from tempo.core.search import CONFIG_LIMIT, Outcome, SearchEngine

logger = logging.getLogger(__name__)

SIDES = {
    "white": (chess.WHITE,),
    "black": (chess.BLACK,),
    "both": (chess.WHITE, chess.BLACK),
}

_COLOR_NAMES = {"white": chess.WHITE, "w": chess.WHITE, "black": chess.BLACK, "b": chess.BLACK}

_BACK_RANK = [chess.ROOK, chess.KNIGHT, chess.BISHOP, chess.QUEEN, chess.KING, chess.BISHOP, chess.KNIGHT, chess.ROOK]


class PieceSpec(NamedTuple):
    kind: int
    color: bool
    file: int
    rank: int

    @property
    def square(self) -> int:
        return chess.square(self.file, self.rank)


@dataclass
class SideResult:
    outcome: Outcome
    from_square: Optional[int] = None
    to_square: Optional[int] = None
    piece_index: Optional[int] = None
    promotion: Optional[int] = None
    score: int = 0
    depth: int = 0
    nodes: int = 0

    @property
    def has_move(self) -> bool:
        return self.outcome == Outcome.MOVE

    def uci(self) -> Optional[str]:
        if not self.has_move:
            return None
        text = chess.square_name(self.from_square) + chess.square_name(self.to_square)
        if self.promotion:
            text += chess.piece_symbol(self.promotion)
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "from": chess.square_name(self.from_square) if self.has_move else None,
            "to": chess.square_name(self.to_square) if self.has_move else None,
            "index": self.piece_index,
            "promotion": chess.piece_symbol(self.promotion) if self.promotion else None,
            "uci": self.uci(),
            "score": self.score,
            "depth": self.depth,
            "nodes": self.nodes,
        }


@dataclass
class ThinkResponse:
    white: Optional[SideResult] = None
    black: Optional[SideResult] = None

    def for_color(self, color: bool) -> Optional[SideResult]:
        return self.white if color == chess.WHITE else self.black

    def to_dict(self) -> Dict[str, Any]:
        return {
            "white": self.white.to_dict() if self.white else None,
            "black": self.black.to_dict() if self.black else None,
        }


def _parse_kind(kind) -> int:
    if isinstance(kind, bool):
        raise InvalidPositionError(f"Unknown piece kind {kind!r}")
    if isinstance(kind, int):
        if kind in chess.PIECE_TYPES:
            return kind
    elif isinstance(kind, str):
        name = kind.strip().lower()
        if name in chess.PIECE_NAMES[1:]:
            return chess.PIECE_NAMES.index(name)
        if len(name) == 1 and name in chess.PIECE_SYMBOLS[1:]:
            return chess.PIECE_SYMBOLS.index(name)
    raise InvalidPositionError(f"Unknown piece kind {kind!r}")


def _parse_color(color) -> bool:
    if isinstance(color, bool):
        return color
    if isinstance(color, str) and color.strip().lower() in _COLOR_NAMES:
        return _COLOR_NAMES[color.strip().lower()]
    raise InvalidPositionError(f"Unknown color {color!r}")


def normalize_pieces(pieces: Iterable[Sequence]) -> List[PieceSpec]:
    """Turn ``(kind, color, file, rank)`` tuples into PieceSpecs.

    Kinds may be python-chess ints, names ("knight") or symbols ("n");
    colors may be python-chess bools or "white"/"black".
    """
    specs = []
    for item in pieces:
        try:
            kind, color, file, rank = item
        except (TypeError, ValueError) as exc:
            raise InvalidPositionError(f"Expected (kind, color, file, rank), got {item!r}") from exc
        if not (isinstance(file, int) and isinstance(rank, int) and 0 <= file <= 7 and 0 <= rank <= 7):
            raise InvalidPositionError(f"Coordinates ({file!r}, {rank!r}) are off the board")
        specs.append(PieceSpec(_parse_kind(kind), _parse_color(color), file, rank))
    return specs


def starting_pieces() -> List[PieceSpec]:
    """The standard initial layout as a piece list."""
    pieces = []
    for color, back, pawns in ((chess.WHITE, 0, 1), (chess.BLACK, 7, 6)):
        for file, kind in enumerate(_BACK_RANK):
            pieces.append(PieceSpec(kind, color, file, back))
        for file in range(8):
            pieces.append(PieceSpec(chess.PAWN, color, file, pawns))
    return pieces


class Engine:
    def __init__(self, depth: Optional[int] = None, config: Optional[Config] = None,
                 evaluator: Optional[Evaluator] = None):
        self.config = config or CONFIG
        self.search = SearchEngine(
            evaluator or Evaluator(self.config.eval), depth=depth, config=self.config.search
        )

    def think(self, pieces: Iterable[Sequence], max_depth: Optional[int] = None,
              side: str = "both", time_limit_ms=CONFIG_LIMIT) -> ThinkResponse:
        if side not in SIDES:
            raise ValueError(f"side must be one of {sorted(SIDES)}, got {side!r}")
        specs = normalize_pieces(pieces)
        placement = [(s.kind, s.color, s.square) for s in specs]

        # Validates squares, duplicates and king counts once for all sides.
        probe = Position.from_pieces(placement)
        if not self.config.search.allow_missing_king:
            for color in chess.COLORS:
                if probe.king_square(color) is None:
                    raise MissingKingError(f"No {chess.COLOR_NAMES[color]} king on the board")

        response = ThinkResponse()
        for color in SIDES[side]:
            position = Position.from_pieces(placement, turn=color)
            result = self.search.search(position, depth=max_depth, time_limit_ms=time_limit_ms)
            if result.move is None:
                side_result = SideResult(result.outcome, score=result.score, nodes=result.nodes)
            else:
                move = result.move
                index = next(i for i, s in enumerate(specs) if s.square == move.from_square)
                side_result = SideResult(
                    Outcome.MOVE,
                    from_square=move.from_square,
                    to_square=move.to_square,
                    piece_index=index,
                    promotion=move.promotion,
                    score=result.score,
                    depth=result.depth,
                    nodes=result.nodes,
                )
            logger.info("%s: %s", chess.COLOR_NAMES[color], side_result.uci() or side_result.outcome.value)
            if color == chess.WHITE:
                response.white = side_result
            else:
                response.black = side_result
        return response


def think(pieces: Iterable[Sequence], max_depth: Optional[int] = None, side: str = "both",
          time_limit_ms=CONFIG_LIMIT, config: Optional[Config] = None) -> ThinkResponse:
    """Pick a move for ``side`` ("white", "black" or "both") on the given pieces."""
    return Engine(config=config).think(pieces, max_depth=max_depth, side=side, time_limit_ms=time_limit_ms)
