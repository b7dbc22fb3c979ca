"""Core engine components: position, move generation, evaluator, search and transposition table."""

from .errors import InvalidPositionError, MissingKingError, PositionStateError, TempoError
from .evaluator import Evaluator
from .movegen import in_check, is_square_attacked, legal_moves, perft, pseudo_moves
from .ordering import KillerTable, order_moves
from .position import Move, Piece, Position
from .search import Outcome, Search, SearchEngine, SearchResult
from .transposition import TranspositionTable
