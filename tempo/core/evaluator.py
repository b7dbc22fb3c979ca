"""Material + piece-square-table evaluator."""

from typing import Dict, List, Optional

import chess

from tempo.config import CONFIG, PIECE_VALUES, EvalConfig
from .position import Position

# Tables are written from White's point of view with rank 8 as the first row.
PST_PAWN = [
    [0, 0, 0, 0, 0, 0, 0, 0],
    [50, 50, 50, 50, 50, 50, 50, 50],
    [10, 10, 20, 30, 30, 20, 10, 10],
    [5, 5, 10, 25, 25, 10, 5, 5],
    [0, 0, 0, 20, 20, 0, 0, 0],
    [5, -5, -10, 0, 0, -10, -5, 5],
    [5, 10, 10, -20, -20, 10, 10, 5],
    [0, 0, 0, 0, 0, 0, 0, 0],
]
PST_KNIGHT = [
    [-50, -40, -30, -30, -30, -30, -40, -50],
    [-40, -20, 0, 0, 0, 0, -20, -40],
    [-30, 0, 10, 15, 15, 10, 0, -30],
    [-30, 5, 15, 20, 20, 15, 5, -30],
    [-30, 0, 15, 20, 20, 15, 0, -30],
    [-30, 5, 10, 15, 15, 10, 5, -30],
    [-40, -20, 0, 5, 5, 0, -20, -40],
    [-50, -40, -30, -30, -30, -30, -40, -50],
]
PST_BISHOP = [
    [-20, -10, -10, -10, -10, -10, -10, -20],
    [-10, 0, 0, 0, 0, 0, 0, -10],
    [-10, 0, 5, 10, 10, 5, 0, -10],
    [-10, 5, 5, 10, 10, 5, 5, -10],
    [-10, 0, 10, 10, 10, 10, 0, -10],
    [-10, 10, 10, 10, 10, 10, 10, -10],
    [-10, 5, 0, 0, 0, 0, 5, -10],
    [-20, -10, -10, -10, -10, -10, -10, -20],
]
PST_ROOK = [
    [0, 0, 0, 0, 0, 0, 0, 0],
    [5, 10, 10, 10, 10, 10, 10, 5],
    [-5, 0, 0, 0, 0, 0, 0, -5],
    [-5, 0, 0, 0, 0, 0, 0, -5],
    [-5, 0, 0, 0, 0, 0, 0, -5],
    [-5, 0, 0, 0, 0, 0, 0, -5],
    [-5, 0, 0, 0, 0, 0, 0, -5],
    [0, 0, 0, 5, 5, 0, 0, 0],
]
PST_QUEEN = [
    [-20, -10, -10, -5, -5, -10, -10, -20],
    [-10, 0, 0, 0, 0, 0, 0, -10],
    [-10, 0, 5, 5, 5, 5, 0, -10],
    [-5, 0, 5, 5, 5, 5, 0, -5],
    [0, 0, 5, 5, 5, 5, 0, -5],
    [-10, 5, 5, 5, 5, 5, 0, -10],
    [-10, 0, 5, 0, 0, 0, 0, -10],
    [-20, -10, -10, -5, -5, -10, -10, -20],
]
PST_KING = [
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-20, -30, -30, -40, -40, -30, -30, -20],
    [-10, -20, -20, -20, -20, -20, -20, -10],
    [20, 20, 0, 0, 0, 0, 20, 20],
    [20, 30, 10, 0, 0, 10, 30, 20],
]

PST = {
    chess.PAWN: PST_PAWN,
    chess.KNIGHT: PST_KNIGHT,
    chess.BISHOP: PST_BISHOP,
    chess.ROOK: PST_ROOK,
    chess.QUEEN: PST_QUEEN,
    chess.KING: PST_KING,
}


class Evaluator:
    def __init__(self, cfg: Optional[EvalConfig] = None):
        self.cfg = cfg or CONFIG.eval
        values = {**PIECE_VALUES, **self.cfg.piece_values}
        self.values: Dict[int, int] = {
            pt: values[chess.piece_name(pt).upper()] for pt in chess.PIECE_TYPES
        }
        # square_scores[color][piece_type][square] = material + positional bonus
        self.square_scores: Dict[bool, Dict[int, List[int]]] = {chess.WHITE: {}, chess.BLACK: {}}
        for pt in chess.PIECE_TYPES:
            table = PST[pt]
            white, black = [], []
            for sq in chess.SQUARES:
                f, r = chess.square_file(sq), chess.square_rank(sq)
                w_bonus = table[7 - r][f] if self.cfg.use_positional else 0
                b_bonus = table[r][f] if self.cfg.use_positional else 0
                white.append(self.values[pt] + w_bonus)
                black.append(self.values[pt] + b_bonus)
            self.square_scores[chess.WHITE][pt] = white
            self.square_scores[chess.BLACK][pt] = black

    def piece_value(self, piece_type: int) -> int:
        return self.values[piece_type]

    def evaluate(self, position: Position) -> int:
        """Return static eval in centipawns, positive favors side to move."""
        white_scores = self.square_scores[chess.WHITE]
        black_scores = self.square_scores[chess.BLACK]
        score = 0
        white_bishops = 0
        black_bishops = 0

        for sq, piece in enumerate(position.squares):
            if piece is None:
                continue
            pt = piece.piece_type
            if piece.color == chess.WHITE:
                score += white_scores[pt][sq]
                if pt == chess.BISHOP:
                    white_bishops += 1
            else:
                score -= black_scores[pt][sq]
                if pt == chess.BISHOP:
                    black_bishops += 1

        # Bishop pair.
        if white_bishops >= 2:
            score += self.cfg.bishop_pair_bonus
        if black_bishops >= 2:
            score -= self.cfg.bishop_pair_bonus

        return score if position.turn == chess.WHITE else -score
