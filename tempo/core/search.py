"""Negamax search with quiescence, a transposition table and iterative deepening.

``SearchEngine`` holds configuration and the evaluator and can be reused.
Every call to ``SearchEngine.search`` builds a fresh ``Search``, which owns
the position, the transposition table, the killer table and the clock for
that one request, so nothing leaks from one request into the next.

Time is checked every ``time_check_nodes`` visited nodes. Once the budget is
spent every frame returns 0 on its way out and the controller keeps the
result of the last completed depth.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

import chess

from tempo.config import CONFIG, SearchConfig
from .errors import PositionStateError
from .evaluator import Evaluator
from .movegen import in_check, legal_moves, pseudo_moves
from .ordering import KillerTable, order_moves
from .position import Move, Position
from .transposition import (
    MATE_SCORE,
    MATE_THRESHOLD,
    TT_EXACT,
    TT_LOWER,
    TT_UPPER,
    TranspositionTable,
)
from .utils import format_info

logger = logging.getLogger(__name__)

INF = 1000000

CONFIG_LIMIT = object()


class Outcome(str, Enum):
    MOVE = "move"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    OPPONENT_IN_CHECK = "opponent_in_check"


@dataclass
class SearchResult:
    move: Optional[Move]
    score: int
    depth: int
    nodes: int
    outcome: Outcome
    elapsed_ms: float = 0.0

    @property
    def is_mate(self) -> bool:
        return abs(self.score) > MATE_THRESHOLD


class Search:
    """State and algorithms for a single top-level search request."""

    def __init__(
        self,
        position: Position,
        evaluator: Optional[Evaluator] = None,
        config: Optional[SearchConfig] = None,
        time_limit_ms: Optional[int] = None,
    ):
        self.position = position
        self.evaluator = evaluator or Evaluator()
        self.cfg = config or CONFIG.search
        self.values = self.evaluator.values
        self.tt = TranspositionTable(size_mb=self.cfg.hash_size_mb)
        self.killers = KillerTable(2 * self.cfg.max_ply)
        self.check_every = max(1, self.cfg.time_check_nodes)
        self.nodes = 0
        self.time_up = False
        self.start_time = time.monotonic()
        self.deadline = None if time_limit_ms is None else self.start_time + time_limit_ms / 1000

    def _tick(self) -> bool:
        """Count a node; return True once the time budget is spent."""
        self.nodes += 1
        if self.time_up:
            return True
        if (
            self.deadline is not None
            and self.nodes % self.check_every == 0
            and time.monotonic() >= self.deadline
        ):
            self.time_up = True
        return self.time_up

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    # ------------------------------------------------------------------
    # Iterative deepening
    # ------------------------------------------------------------------

    def run(self, max_depth: int) -> SearchResult:
        pos = self.position
        color = pos.turn
        root_ply = pos.ply_count
        root_key = pos.position_key()

        # The side not to move must not be in check; its king would be capturable.
        if in_check(pos, not color):
            logger.warning("%s is in check with %s to move; not searching",
                           chess.COLOR_NAMES[not color], chess.COLOR_NAMES[color])
            return SearchResult(None, 0, 0, self.nodes, Outcome.OPPONENT_IN_CHECK)

        legal = legal_moves(pos)
        if not legal:
            if in_check(pos, color):
                logger.info("%s to move is checkmated", chess.COLOR_NAMES[color])
                return SearchResult(None, -MATE_SCORE, 0, self.nodes, Outcome.CHECKMATE)
            logger.info("%s to move is stalemated", chess.COLOR_NAMES[color])
            return SearchResult(None, 0, 0, self.nodes, Outcome.STALEMATE)

        best_move: Optional[Move] = None
        best_score = -INF
        completed = 0

        for depth in range(1, max_depth + 1):
            self.killers.clear()
            entry = self.tt.get(root_key)
            tt_move = entry.best_move if entry else None
            moves = order_moves(pseudo_moves(pos, color), self.values, tt_move, self.killers.get(0))

            alpha, beta = -INF, INF
            depth_move: Optional[Move] = None
            depth_score = -INF
            for move in moves:
                pos.make_move(move)
                if in_check(pos, color):
                    pos.unmake_move()
                    continue
                score = -self.negamax(depth - 1, -beta, -alpha, 1)
                pos.unmake_move()
                if self.time_up:
                    break
                if score > depth_score:
                    depth_score = score
                    depth_move = move
                if score > alpha:
                    alpha = score

            if self.time_up:
                logger.info("Time limit reached at depth %d after %d nodes", depth, self.nodes)
                break

            best_move, best_score, completed = depth_move, depth_score, depth
            self.tt.store(root_key, depth, best_score, TT_EXACT, best_move, 0)
            logger.info(format_info(depth, best_score, self.nodes, self.elapsed_ms(), best_move))

            if best_score > MATE_THRESHOLD:
                logger.info("Mate found at depth %d", depth)
                break

        if pos.ply_count != root_ply:
            raise PositionStateError("search left moves on the position's undo stack")

        if best_move is None:
            best_move = legal[0]
            best_score = self.evaluator.evaluate(pos)
            logger.warning("No depth completed; falling back to %s", best_move.uci())

        return SearchResult(
            best_move, best_score, completed, self.nodes, Outcome.MOVE, self.elapsed_ms()
        )

    # ------------------------------------------------------------------
    # Negamax
    # ------------------------------------------------------------------

    def negamax(self, depth: int, alpha: int, beta: int, ply: int) -> int:
        if self._tick():
            return 0
        pos = self.position
        color = pos.turn

        # A side without its king has lost (only reachable when missing
        # kings are allowed, or after a king capture from an illegal start).
        if pos.kings[color] is None:
            return -(MATE_SCORE - ply)

        # Mate-distance pruning.
        alpha = max(alpha, -(MATE_SCORE - ply))
        beta = min(beta, MATE_SCORE - ply - 1)
        if alpha >= beta:
            return alpha

        original_alpha = alpha
        key = pos.position_key()
        tt_score, tt_move = self.tt.probe(key, depth, alpha, beta, ply)
        if tt_score is not None:
            return tt_score

        checked = in_check(pos, color)
        search_depth = depth
        if checked and ply < self.cfg.max_ply:
            search_depth += 1

        if search_depth <= 0:
            return self.quiescence(alpha, beta, ply)

        moves = order_moves(pseudo_moves(pos, color), self.values, tt_move, self.killers.get(ply))

        best_score = -INF
        best_move: Optional[Move] = None
        legal = 0
        cfg = self.cfg

        for move in moves:
            pos.make_move(move)
            if in_check(pos, color):
                pos.unmake_move()
                continue
            legal += 1

            if (
                cfg.use_lmr
                and legal > cfg.lmr_min_moves
                and search_depth >= cfg.lmr_min_depth
                and not checked
                and move.captured is None
                and move.promotion is None
                and move.castle is None
            ):
                score = -self.negamax(search_depth - 2, -alpha - 1, -alpha, ply + 1)
                if score > alpha:
                    score = -self.negamax(search_depth - 1, -beta, -alpha, ply + 1)
            else:
                score = -self.negamax(search_depth - 1, -beta, -alpha, ply + 1)

            pos.unmake_move()

            if self.time_up:
                return 0

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score
            if alpha >= beta:
                if move.captured is None:
                    self.killers.store(ply, move)
                break

        if legal == 0:
            score = -(MATE_SCORE - ply) if checked else 0
            self.tt.store(key, depth, score, TT_EXACT, None, ply)
            return score

        if best_score <= original_alpha:
            flag = TT_UPPER
        elif best_score >= beta:
            flag = TT_LOWER
        else:
            flag = TT_EXACT
        self.tt.store(key, depth, best_score, flag, best_move, ply)
        return best_score

    # ------------------------------------------------------------------
    # Quiescence
    # ------------------------------------------------------------------

    def quiescence(self, alpha: int, beta: int, ply: int, qdepth: int = 0) -> int:
        if self._tick():
            return 0
        pos = self.position
        color = pos.turn
        if pos.kings[color] is None:
            return -(MATE_SCORE - ply)

        stand_pat = self.evaluator.evaluate(pos)
        if stand_pat >= beta:
            return stand_pat
        if not self.cfg.use_quiescence or qdepth >= self.cfg.q_max_depth:
            return stand_pat
        best = stand_pat
        if stand_pat > alpha:
            alpha = stand_pat

        moves = pseudo_moves(pos, color, captures_only=True)
        if self.cfg.quiescence_checks and qdepth == 0:
            moves.extend(self._quiet_checks(color))
        order_moves(moves, self.values)

        margin = self.cfg.delta_margin
        values = self.values
        for move in moves:
            if move.captured is not None:
                gain = values[move.captured]
                if move.promotion:
                    gain += values[move.promotion] - values[chess.PAWN]
                # Delta pruning: even winning the piece cannot reach alpha.
                if stand_pat + gain + margin < alpha:
                    continue

            pos.make_move(move)
            # Captures are only pseudo-legal; the mover may be pinned.
            if in_check(pos, color):
                pos.unmake_move()
                continue
            score = -self.quiescence(-beta, -alpha, ply + 1, qdepth + 1)
            pos.unmake_move()

            if self.time_up:
                return 0

            if score > best:
                best = score
            if score > alpha:
                alpha = score
            if alpha >= beta:
                break

        return best

    def _quiet_checks(self, color: bool) -> List[Move]:
        pos = self.position
        checks = []
        for move in pseudo_moves(pos, color):
            if move.captured is not None:
                continue
            pos.make_move(move)
            if in_check(pos, not color) and not in_check(pos, color):
                checks.append(move)
            pos.unmake_move()
        return checks


class SearchEngine:
    def __init__(
        self,
        evaluator: Optional[Evaluator] = None,
        depth: Optional[int] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.cfg = config or CONFIG.search
        self.evaluator = evaluator or Evaluator()
        self.max_depth = self.cfg.depth if depth is None else depth

    def search(self, position: Position, depth: Optional[int] = None, time_limit_ms=CONFIG_LIMIT) -> SearchResult:
        """Search ``position`` for its side to move.

        ``time_limit_ms`` defaults to the configured budget; pass None to
        search by depth only. The position is restored before returning.
        """
        limit = self.cfg.time_limit_ms if time_limit_ms is CONFIG_LIMIT else time_limit_ms
        search = Search(position, self.evaluator, self.cfg, limit)
        return search.run(self.max_depth if depth is None else depth)
