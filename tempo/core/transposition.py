"""Bounded transposition table keyed by content-only position keys.

Each stored entry is a TTEntry holding the search depth, a bound flag, the
score and the best move found. Usage (example):

    from tempo.core.transposition import TranspositionTable, TT_EXACT

    tt = TranspositionTable(size_mb=1)
    key = position.position_key()
    tt.store(key, depth=3, score=123, flag=TT_EXACT, best_move=move, ply=2)
    score, best = tt.probe(key, depth=3, alpha=-INF, beta=INF, ply=2)

Replacement: for a key already present, a shallower result never replaces a
deeper one. When the table is full the least recently used entry is dropped,
so memory is bounded and eviction does not depend on dict insertion order
alone.

Mate scores are stored relative to the node they were found at (``score +
ply`` for wins, ``score - ply`` for losses) and converted back with the
probing node's ply, so a cached mate keeps the right distance wherever it is
read from.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Hashable, Optional, Tuple

from .position import Move

MATE_SCORE = 100000
MATE_THRESHOLD = MATE_SCORE - 1000

TT_EXACT = 0
TT_LOWER = 1  # fail-high: true score >= stored score
TT_UPPER = 2  # fail-low: true score <= stored score

# Rough footprint of one entry: key tuple with a 64-char board string,
# the entry object and the OrderedDict node.
ENTRY_BYTES = 400


def score_to_tt(score: int, ply: int) -> int:
    if score > MATE_THRESHOLD:
        return score + ply
    if score < -MATE_THRESHOLD:
        return score - ply
    return score


def score_from_tt(score: int, ply: int) -> int:
    if score > MATE_THRESHOLD:
        return score - ply
    if score < -MATE_THRESHOLD:
        return score + ply
    return score


@dataclass
class TTEntry:
    depth: int
    score: int
    flag: int
    best_move: Optional[Move]


class TranspositionTable:
    """LRU-bounded table of TTEntry objects.

    Methods:
      - get(key) -> Optional[TTEntry]
      - probe(key, depth, alpha, beta, ply) -> (score or None, best move)
      - store(key, depth, score, flag, best_move, ply)
      - clear()
    """

    def __init__(self, size_mb: int = 64, max_entries: Optional[int] = None):
        if max_entries is None:
            max_entries = max(1, size_mb * 1024 * 1024 // ENTRY_BYTES)
        self.max_entries = max_entries
        self._table: "OrderedDict[Hashable, TTEntry]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._table)

    def get(self, key: Hashable) -> Optional[TTEntry]:
        entry = self._table.get(key)
        if entry is not None:
            self._table.move_to_end(key)
        return entry

    def probe(
        self, key: Hashable, depth: int, alpha: int, beta: int, ply: int
    ) -> Tuple[Optional[int], Optional[Move]]:
        """Return (usable score or None, suggested move or None)."""
        entry = self.get(key)
        if entry is None:
            return None, None
        if entry.depth >= depth:
            score = score_from_tt(entry.score, ply)
            if (
                entry.flag == TT_EXACT
                or (entry.flag == TT_LOWER and score >= beta)
                or (entry.flag == TT_UPPER and score <= alpha)
            ):
                return score, entry.best_move
        return None, entry.best_move

    def store(
        self,
        key: Hashable,
        depth: int,
        score: int,
        flag: int,
        best_move: Optional[Move],
        ply: int = 0,
    ) -> None:
        existing = self._table.get(key)
        if existing is not None and existing.depth > depth:
            self._table.move_to_end(key)
            return
        self._table[key] = TTEntry(depth, score_to_tt(score, ply), flag, best_move)
        self._table.move_to_end(key)
        while len(self._table) > self.max_entries:
            self._table.popitem(last=False)

    def clear(self) -> None:
        self._table.clear()
