"""Move ordering: TT move first, then MVV-LVA captures, then killers."""

from typing import Dict, List, Optional, Sequence, Tuple

from .position import Move

TT_MOVE_SCORE = 2_000_000
CAPTURE_SCORE = 1_000_000
KILLER_1_SCORE = 500_000
KILLER_2_SCORE = 400_000


class KillerTable:
    """Two most recent quiet cutoff moves per ply."""

    def __init__(self, max_ply: int = 128):
        self.slots: List[List[Optional[Move]]] = [[None, None] for _ in range(max_ply)]

    def store(self, ply: int, move: Move) -> None:
        if ply >= len(self.slots):
            return
        slot = self.slots[ply]
        if move != slot[0]:
            slot[1] = slot[0]
            slot[0] = move

    def get(self, ply: int) -> Tuple[Optional[Move], Optional[Move]]:
        if ply >= len(self.slots):
            return None, None
        first, second = self.slots[ply]
        return first, second

    def clear(self) -> None:
        for slot in self.slots:
            slot[0] = slot[1] = None


def mvv_lva(move: Move, values: Dict[int, int]) -> int:
    """Victim value minus attacker value; en passant victims are pawns."""
    return values[move.captured] - values[move.piece]


def order_moves(
    moves: List[Move],
    values: Dict[int, int],
    tt_move: Optional[Move] = None,
    killers: Sequence[Optional[Move]] = (None, None),
) -> List[Move]:
    """Score ``moves`` in place and sort them, best first.

    The sort is stable, so moves with equal scores keep generation order.
    """
    killer_1, killer_2 = killers
    for move in moves:
        if tt_move is not None and move == tt_move:
            move.score = TT_MOVE_SCORE
        elif move.captured is not None:
            move.score = CAPTURE_SCORE + mvv_lva(move, values)
        elif killer_1 is not None and move == killer_1:
            move.score = KILLER_1_SCORE
        elif killer_2 is not None and move == killer_2:
            move.score = KILLER_2_SCORE
        else:
            move.score = 0
    moves.sort(key=lambda m: m.score, reverse=True)
    return moves
