"""Pseudo-legal move generation and attack detection.

Targets for every square are precomputed once at import: knight and king
destinations, pawn capture squares and the eight sliding rays. Generation
walks the grid and leaves self-check filtering to the caller (try the move,
test the mover's king, undo), which ``legal_moves`` does for convenience.
"""

from typing import List, Optional

import chess

from .position import CASTLES, KINGSIDE, PIECES, QUEENSIDE, Move, Position

PROMOTION_KINDS = (chess.QUEEN, chess.ROOK, chess.BISHOP, chess.KNIGHT)

_KNIGHT_DELTAS = [(1, 2), (2, 1), (-1, 2), (-2, 1), (1, -2), (2, -1), (-1, -2), (-2, -1)]
_KING_DELTAS = [(1, 0), (-1, 0), (0, 1), (0, -1), (1, 1), (1, -1), (-1, 1), (-1, -1)]
_ROOK_DIRS = [(1, 0), (-1, 0), (0, 1), (0, -1)]
_BISHOP_DIRS = [(1, 1), (1, -1), (-1, 1), (-1, -1)]


def _on_board(file: int, rank: int) -> bool:
    return 0 <= file <= 7 and 0 <= rank <= 7


def _step_table(deltas) -> List[List[int]]:
    table = []
    for sq in chess.SQUARES:
        f, r = chess.square_file(sq), chess.square_rank(sq)
        table.append([chess.square(f + df, r + dr) for df, dr in deltas if _on_board(f + df, r + dr)])
    return table


def _ray_table(dirs) -> List[List[List[int]]]:
    table = []
    for sq in chess.SQUARES:
        f, r = chess.square_file(sq), chess.square_rank(sq)
        rays = []
        for df, dr in dirs:
            ray = []
            cf, cr = f + df, r + dr
            while _on_board(cf, cr):
                ray.append(chess.square(cf, cr))
                cf += df
                cr += dr
            if ray:
                rays.append(ray)
        table.append(rays)
    return table


def _pawn_table(rank_step: int) -> List[List[int]]:
    """Squares diagonally one rank away in direction ``rank_step``."""
    return _step_table([(-1, rank_step), (1, rank_step)])


KNIGHT_TARGETS = _step_table(_KNIGHT_DELTAS)
KING_TARGETS = _step_table(_KING_DELTAS)
ROOK_RAYS = _ray_table(_ROOK_DIRS)
BISHOP_RAYS = _ray_table(_BISHOP_DIRS)
QUEEN_RAYS = [ROOK_RAYS[sq] + BISHOP_RAYS[sq] for sq in chess.SQUARES]

# Squares a pawn of the given color attacks from each square.
PAWN_CAPTURES = {chess.WHITE: _pawn_table(1), chess.BLACK: _pawn_table(-1)}
# Squares from which a pawn of the given color attacks each square.
PAWN_ATTACKERS = {chess.WHITE: _pawn_table(-1), chess.BLACK: _pawn_table(1)}

_SLIDER_RAYS = {chess.BISHOP: BISHOP_RAYS, chess.ROOK: ROOK_RAYS, chess.QUEEN: QUEEN_RAYS}

# (squares that must be empty, squares the king must not be attacked on)
_CASTLE_PATHS = {
    (chess.WHITE, KINGSIDE): ((chess.F1, chess.G1), (chess.E1, chess.F1, chess.G1)),
    (chess.WHITE, QUEENSIDE): ((chess.D1, chess.C1, chess.B1), (chess.E1, chess.D1, chess.C1)),
    (chess.BLACK, KINGSIDE): ((chess.F8, chess.G8), (chess.E8, chess.F8, chess.G8)),
    (chess.BLACK, QUEENSIDE): ((chess.D8, chess.C8, chess.B8), (chess.E8, chess.D8, chess.C8)),
}


def is_square_attacked(position: Position, square: int, by_color: bool) -> bool:
    squares = position.squares

    pawn = PIECES[(chess.PAWN, by_color)]
    for s in PAWN_ATTACKERS[by_color][square]:
        if squares[s] == pawn:
            return True

    knight = PIECES[(chess.KNIGHT, by_color)]
    for s in KNIGHT_TARGETS[square]:
        if squares[s] == knight:
            return True

    king = PIECES[(chess.KING, by_color)]
    for s in KING_TARGETS[square]:
        if squares[s] == king:
            return True

    queen = PIECES[(chess.QUEEN, by_color)]
    rook = PIECES[(chess.ROOK, by_color)]
    for ray in ROOK_RAYS[square]:
        for s in ray:
            p = squares[s]
            if p is not None:
                if p == rook or p == queen:
                    return True
                break

    bishop = PIECES[(chess.BISHOP, by_color)]
    for ray in BISHOP_RAYS[square]:
        for s in ray:
            p = squares[s]
            if p is not None:
                if p == bishop or p == queen:
                    return True
                break

    return False


def in_check(position: Position, color: bool) -> bool:
    """True if ``color``'s king is attacked. A missing king is never in check."""
    king_sq = position.kings[color]
    if king_sq is None:
        return False
    return is_square_attacked(position, king_sq, not color)


def pseudo_moves(position: Position, color: bool, captures_only: bool = False) -> List[Move]:
    moves: List[Move] = []
    squares = position.squares
    for sq, piece in enumerate(squares):
        if piece is None or piece.color != color:
            continue
        pt = piece.piece_type
        if pt == chess.PAWN:
            _pawn_moves(position, sq, color, captures_only, moves)
        elif pt == chess.KNIGHT or pt == chess.KING:
            targets = KNIGHT_TARGETS[sq] if pt == chess.KNIGHT else KING_TARGETS[sq]
            for to in targets:
                target = squares[to]
                if target is None:
                    if not captures_only:
                        moves.append(Move(sq, to, pt))
                elif target.color != color:
                    moves.append(Move(sq, to, pt, captured=target.piece_type))
            if pt == chess.KING and not captures_only:
                _castle_moves(position, sq, color, moves)
        else:
            for ray in _SLIDER_RAYS[pt][sq]:
                for to in ray:
                    target = squares[to]
                    if target is None:
                        if not captures_only:
                            moves.append(Move(sq, to, pt))
                        continue
                    if target.color != color:
                        moves.append(Move(sq, to, pt, captured=target.piece_type))
                    break
    return moves


def _add_pawn_move(moves: List[Move], frm: int, to: int, captured: Optional[int], promote: bool) -> None:
    if promote:
        for kind in PROMOTION_KINDS:
            moves.append(Move(frm, to, chess.PAWN, captured=captured, promotion=kind))
    else:
        moves.append(Move(frm, to, chess.PAWN, captured=captured))


def _pawn_moves(position: Position, sq: int, color: bool, captures_only: bool, moves: List[Move]) -> None:
    squares = position.squares
    if color == chess.WHITE:
        forward, start_rank, last_rank = 8, 1, 7
    else:
        forward, start_rank, last_rank = -8, 6, 0

    if not captures_only:
        one = sq + forward
        if squares[one] is None:
            _add_pawn_move(moves, sq, one, None, chess.square_rank(one) == last_rank)
            two = one + forward
            if chess.square_rank(sq) == start_rank and squares[two] is None:
                moves.append(Move(sq, two, chess.PAWN))

    for to in PAWN_CAPTURES[color][sq]:
        target = squares[to]
        if target is not None:
            if target.color != color:
                _add_pawn_move(moves, sq, to, target.piece_type, chess.square_rank(to) == last_rank)
        elif to == position.ep_square and squares[to - forward] == PIECES[(chess.PAWN, not color)]:
            moves.append(Move(sq, to, chess.PAWN, captured=chess.PAWN, en_passant=True))


def _castle_moves(position: Position, sq: int, color: bool, moves: List[Move]) -> None:
    squares = position.squares
    for side in (KINGSIDE, QUEENSIDE):
        rule = CASTLES[(color, side)]
        if not position.castling & rule.right or sq != rule.king_from:
            continue
        if squares[rule.rook_from] != PIECES[(chess.ROOK, color)]:
            continue
        empty, safe = _CASTLE_PATHS[(color, side)]
        if any(squares[s] is not None for s in empty):
            continue
        if any(is_square_attacked(position, s, not color) for s in safe):
            continue
        moves.append(Move(rule.king_from, rule.king_to, chess.KING, castle=side))


def legal_moves(position: Position) -> List[Move]:
    """Moves for the side to move that do not leave its own king attacked."""
    color = position.turn
    legal = []
    for move in pseudo_moves(position, color):
        position.make_move(move)
        if not in_check(position, color):
            legal.append(move)
        position.unmake_move()
    return legal


def perft(position: Position, depth: int) -> int:
    """Count legal move sequences of length ``depth``."""
    if depth == 0:
        return 1
    color = position.turn
    nodes = 0
    for move in pseudo_moves(position, color):
        position.make_move(move)
        if not in_check(position, color):
            nodes += 1 if depth == 1 else perft(position, depth - 1)
        position.unmake_move()
    return nodes
