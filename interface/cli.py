"""Command-line entry point.

    python -m interface.cli --fen "<fen>" --depth 4 --side both
    python -m interface.cli --play white
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional

import chess

from interface.fen import pieces_from_fen, position_from_fen
from tempo.config import CONFIG
from tempo.core.errors import InvalidPositionError
from tempo.core.search import CONFIG_LIMIT, SearchEngine
from tempo.core.utils import format_score
from tempo.main import SIDES, Engine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tempo", description="Pick chess moves with the Tempo engine.")
    parser.add_argument("--fen", default=chess.STARTING_FEN, help="position to think on (default: start position)")
    parser.add_argument("--depth", type=int, default=None, help=f"maximum search depth (default: {CONFIG.search.depth})")
    parser.add_argument("--side", choices=sorted(SIDES), default="both", help="side(s) to pick a move for")
    parser.add_argument("--time-ms", type=int, default=None, help="time budget per side in milliseconds")
    parser.add_argument("--play", choices=["white", "black"], default=None,
                        help="play an interactive game as this color instead")
    return parser


def run_think(args: argparse.Namespace) -> int:
    try:
        pieces = pieces_from_fen(args.fen)
        limit = CONFIG_LIMIT if args.time_ms is None else args.time_ms
        response = Engine(depth=args.depth).think(pieces, side=args.side, time_limit_ms=limit)
    except (ValueError, InvalidPositionError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    for name in ("white", "black"):
        result = getattr(response, name)
        if result is None:
            continue
        if result.has_move:
            print(f"{name}: {result.uci()} (piece #{result.piece_index}, "
                  f"{format_score(result.score)}, depth {result.depth}, nodes {result.nodes})")
        else:
            print(f"{name}: no move ({result.outcome.value})")
    return 0


def run_play(args: argparse.Namespace, read: Callable[[str], str] = input) -> int:
    try:
        board = chess.Board(args.fen)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    human = chess.WHITE if args.play == "white" else chess.BLACK
    engine = SearchEngine(depth=args.depth)
    limit = CONFIG_LIMIT if args.time_ms is None else args.time_ms

    while not board.is_game_over():
        print(board)
        print("----------------------------")

        if board.turn == human:
            try:
                text = read("Enter your move (uci format, e2e4): ").strip()
            except EOFError:
                return 0
            if text in ("quit", "exit"):
                return 0
            try:
                move = chess.Move.from_uci(text)
            except ValueError:
                print("Illegal move, try again.")
                continue
            if move not in board.legal_moves:
                print("Illegal move, try again.")
                continue
            board.push(move)
        else:
            result = engine.search(position_from_fen(board.fen()), time_limit_ms=limit)
            move = chess.Move.from_uci(result.move.uci())
            print(f"Engine plays: {move.uci()} | {format_score(result.score)}")
            board.push(move)

    print("Game Over")
    print(f"Result: {board.result()}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=CONFIG.log_level)
    args = build_parser().parse_args(argv)
    if args.play:
        return run_play(args)
    return run_think(args)


if __name__ == "__main__":
    sys.exit(main())
