"""
Integration test suite for the Tempo chess engine.

Tests components working together end-to-end:
- Full game simulations (engine vs engine, checked by python-chess)
- FEN conversion layer
- FastAPI relay (FEN cache and /think)
- Command-line interface
- Configuration loading and environment overrides
"""

import argparse

import chess
import pytest
from fastapi.testclient import TestClient

from interface.api import app, cache
from interface.cli import main, run_play
from interface.fen import fen_from_pieces, pieces_from_fen, position_from_fen, position_to_fen
from tempo.config import Config
from tempo.core.evaluator import Evaluator
from tempo.core.search import SearchEngine
from tempo.main import Engine, starting_pieces

KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 0 1"
BACK_RANK_MATE = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"


def depth_only_config() -> Config:
    cfg = Config()
    cfg.search.time_limit_ms = None
    return cfg


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE VS ENGINE: FULL GAME SIMULATIONS
# ════════════════════════════════════════════════════════════════════════════


class TestFullGame:
    """The engine's moves stay legal over a stretch of self-play."""

    def test_engine_vs_engine_stays_legal(self):
        engine = SearchEngine(depth=2, config=depth_only_config().search)
        board = chess.Board()
        for ply in range(12):
            if board.is_game_over():
                break
            result = engine.search(position_from_fen(board.fen()))
            move = chess.Move.from_uci(result.move.uci())
            assert move in board.legal_moves, f"Illegal move {move} at ply {ply}"
            board.push(move)
        assert board.ply() >= 10

    def test_engine_plays_from_midgame(self):
        engine = SearchEngine(depth=2, config=depth_only_config().search)
        board = chess.Board(KIWIPETE)
        for _ in range(4):
            result = engine.search(position_from_fen(board.fen()))
            move = chess.Move.from_uci(result.move.uci())
            assert move in board.legal_moves
            board.push(move)

    def test_facade_move_matches_piece_list(self):
        pieces = pieces_from_fen(KIWIPETE)
        response = Engine(depth=2, config=depth_only_config()).think(pieces, side="both")
        for color in chess.COLORS:
            result = response.for_color(color)
            spec = pieces[result.piece_index]
            assert spec.color == color
            assert spec.square == result.from_square


# ════════════════════════════════════════════════════════════════════════════
#  FEN LAYER
# ════════════════════════════════════════════════════════════════════════════


class TestFen:
    def test_pieces_from_start_fen(self):
        pieces = pieces_from_fen(chess.STARTING_FEN)
        assert len(pieces) == 32
        assert set(pieces) == set(starting_pieces())

    def test_pieces_in_reading_order(self):
        pieces = pieces_from_fen(chess.STARTING_FEN)
        assert pieces[0].square == chess.A8
        assert pieces[-1].square == chess.H1

    def test_fen_from_pieces(self):
        assert fen_from_pieces(starting_pieces()) == chess.STARTING_BOARD_FEN

    def test_fen_from_named_pieces(self):
        assert fen_from_pieces([("king", "white", 4, 0), ("king", "black", 4, 7)]) == "4k3/8/8/8/8/8/8/4K3"

    def test_position_round_trip(self):
        assert position_to_fen(position_from_fen(KIWIPETE)) == KIWIPETE

    def test_position_keeps_side_and_ep(self):
        fen = "4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1"
        pos = position_from_fen(fen)
        assert pos.turn == chess.WHITE
        assert pos.ep_square == chess.D6

    def test_castling_needs_king_at_home(self):
        pos = position_from_fen("4k3/8/8/8/8/8/8/R4K1R w KQ - 0 1")
        assert pos.castling == 0

    def test_invalid_fen(self):
        with pytest.raises(ValueError):
            pieces_from_fen("not/a/fen")
        with pytest.raises(ValueError):
            pieces_from_fen("   ")


# ════════════════════════════════════════════════════════════════════════════
#  FASTAPI RELAY
# ════════════════════════════════════════════════════════════════════════════


class TestAPIIntegration:
    """FEN cache and /think through FastAPI TestClient."""

    @pytest.fixture(autouse=True)
    def setup_client(self):
        cache.clear()
        self.client = TestClient(app)
        yield
        cache.clear()

    def test_get_fen_empty(self):
        resp = self.client.get("/fen")
        assert resp.status_code == 404

    def test_post_then_get_fen(self):
        resp = self.client.post("/fen", json={"fen": chess.STARTING_FEN})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert self.client.get("/fen").json() == {"fen": chess.STARTING_FEN}

    def test_post_fen_replaces_previous(self):
        self.client.post("/fen", json={"fen": chess.STARTING_FEN})
        self.client.post("/fen", json={"fen": KIWIPETE})
        assert self.client.get("/fen").json()["fen"] == KIWIPETE

    def test_post_empty_fen(self):
        resp = self.client.post("/fen", json={"fen": "  "})
        assert resp.status_code == 400

    def test_post_invalid_fen(self):
        resp = self.client.post("/fen", json={"fen": "invalid"})
        assert resp.status_code == 400
        assert self.client.get("/fen").status_code == 404

    def test_post_missing_field(self):
        resp = self.client.post("/fen", json={})
        assert resp.status_code == 422

    def test_reset(self):
        self.client.post("/fen", json={"fen": chess.STARTING_FEN})
        assert self.client.post("/reset").status_code == 200
        assert self.client.get("/fen").status_code == 404

    def test_think_with_inline_fen(self):
        resp = self.client.post("/think", json={"fen": chess.STARTING_FEN, "depth": 1, "side": "white"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["black"] is None
        white = data["white"]
        assert white["outcome"] == "move"
        assert chess.Move.from_uci(white["uci"]) in chess.Board().legal_moves
        assert 0 <= white["index"] < 32

    def test_think_uses_cached_fen(self):
        self.client.post("/fen", json={"fen": BACK_RANK_MATE})
        resp = self.client.post("/think", json={"depth": 2, "side": "white"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["fen"] == BACK_RANK_MATE
        assert data["white"]["uci"] == "a1a8"

    def test_think_both_sides(self):
        resp = self.client.post("/think", json={"fen": chess.STARTING_FEN, "depth": 1})
        data = resp.json()
        assert data["white"]["uci"] is not None
        assert data["black"]["uci"] is not None

    def test_think_without_fen(self):
        resp = self.client.post("/think", json={"depth": 1})
        assert resp.status_code == 404

    def test_think_invalid_fen(self):
        resp = self.client.post("/think", json={"fen": "invalid", "depth": 1})
        assert resp.status_code == 400

    def test_think_missing_king(self):
        resp = self.client.post("/think", json={"fen": "8/8/8/8/8/8/8/4K3 w - - 0 1", "depth": 1})
        assert resp.status_code == 400

    def test_think_checkmated_side(self):
        resp = self.client.post("/think", json={"fen": FOOLS_MATE, "depth": 1, "side": "white"})
        assert resp.status_code == 200
        white = resp.json()["white"]
        assert white["outcome"] == "checkmate"
        assert white["uci"] is None

    def test_think_bad_side(self):
        resp = self.client.post("/think", json={"fen": chess.STARTING_FEN, "side": "red"})
        assert resp.status_code == 422

    def test_think_depth_clamped(self):
        resp = self.client.post("/think", json={"fen": BACK_RANK_MATE, "depth": 0, "side": "white"})
        assert resp.status_code == 200
        assert resp.json()["white"]["depth"] == 1


# ════════════════════════════════════════════════════════════════════════════
#  COMMAND LINE
# ════════════════════════════════════════════════════════════════════════════


class TestCLI:
    def test_think_prints_both_sides(self, capsys):
        assert main(["--depth", "1"]) == 0
        out = capsys.readouterr().out
        assert "white: " in out
        assert "black: " in out

    def test_think_finds_mate(self, capsys):
        assert main(["--fen", BACK_RANK_MATE, "--depth", "2", "--side", "white"]) == 0
        out = capsys.readouterr().out
        assert "white: a1a8" in out
        assert "mate 1" in out

    def test_think_reports_checkmate(self, capsys):
        assert main(["--fen", FOOLS_MATE, "--depth", "1", "--side", "white"]) == 0
        assert "no move (checkmate)" in capsys.readouterr().out

    def test_think_invalid_fen(self, capsys):
        assert main(["--fen", "invalid", "--depth", "1"]) == 2
        assert "error" in capsys.readouterr().err

    def _play_args(self, fen, play):
        return argparse.Namespace(fen=fen, play=play, depth=2, time_ms=None)

    def test_play_engine_delivers_mate(self, capsys):
        def never(_prompt):
            raise AssertionError("engine side should not ask for input")

        assert run_play(self._play_args(BACK_RANK_MATE, "black"), read=never) == 0
        out = capsys.readouterr().out
        assert "Engine plays: a1a8" in out
        assert "Result: 1-0" in out

    def test_play_rejects_illegal_input(self, capsys):
        answers = iter(["zzzz", "a1a2x", "a1a8"])
        assert run_play(self._play_args(BACK_RANK_MATE, "white"), read=lambda _p: next(answers)) == 0
        out = capsys.readouterr().out
        assert out.count("Illegal move") == 2
        assert "Result: 1-0" in out

    def test_play_quit(self, capsys):
        assert run_play(self._play_args(chess.STARTING_FEN, "white"), read=lambda _p: "quit") == 0
        assert "Game Over" not in capsys.readouterr().out


# ════════════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ════════════════════════════════════════════════════════════════════════════


class TestConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = Config.load_from_toml(str(tmp_path / "absent.toml"))
        assert cfg.search.depth == 4
        assert cfg.eval.bishop_pair_bonus == 50
        assert cfg.api.api_port == 4000

    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'log_level = "DEBUG"\n'
            "[search]\n"
            "depth = 2\n"
            "use_lmr = false\n"
            "[eval]\n"
            "bishop_pair_bonus = 30\n"
            "[api]\n"
            "api_port = 5001\n"
            "bogus = 1\n"
        )
        cfg = Config.load_from_toml(str(path))
        assert cfg.log_level == "DEBUG"
        assert cfg.search.depth == 2
        assert cfg.search.use_lmr is False
        assert cfg.eval.bishop_pair_bonus == 30
        assert cfg.api.api_port == 5001
        assert not hasattr(cfg.api, "bogus")

    def test_partial_piece_values_merge_over_defaults(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[eval]\npiece_values = { QUEEN = 900 }\n")
        cfg = Config.load_from_toml(str(path))
        assert cfg.eval.piece_values["QUEEN"] == 900
        assert cfg.eval.piece_values["PAWN"] == 100
        ev = Evaluator(cfg.eval)
        assert ev.piece_value(chess.QUEEN) == 900
        assert ev.piece_value(chess.ROOK) == 500

    def test_zero_check_interval_clamped_on_load(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("[search]\ntime_check_nodes = 0\n")
        cfg = Config.load_from_toml(str(path))
        assert cfg.search.time_check_nodes == 1

    def test_env_overrides(self):
        cfg = Config().apply_env({"TEMPO_SEARCH_DEPTH": "6", "TEMPO_TIME_LIMIT_MS": "250"})
        assert cfg.search.depth == 6
        assert cfg.search.time_limit_ms == 250

    def test_env_bad_values_ignored(self):
        cfg = Config().apply_env({"TEMPO_SEARCH_DEPTH": "deep", "TEMPO_TIME_LIMIT_MS": "soon"})
        assert cfg.search.depth == 4
        assert cfg.search.time_limit_ms == 3000

    def test_env_zero_time_means_depth_only(self):
        cfg = Config().apply_env({"TEMPO_TIME_LIMIT_MS": "0"})
        assert cfg.search.time_limit_ms is None

    def test_configs_do_not_share_piece_values(self):
        a, b = Config(), Config()
        a.eval.piece_values["QUEEN"] = 900
        assert b.eval.piece_values["QUEEN"] == 950
