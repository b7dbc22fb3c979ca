# tempo/config.py
from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import os
import tomllib

logger = logging.getLogger(__name__)

# Defaults (centipawns)
PIECE_VALUES = {
    "PAWN": 100,
    "KNIGHT": 320,
    "BISHOP": 330,
    "ROOK": 500,
    "QUEEN": 950,
    "KING": 20000,
}

@dataclass
class SearchConfig:
    depth: int = 4
    time_limit_ms: Optional[int] = 3000  # None means depth-only
    time_check_nodes: int = 2048
    hash_size_mb: int = 64
    use_quiescence: bool = True
    q_max_depth: int = 32
    quiescence_checks: bool = False  # also search quiet checking moves at the first q-ply
    use_lmr: bool = True
    lmr_min_depth: int = 3
    lmr_min_moves: int = 3  # moves searched at full depth before reductions start
    delta_margin: int = 300  # roughly one minor piece
    max_ply: int = 64  # no check extensions past this ply
    allow_missing_king: bool = False

@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    bishop_pair_bonus: int = 50
    use_positional: bool = True

@dataclass
class ApiConfig:
    engine_name: str = "Tempo"
    api_host: str = "127.0.0.1"
    api_port: int = 4000

@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "api"):
            target = getattr(cfg, section)
            for k, v in raw.get(section, {}).items():
                if section == "eval" and k == "piece_values":
                    # partial tables override single pieces only
                    target.piece_values = {**PIECE_VALUES, **{name.upper(): val for name, val in v.items()}}
                elif hasattr(target, k):
                    setattr(target, k, v)
                else:
                    logger.warning("Unknown config key %s.%s in %s", section, k, path)
        if "log_level" in raw:
            cfg.log_level = raw["log_level"]
        if cfg.search.time_check_nodes < 1:
            logger.warning("search.time_check_nodes must be at least 1, using 1")
            cfg.search.time_check_nodes = 1
        return cfg

    def apply_env(self, environ=None) -> "Config":
        """Apply TEMPO_SEARCH_DEPTH / TEMPO_TIME_LIMIT_MS overrides."""
        environ = os.environ if environ is None else environ
        depth = environ.get("TEMPO_SEARCH_DEPTH")
        if depth:
            try:
                self.search.depth = int(depth)
            except ValueError:
                logger.warning("Ignoring non-integer TEMPO_SEARCH_DEPTH=%r", depth)
        limit = environ.get("TEMPO_TIME_LIMIT_MS")
        if limit:
            try:
                self.search.time_limit_ms = int(limit) or None
            except ValueError:
                logger.warning("Ignoring non-integer TEMPO_TIME_LIMIT_MS=%r", limit)
        return self

# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("TEMPO_CONFIG_TOML", "config.toml")).apply_env()
