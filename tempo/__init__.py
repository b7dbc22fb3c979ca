"""Tempo: a small alpha-beta chess engine that picks one move per side for a board position."""

from .main import Engine, PieceSpec, SideResult, ThinkResponse, starting_pieces, think

__version__ = "0.1.0"
