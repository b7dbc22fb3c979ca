"""Outer surfaces of the engine: FEN conversion, HTTP relay and command line."""
