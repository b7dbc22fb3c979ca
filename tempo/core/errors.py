"""Exceptions raised by the engine core."""


class TempoError(Exception):
    """Base class for engine errors."""


class InvalidPositionError(TempoError, ValueError):
    """The supplied pieces do not describe a position the engine accepts."""


class MissingKingError(InvalidPositionError):
    """A side that has to be searched has no king on the board."""


class PositionStateError(TempoError, RuntimeError):
    """Make/unmake bookkeeping was violated (a programming fault)."""
