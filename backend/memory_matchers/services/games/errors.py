"""Typed failures raised by the game engine.

Game-rule no-ops (tapping a matched card, tapping while a pair is pending)
are not errors and never raise.
"""


class MemoryMatchersError(Exception):
    """Base class for every failure the engine reports."""


class InvalidGridSize(MemoryMatchersError):
    """Requested grid has an odd card count, fewer than 4 cards, or bad dimensions."""


class InsufficientFaces(MemoryMatchersError):
    """The face pool has fewer distinct faces than the pairs requested."""


class InvalidTapIndex(MemoryMatchersError):
    """A tap referenced a card position outside the deck."""


class GameNotStarted(MemoryMatchersError):
    """An operation needs a deck but no round has been started."""


class ControllerStateError(MemoryMatchersError):
    """A controller action was requested from a screen that does not allow it."""


class InvalidPlayerName(MemoryMatchersError):
    """A score was confirmed with an empty player name."""


class PersistenceError(MemoryMatchersError):
    """Writing or reading score records failed in the underlying store."""
