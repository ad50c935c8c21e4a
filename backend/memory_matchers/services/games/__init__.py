"""Game domain services: deck, session state machine, scores and timers.

This package holds the memory-matching engine. HTTP routes and socket
handlers import from here, keeping transport concerns separated from core
game mechanics.
"""

from .controller import ModeSelect, NameEntry, Playing, Scores, SessionController
from .deck import DEFAULT_FACES, CardSlot, build_deck, grid_label, parse_grid_label, validate_grid
from .errors import (
    ControllerStateError,
    GameNotStarted,
    InsufficientFaces,
    InvalidGridSize,
    InvalidPlayerName,
    InvalidTapIndex,
    MemoryMatchersError,
    PersistenceError,
)
from .registry import SessionRegistry
from .scheduler import ManualScheduler, ScheduledTask, TaskScheduler
from .scores import InMemoryScoreStore, ScoreRecord, ScoreStore, SqlScoreStore
from .session import IDLE, IN_PROGRESS, WON, GameSession, Matched, Mismatch, Won

__all__ = [
    # deck
    "DEFAULT_FACES",
    "CardSlot",
    "build_deck",
    "grid_label",
    "parse_grid_label",
    "validate_grid",
    # session
    "GameSession",
    "Matched",
    "Mismatch",
    "Won",
    "IDLE",
    "IN_PROGRESS",
    "WON",
    # scheduling
    "ManualScheduler",
    "ScheduledTask",
    "TaskScheduler",
    # scores
    "ScoreRecord",
    "ScoreStore",
    "InMemoryScoreStore",
    "SqlScoreStore",
    # flow
    "SessionController",
    "SessionRegistry",
    "ModeSelect",
    "Playing",
    "NameEntry",
    "Scores",
    # errors
    "MemoryMatchersError",
    "InvalidGridSize",
    "InsufficientFaces",
    "InvalidTapIndex",
    "GameNotStarted",
    "ControllerStateError",
    "InvalidPlayerName",
    "PersistenceError",
]
