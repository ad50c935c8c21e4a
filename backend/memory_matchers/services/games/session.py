"""Single-player memory round: deck, flips, match evaluation, timing.

The session never touches rendering, sound or storage. It raises events
(``Matched``, ``Mismatch``, ``Won``) for whoever subscribes, and hands the
delayed pair evaluation to an injected scheduler so the board can show both
cards before they are judged.
"""

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, List, Optional, Sequence, Set, Tuple

from .deck import DEFAULT_FACES, CardSlot, build_deck, grid_label, validate_grid
from .errors import GameNotStarted, InvalidTapIndex
from .scheduler import ManualScheduler, ScheduledTask


logger = logging.getLogger(__name__)

IDLE = 'idle'
IN_PROGRESS = 'in_progress'
WON = 'won'

DEFAULT_EVALUATION_DELAY = 0.5


@dataclass(frozen=True)
class Matched:
    indices: Tuple[int, int]
    face: Hashable


@dataclass(frozen=True)
class Mismatch:
    indices: Tuple[int, int]


@dataclass(frozen=True)
class Won:
    elapsed: float
    game: str


class GameSession:
    """State machine for one board: ``idle -> in_progress -> won``.

    ``restart`` (or a new ``start``) returns to ``in_progress`` from any
    started state. Every (re)start bumps ``generation``; a deferred
    evaluation remembers the generation and pair it was scheduled for and
    is discarded if either has moved on by the time it fires.
    """

    def __init__(self, faces: Sequence[Hashable] = DEFAULT_FACES,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic,
                 scheduler=None,
                 evaluation_delay: float = DEFAULT_EVALUATION_DELAY):
        self.faces = list(faces)
        self.evaluation_delay = evaluation_delay
        self._rng = rng or random.Random()
        self._clock = clock
        self._scheduler = scheduler or ManualScheduler()
        self._lock = threading.RLock()
        self._listeners: List[Callable[[Any], Any]] = []

        self.status = IDLE
        self.rows: Optional[int] = None
        self.columns: Optional[int] = None
        self.deck: List[Hashable] = []
        self.selected: List[int] = []
        self.matched: Set[int] = set()
        self.won = False
        self.generation = 0
        self._started_at: Optional[float] = None
        self._final_elapsed: Optional[float] = None
        self._pending: Optional[ScheduledTask] = None

    # ---- lifecycle ----

    def start(self, rows: int, columns: int, faces: Optional[Sequence[Hashable]] = None) -> None:
        # Validation and dealing happen before any state changes.
        validate_grid(rows, columns)
        pool = list(faces) if faces is not None else self.faces
        deck = build_deck(pool, (rows * columns) // 2, self._rng)
        with self._lock:
            self.faces = pool
            self.rows, self.columns = rows, columns
            self._begin_round(deck)
        logger.info(f"[start] game={self.game} generation={self.generation}")

    def restart(self) -> None:
        with self._lock:
            if self.rows is None or self.columns is None:
                raise GameNotStarted("Cannot restart before a grid size was chosen")
            deck = build_deck(self.faces, (self.rows * self.columns) // 2, self._rng)
            self._begin_round(deck)
        logger.info(f"[restart] game={self.game} generation={self.generation}")

    def abandon(self) -> None:
        """Cancel a pending evaluation without touching the board."""
        with self._lock:
            self._cancel_pending()
            self.generation += 1

    def _begin_round(self, deck: List[Hashable]) -> None:
        self._cancel_pending()
        self.generation += 1
        self.deck = deck
        self.selected = []
        self.matched = set()
        self.won = False
        self._final_elapsed = None
        self._started_at = self._clock()
        self.status = IN_PROGRESS

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    # ---- play ----

    def tap(self, index: int) -> bool:
        """Flip the card at ``index``. Returns True if the selection changed.

        Taps on matched or already-selected cards, taps while a pair awaits
        evaluation, and taps after the round is won are ignored.
        """
        with self._lock:
            if self.status == IDLE:
                raise GameNotStarted("Choose a grid size before tapping cards")
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.deck):
                raise InvalidTapIndex(f"Card index {index!r} outside 0..{len(self.deck) - 1}")
            if self.status == WON:
                return False
            if index in self.matched or index in self.selected:
                return False
            if len(self.selected) >= 2:
                logger.debug(f"[tap-ignored] game={self.game} index={index} pair pending")
                return False

            self.selected.append(index)
            if len(self.selected) == 2:
                generation, pair = self.generation, tuple(self.selected)
                self._pending = self._scheduler.schedule(
                    self.evaluation_delay,
                    lambda: self._evaluate_deferred(generation, pair),
                    key=(self.game, generation, pair),
                )
            return True

    def _evaluate_deferred(self, generation: int, pair: Tuple[int, int]) -> None:
        with self._lock:
            if generation != self.generation or tuple(self.selected) != pair:
                logger.info(
                    f"[eval-stale] game={self.game} expected_generation={generation} "
                    f"actual_generation={self.generation} pair={pair}"
                )
                return
            self._pending = None
            events = self._judge_pair()
        self._emit_all(events, generation)

    def evaluate(self):
        """Judge the pending pair once. Returns the emitted events, or None."""
        with self._lock:
            if self.status != IN_PROGRESS or len(self.selected) != 2:
                return None
            self._cancel_pending()
            generation = self.generation
            events = self._judge_pair()
        self._emit_all(events, generation)
        return events

    def _judge_pair(self) -> List[Any]:
        first, second = self.selected
        self.selected = []
        if self.deck[first] != self.deck[second]:
            logger.info(f"[evaluate] game={self.game} mismatch={first},{second}")
            return [Mismatch((first, second))]

        self.matched.update((first, second))
        events: List[Any] = [Matched((first, second), self.deck[first])]
        logger.info(f"[evaluate] game={self.game} match={first},{second} matched={len(self.matched)}/{len(self.deck)}")
        if len(self.matched) == len(self.deck):
            self._final_elapsed = self._clock() - self._started_at
            self.won = True
            self.status = WON
            events.append(Won(self._final_elapsed, self.game))
            logger.info(f"[won] game={self.game} elapsed={self._final_elapsed:.3f}s")
        return events

    # ---- queries ----

    @property
    def game(self) -> Optional[str]:
        if self.rows is None or self.columns is None:
            return None
        return grid_label(self.rows, self.columns)

    @property
    def pending(self) -> bool:
        return len(self.selected) == 2

    @property
    def cards(self) -> List[CardSlot]:
        return [CardSlot(i, face) for i, face in enumerate(self.deck)]

    def elapsed_time(self) -> float:
        with self._lock:
            if self.status == IDLE:
                return 0.0
            if self.status == WON:
                return self._final_elapsed
            return self._clock() - self._started_at

    def is_face_up(self, index: int) -> bool:
        return index in self.matched or index in self.selected

    def to_dict(self):
        with self._lock:
            cards = []
            for slot in self.cards:
                face_up = self.is_face_up(slot.index)
                cards.append({
                    'index': slot.index,
                    'face_up': face_up,
                    'matched': slot.index in self.matched,
                    'face': slot.face if face_up else None,
                })
            return {
                'status': self.status,
                'rows': self.rows,
                'columns': self.columns,
                'game': self.game,
                'won': self.won,
                'pending': self.pending,
                'elapsed': self.elapsed_time(),
                'cards': cards,
            }

    # ---- events ----

    def subscribe(self, listener: Callable[[Any], Any]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[Any], Any]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _emit(self, event) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"[event-error] game={self.game} listener failed on {type(event).__name__}")

    def _emit_all(self, events: List[Any], generation: int) -> None:
        # Listeners run outside the lock so they may call back into the session.
        # Events of a round replaced in the meantime are dropped.
        for event in events:
            if self.generation != generation:
                logger.info(f"[event-stale] game={self.game} dropped {type(event).__name__} of generation {generation}")
                return
            self._emit(event)
