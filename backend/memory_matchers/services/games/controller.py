"""Screen flow around a game session.

mode_select -> playing -> name_entry -> mode_select, with a scores screen
reachable from mode selection. The controller is the only place where a
won round turns into a ``ScoreRecord`` and reaches the store.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .deck import grid_label, validate_grid
from .errors import ControllerStateError, InvalidGridSize, InvalidPlayerName
from .scores import ScoreRecord, ScoreStore
from .session import GameSession, Won


logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 64


@dataclass(frozen=True)
class ModeSelect:
    screen = 'mode_select'


@dataclass(frozen=True)
class Playing:
    session: GameSession
    screen = 'playing'


@dataclass(frozen=True)
class NameEntry:
    elapsed: float
    game: str
    screen = 'name_entry'


@dataclass(frozen=True)
class Scores:
    records: Tuple[ScoreRecord, ...]
    screen = 'scores'


ControllerState = Union[ModeSelect, Playing, NameEntry, Scores]


class SessionController:
    def __init__(self, store: ScoreStore,
                 session_factory: Callable[[], GameSession] = GameSession,
                 modes: Optional[Sequence[str]] = None):
        self.store = store
        self.modes = list(modes) if modes else None
        self.state: ControllerState = ModeSelect()
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._listeners: List[Callable[[Any], Any]] = []
        self._session_listener: Optional[Callable[[Any], Any]] = None

    @property
    def screen(self) -> str:
        return self.state.screen

    @property
    def session(self) -> Optional[GameSession]:
        state = self.state
        return state.session if isinstance(state, Playing) else None

    def subscribe(self, listener: Callable[[Any], Any]) -> None:
        """Receive every ``Matched``/``Mismatch``/``Won`` event of the current round."""
        self._listeners.append(listener)

    # ---- transitions ----

    def choose_mode(self, rows: int, columns: int) -> GameSession:
        with self._lock:
            self._require((ModeSelect, Scores), 'choose a mode')
            validate_grid(rows, columns)
            label = grid_label(rows, columns)
            if self.modes is not None and label not in self.modes:
                raise InvalidGridSize(f"Mode {label} is not offered (choose from {', '.join(self.modes)})")
            session = self._session_factory()
            session.start(rows, columns)
            self._attach(session)
            self.state = Playing(session)
        logger.info(f"[mode] game={label}")
        return session

    def tap(self, index: int) -> bool:
        with self._lock:
            state = self._require(Playing, 'tap a card')
        return state.session.tap(index)

    def restart(self) -> None:
        with self._lock:
            state = self._require(Playing, 'restart')
            state.session.restart()

    def confirm_name(self, name: str) -> ScoreRecord:
        """Save the pending result under ``name`` and return to mode selection.

        A PersistenceError propagates and leaves the controller on the name
        entry screen so the caller can retry or discard.
        """
        with self._lock:
            state = self._require(NameEntry, 'confirm a name')
            if name is not None and not isinstance(name, str):
                raise InvalidPlayerName("Player name must be text")
            name = (name or '').strip()
            if not name:
                raise InvalidPlayerName("Player name is required")
            if len(name) > MAX_NAME_LENGTH:
                raise InvalidPlayerName(f"Player name is limited to {MAX_NAME_LENGTH} characters")
            record = ScoreRecord(name=name, time=state.elapsed, game=state.game)
            self.store.record(record)
            self.state = ModeSelect()
        logger.info(f"[name] saved id={record.id} game={record.game}")
        return record

    def discard_score(self) -> None:
        with self._lock:
            state = self._require(NameEntry, 'discard a score')
            logger.info(f"[name] discarded game={state.game} elapsed={state.elapsed:.3f}s")
            self.state = ModeSelect()

    def show_scores(self) -> Tuple[ScoreRecord, ...]:
        with self._lock:
            self._require((ModeSelect, Scores), 'show scores')
            records = tuple(self.store.all_records())
            self.state = Scores(records)
            return records

    def back_to_menu(self) -> None:
        """Leave whatever screen is showing. A running round is abandoned."""
        with self._lock:
            self._detach()
            self.state = ModeSelect()

    # ---- session wiring ----

    def _attach(self, session: GameSession) -> None:
        self._detach()

        def _listener(event, source=session):
            self._on_session_event(source, event)

        session.subscribe(_listener)
        self._session_listener = _listener

    def _detach(self) -> None:
        session = self.session
        if session is not None:
            session.abandon()
            if self._session_listener is not None:
                session.unsubscribe(self._session_listener)
        self._session_listener = None

    def _on_session_event(self, source: GameSession, event) -> None:
        if isinstance(event, Won):
            with self._lock:
                state = self.state
                if isinstance(state, Playing) and state.session is source and source.won:
                    self._detach()
                    self.state = NameEntry(event.elapsed, event.game)
                    logger.info(f"[name-entry] game={event.game} elapsed={event.elapsed:.3f}s")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"[event-error] controller listener failed on {type(event).__name__}")

    def _require(self, allowed, action: str):
        if not isinstance(self.state, allowed):
            raise ControllerStateError(f"Cannot {action} from the {self.screen} screen")
        return self.state

    # ---- snapshot ----

    def to_dict(self):
        with self._lock:
            state = self.state
            payload = {'screen': state.screen, 'modes': self.modes}
            if isinstance(state, Playing):
                payload['session'] = state.session.to_dict()
            elif isinstance(state, NameEntry):
                payload['elapsed'] = state.elapsed
                payload['game'] = state.game
            elif isinstance(state, Scores):
                payload['scores'] = [r.to_dict() for r in state.records]
            return payload
