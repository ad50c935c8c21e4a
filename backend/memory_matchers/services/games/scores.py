"""Score records and the stores that keep them.

The engine only needs ``record`` and ``all_records``; the store decides how
and where rows live. Failures surface as ``PersistenceError`` and are never
retried here.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from typing import List, Protocol

from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistenceError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreRecord:
    """Result of one won round: who, how long (seconds) and on which grid."""

    name: str
    time: float
    game: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self):
        return asdict(self)


class ScoreStore(Protocol):
    """Append-only set of score records."""

    def record(self, score: ScoreRecord) -> ScoreRecord:
        """Persist ``score``. Raises PersistenceError if the write fails."""

    def all_records(self) -> List[ScoreRecord]:
        """Every stored record in insertion order. Raises PersistenceError on read failure."""


class InMemoryScoreStore:
    """Process-local store, used for tests and when no database is configured."""

    def __init__(self):
        self._records: List[ScoreRecord] = []
        self._lock = threading.Lock()

    def record(self, score: ScoreRecord) -> ScoreRecord:
        with self._lock:
            self._records.append(score)
        return score

    def all_records(self) -> List[ScoreRecord]:
        with self._lock:
            return list(self._records)


class SqlScoreStore:
    """Flask-SQLAlchemy backed store writing to the ``score`` table.

    Must be used inside an application context.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        if self._session is not None:
            return self._session
        from memory_matchers import db
        return db.session

    def record(self, score: ScoreRecord) -> ScoreRecord:
        from memory_matchers.models import Score

        row = Score(id=score.id, name=score.name, time=score.time, game=score.game)
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(f"[score-record] failed id={score.id} game={score.game}: {exc}")
            raise PersistenceError(f"Could not save score for {score.name!r}") from exc
        logger.info(f"[score-record] id={score.id} name={score.name!r} time={score.time:.3f}s game={score.game}")
        return score

    def all_records(self) -> List[ScoreRecord]:
        from memory_matchers.models import Score

        try:
            rows = self.session.query(Score).order_by(Score.created_at, Score.id).all()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(f"[score-read] failed: {exc}")
            raise PersistenceError("Could not load scores") from exc
        return [ScoreRecord(id=r.id, name=r.name, time=r.time, game=r.game) for r in rows]
