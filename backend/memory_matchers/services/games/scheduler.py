import logging
import threading
import time
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


class ScheduledTask:
    """A deferred action that can be cancelled until it fires.

    ``key`` is carried for log lines only; the owner decides whether a fired
    action is still current (see ``GameSession``'s generation counter).
    """

    def __init__(self, delay: float, callback: Callable[[], Any], key: Any = None):
        self.delay = delay
        self.callback = callback
        self.key = key
        self.cancelled = False
        self.fired = False
        self._lock = threading.Lock()

    def cancel(self) -> bool:
        """Cancel the action. Returns False if it already fired."""
        with self._lock:
            if self.fired:
                return False
            self.cancelled = True
            return True

    def fire(self) -> bool:
        with self._lock:
            if self.cancelled or self.fired:
                logger.debug(f"[timer-abort] key={self.key} cancelled={self.cancelled} fired={self.fired}")
                return False
            self.fired = True
        logger.debug(f"[timer-fire] key={self.key}")
        self.callback()
        return True

    @property
    def done(self) -> bool:
        return self.cancelled or self.fired


class TaskScheduler:
    """Runs deferred actions on background tasks.

    ``start_background_task`` and ``sleep`` default to plain threads; the
    application passes ``socketio.start_background_task``/``socketio.sleep``
    so the worker cooperates with whichever async mode Socket.IO runs in.
    """

    def __init__(self, start_background_task: Optional[Callable[..., Any]] = None,
                 sleep: Callable[[float], Any] = time.sleep):
        self._start = start_background_task or _start_thread
        self._sleep = sleep

    def schedule(self, delay: float, callback: Callable[[], Any], key: Any = None) -> ScheduledTask:
        task = ScheduledTask(delay, callback, key=key)
        logger.debug(f"[timer-set] key={key} delay={delay}s")

        def _worker(t: ScheduledTask):
            if t.delay > 0:
                self._sleep(t.delay)
            try:
                t.fire()
            except Exception:
                logger.exception(f"[timer-error] key={t.key} deferred action failed")

        self._start(_worker, task)
        return task


class ManualScheduler:
    """Holds deferred actions until ``run_pending`` fires them.

    Used in TESTING mode and unit tests, where the evaluation delay must be
    driven explicitly.
    """

    def __init__(self):
        self._tasks: List[ScheduledTask] = []
        self._lock = threading.Lock()

    def schedule(self, delay: float, callback: Callable[[], Any], key: Any = None) -> ScheduledTask:
        task = ScheduledTask(delay, callback, key=key)
        with self._lock:
            self._tasks.append(task)
        return task

    @property
    def pending(self) -> List[ScheduledTask]:
        with self._lock:
            return [t for t in self._tasks if not t.done]

    def run_pending(self) -> int:
        """Fire every task scheduled so far. Returns how many callbacks ran."""
        with self._lock:
            tasks, self._tasks = self._tasks, []
        return sum(1 for t in tasks if t.fire())


def _start_thread(target: Callable[..., Any], *args) -> threading.Thread:
    th = threading.Thread(target=target, args=args, daemon=True)
    th.start()
    return th
