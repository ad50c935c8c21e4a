import logging
import random
import string
import threading
import time
from typing import Callable, Dict, List, Optional

from .controller import SessionController


logger = logging.getLogger(__name__)


def generate_game_code(taken, length=4) -> str:
    """Generate a short game code not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


class SessionRegistry:
    """Live controllers keyed by game code. Process-local, not persisted.

    Every ``create``/``get`` marks the game as active. ``sweep_idle`` drops
    games nobody has touched for ``idle_timeout`` seconds; a timeout of
    None or 0 keeps games until they are removed explicitly.
    """

    def __init__(self, controller_factory: Callable[[str], SessionController],
                 idle_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._controller_factory = controller_factory
        self._controllers: Dict[str, SessionController] = {}
        self._last_active: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.idle_timeout = idle_timeout
        self.clock = clock

    def create(self):
        with self._lock:
            code = generate_game_code(self._controllers)
            controller = self._controller_factory(code)
            self._controllers[code] = controller
            self._last_active[code] = self.clock()
        return code, controller

    def get(self, game_code: str) -> Optional[SessionController]:
        code = (game_code or '').upper()
        with self._lock:
            controller = self._controllers.get(code)
            if controller is not None:
                self._last_active[code] = self.clock()
            return controller

    def remove(self, game_code: str) -> Optional[SessionController]:
        code = (game_code or '').upper()
        with self._lock:
            controller = self._controllers.pop(code, None)
            self._last_active.pop(code, None)
        if controller is not None:
            controller.back_to_menu()
        return controller

    def sweep_idle(self) -> List[str]:
        """Drop games idle longer than ``idle_timeout``. Returns their codes."""
        if not self.idle_timeout:
            return []
        cutoff = self.clock() - self.idle_timeout
        with self._lock:
            stale = [code for code, seen in self._last_active.items() if seen < cutoff]
            evicted = [(code, self._controllers.pop(code)) for code in stale]
            for code in stale:
                del self._last_active[code]
        for code, controller in evicted:
            controller.back_to_menu()
            logger.info(f"[evict] game_code={code} idle_timeout={self.idle_timeout}s")
        return stale

    def __contains__(self, game_code):
        with self._lock:
            return (game_code or '').upper() in self._controllers

    def __len__(self):
        with self._lock:
            return len(self._controllers)
