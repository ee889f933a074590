import logging
import threading
import time
from typing import Callable, Set, Tuple

from .errors import NotFoundError, StateError

logger = logging.getLogger(__name__)

TimerKey = Tuple[str, int, float]


class RoundTimer:
    """Server-side auto end of rounds at their deadline.

    - Ensures a single timer per (game_code, round, deadline)
    - The expiry goes through the same locked path as a manual end, so a
      round that was ended, paused or resumed in the meantime simply
      rejects the stale timer
    """

    def __init__(
        self,
        app,
        expire: Callable[[str, int], dict],
        spawn: Callable,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        heartbeat: int = 0,
    ):
        self.app = app
        self._expire = expire
        self._spawn = spawn
        self._sleep = sleep
        self._clock = clock
        self._heartbeat = heartbeat
        self._scheduled: Set[TimerKey] = set()
        self._lock = threading.Lock()

    def pending(self) -> Set[TimerKey]:
        with self._lock:
            return set(self._scheduled)

    def schedule(self, code: str, round_idx: int, deadline: float) -> bool:
        key = (code, round_idx, deadline)
        with self._lock:
            if key in self._scheduled:
                logger.info(f"[timer-skip] game={code} round={round_idx} already scheduled")
                return False
            self._scheduled.add(key)
        delay = max(0.0, deadline - self._clock())
        logger.info(f"[timer-set] game={code} round={round_idx} delay={delay:.1f}s deadline={deadline}")
        self._spawn(self._worker, key, delay)
        return True

    def _worker(self, key: TimerKey, delay: float) -> None:
        code, round_idx, _ = key
        if self._heartbeat > 0:
            slept = 0.0
            while slept < delay:
                step = min(self._heartbeat, delay - slept)
                self._sleep(step)
                slept += step
                logger.info(f"[timer-heartbeat] game={code} round={round_idx} remaining={max(0, delay - slept):.0f}s")
        else:
            self._sleep(delay)
        self.fire(key)

    def fire(self, key: TimerKey) -> bool:
        code, round_idx, _ = key
        with self._lock:
            self._scheduled.discard(key)
        with self.app.app_context():
            try:
                self._expire(code, round_idx)
            except (StateError, NotFoundError) as exc:
                logger.info(f"[timer-abort] game={code} round={round_idx} reason={exc.message}")
                return False
        logger.info(f"[timer-fire] game={code} round={round_idx} ended")
        return True
