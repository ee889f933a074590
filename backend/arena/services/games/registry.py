"""Registry of live sessions keyed by game code.

``with_lock`` is the only way to mutate a session. It holds a per-code
lock for the duration of the callback so mutations of one game never
interleave, while games with different codes proceed independently.
"""

import logging
import random
import threading
from typing import Callable, Dict, Optional, Tuple, TypeVar

from .backends import MemoryBackend, SessionBackend
from .errors import NotFoundError
from .types import Participant, Session

logger = logging.getLogger(__name__)

# No O/0, I/1 or L to keep codes readable
CODE_ALPHABET = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 6

T = TypeVar('T')
SessionFactory = Callable[[str, str, int], Tuple[Session, Participant, str]]


def generate_game_code(rng: random.Random = None, length: int = CODE_LENGTH) -> str:
    """Generate a short game code from the restricted alphabet."""
    rng = rng or random
    return ''.join(rng.choices(CODE_ALPHABET, k=length))


class SessionRegistry:
    def __init__(self, factory: SessionFactory, backend: SessionBackend = None, rng: random.Random = None):
        self._factory = factory
        self.backend = backend or MemoryBackend()
        self._rng = rng or random.Random()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, code: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(code)
            if lock is None:
                lock = self._locks[code] = threading.Lock()
            return lock

    def create(self, host_name: str, total_rounds: int) -> Tuple[str, str, str]:
        """Create a lobby with a unique code; returns (code, host_id, token)."""
        while True:
            code = generate_game_code(self._rng)
            session, host, token = self._factory(code, host_name, total_rounds)
            if self.backend.insert(session):
                return code, host.id, token
            logger.info(f"[code-collision] game={code} retrying")

    def get(self, code: str) -> Session:
        session = self.backend.load(code)
        if session is None:
            raise NotFoundError('Game not found')
        return session

    def find(self, code: str) -> Optional[Session]:
        return self.backend.load(code)

    def with_lock(self, code: str, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` against ``code`` exclusively and persist the result.

        If ``fn`` raises, nothing is persisted and the error propagates.
        Locks of unknown codes are dropped again, so probing random codes
        leaves nothing behind.
        """
        while True:
            lock = self._lock_for(code)
            with lock:
                if not self._is_current(code, lock):
                    # Dropped by delete or a miss while we waited
                    continue
                with self.backend.locked(code) as session:
                    if session is None:
                        self._drop_lock(code, lock)
                        raise NotFoundError('Game not found')
                    return fn(session)

    def _is_current(self, code: str, lock: threading.Lock) -> bool:
        with self._locks_guard:
            return self._locks.get(code) is lock

    def _drop_lock(self, code: str, lock: threading.Lock) -> None:
        with self._locks_guard:
            if self._locks.get(code) is lock:
                del self._locks[code]

    def delete(self, code: str) -> bool:
        lock = self._lock_for(code)
        with lock:
            deleted = self.backend.delete(code)
            self._drop_lock(code, lock)
        return deleted

    def codes(self):
        return self.backend.codes()
