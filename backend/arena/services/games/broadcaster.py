import itertools
import logging
import threading
from typing import Callable, Dict, Optional

from .types import GameEvent

logger = logging.getLogger(__name__)

Handler = Callable[[dict], None]


class _Subscription:
    __slots__ = ('handler', 'revision')

    def __init__(self, handler: Handler):
        self.handler = handler
        self.revision = -1


class Broadcaster:
    """Per-game subscriber sets with best-effort fan-out.

    Deliveries for one game are serialized by a per-game delivery lock,
    and each subscriber remembers the snapshot revision it last saw. An
    event older than that is dropped for the subscriber, so a publish
    that lost the race to a newer one can never roll a client back.

    The subscriber registry has its own lock, never held while handlers
    run, so handlers may subscribe or unsubscribe freely.
    """

    def __init__(self):
        self._subscribers: Dict[str, Dict[int, _Subscription]] = {}
        self._delivery_locks: Dict[str, threading.RLock] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def _delivery_lock(self, code: str) -> threading.RLock:
        with self._lock:
            lock = self._delivery_locks.get(code)
            if lock is None:
                lock = self._delivery_locks[code] = threading.RLock()
            return lock

    def subscribe(
        self,
        code: str,
        handler: Handler,
        bootstrap: Optional[Callable[[], GameEvent]] = None,
    ) -> Callable[[], None]:
        """Add ``handler`` to ``code``; returns an idempotent unsubscribe.

        ``bootstrap`` builds the first event for the new subscriber. It
        runs after registration and before any concurrent publish
        reaches the handler, so the handler misses nothing and never
        sees anything older than that first event.
        """
        subscription = _Subscription(handler)
        with self._delivery_lock(code):
            with self._lock:
                key = next(self._ids)
                self._subscribers.setdefault(code, {})[key] = subscription
            if bootstrap is not None:
                try:
                    self._deliver(code, subscription, bootstrap())
                except Exception:
                    self._remove(code, key)
                    with self._lock:
                        if code not in self._subscribers:
                            self._delivery_locks.pop(code, None)
                    raise

        def unsubscribe():
            self._remove(code, key)

        return unsubscribe

    def _remove(self, code: str, key: int) -> None:
        with self._lock:
            subscriptions = self._subscribers.get(code)
            if subscriptions is None:
                return
            subscriptions.pop(key, None)
            if not subscriptions:
                del self._subscribers[code]

    def subscriber_count(self, code: str) -> int:
        with self._lock:
            return len(self._subscribers.get(code, {}))

    def publish(self, code: str, event: GameEvent) -> int:
        """Deliver ``event`` to every current subscriber; returns deliveries."""
        with self._lock:
            if not self._subscribers.get(code):
                return 0
        delivered = 0
        with self._delivery_lock(code):
            with self._lock:
                subscriptions = list(self._subscribers.get(code, {}).values())
            for subscription in subscriptions:
                if self._deliver(code, subscription, event):
                    delivered += 1
        return delivered

    def _deliver(self, code: str, subscription: _Subscription, event: GameEvent) -> bool:
        revision = event.session.get('revision')
        if revision is not None:
            if revision < subscription.revision:
                logger.info(
                    f"[publish-stale] game={code} type={event.type.value} "
                    f"revision={revision} seen={subscription.revision}"
                )
                return False
            subscription.revision = revision
        try:
            subscription.handler(event.to_dict())
        except Exception:
            logger.exception(f"[publish-failed] game={code} type={event.type.value}")
            return False
        return True

    def forget(self, code: str) -> None:
        with self._lock:
            self._subscribers.pop(code, None)
            self._delivery_locks.pop(code, None)
