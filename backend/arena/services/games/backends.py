"""Storage backends for live sessions.

A backend only stores aggregates. Mutual exclusion between callers of
the same code is the registry's job; ``locked`` merely hands out a
working copy and persists it when the caller's block completes without
raising.
"""

import copy
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError

from .types import Session


class SessionBackend:
    def insert(self, session: Session) -> bool:
        """Store a new session; False if its code is already taken."""
        raise NotImplementedError

    def load(self, code: str) -> Optional[Session]:
        raise NotImplementedError

    def locked(self, code: str):
        """Context manager yielding a working copy of ``code`` (or None)."""
        raise NotImplementedError

    def delete(self, code: str) -> bool:
        raise NotImplementedError

    def codes(self) -> List[str]:
        raise NotImplementedError


class MemoryBackend(SessionBackend):
    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def insert(self, session):
        with self._lock:
            if session.code in self._sessions:
                return False
            self._sessions[session.code] = copy.deepcopy(session)
            return True

    def load(self, code):
        with self._lock:
            session = self._sessions.get(code)
            return copy.deepcopy(session) if session else None

    @contextmanager
    def locked(self, code) -> Iterator[Optional[Session]]:
        working = self.load(code)
        yield working
        if working is not None:
            with self._lock:
                # A concurrent delete wins over a late write
                if code in self._sessions:
                    self._sessions[code] = working

    def delete(self, code):
        with self._lock:
            return self._sessions.pop(code, None) is not None

    def codes(self):
        with self._lock:
            return list(self._sessions)


class SqlBackend(SessionBackend):
    """Sessions persisted through Flask-SQLAlchemy; needs an app context."""

    def __init__(self, db, catalog):
        self.db = db
        self.catalog = catalog

    def _query(self, code):
        from arena.models import Game
        return Game.query.filter_by(game_code=code)

    def insert(self, session):
        from arena.models import Game
        if self._query(session.code).first():
            return False
        game = Game()
        game.update_from(session)
        self.db.session.add(game)
        try:
            self.db.session.commit()
        except IntegrityError:
            self.db.session.rollback()
            return False
        return True

    def load(self, code):
        game = self._query(code).first()
        return game.to_session(self.catalog) if game else None

    @contextmanager
    def locked(self, code):
        # Row lock held until commit/rollback (ignored by sqlite)
        game = self._query(code).with_for_update().first()
        if game is None:
            self.db.session.rollback()
            yield None
            return
        working = game.to_session(self.catalog)
        try:
            yield working
        except BaseException:
            self.db.session.rollback()
            raise
        game.update_from(working)
        self.db.session.add(game)
        self.db.session.commit()

    def delete(self, code):
        game = self._query(code).first()
        if not game:
            return False
        self.db.session.delete(game)
        self.db.session.commit()
        return True

    def codes(self):
        from arena.models import Game
        return [code for (code,) in self.db.session.query(Game.game_code).all()]
