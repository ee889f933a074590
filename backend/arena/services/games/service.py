"""Game operations as seen by transports (HTTP routes, socket handlers).

Each mutating operation follows the same path: credentials are checked
and the transition applied inside ``SessionRegistry.with_lock``, then
the resulting snapshot is published to subscribers after the lock has
been released. A rejected operation raises a ``GameError`` and persists
nothing.
"""

import logging
from typing import Callable, List, Optional, Tuple

from .auth import AuthGuard
from .broadcaster import Broadcaster
from .engine import RoundEngine
from .errors import ValidationError
from .registry import CODE_LENGTH, SessionRegistry
from .scoring import leaderboard
from .types import ChoiceKind, EventType, GameEvent, Phase, Session

logger = logging.getLogger(__name__)

Events = List[Tuple[EventType, Optional[str]]]

# Transitions after which a round clock is running
_ROUND_CLOCK_EVENTS = {EventType.GAME_STARTED, EventType.ROUND_STARTED, EventType.ROUND_RESUMED}


class GameService:
    def __init__(
        self,
        registry: SessionRegistry,
        engine: RoundEngine,
        broadcaster: Broadcaster = None,
        auth: AuthGuard = None,
        min_rounds: int = 3,
        max_rounds: int = 15,
        default_rounds: int = 10,
        name_max_length: int = 20,
        early_end: bool = False,
    ):
        self.registry = registry
        self.engine = engine
        self.broadcaster = broadcaster or Broadcaster()
        self.auth = auth or AuthGuard()
        self.min_rounds = min_rounds
        self.max_rounds = max_rounds
        self.default_rounds = default_rounds
        self.name_max_length = name_max_length
        self.early_end = early_end
        self.timer = None

    # ---- input validation ----

    def clean_code(self, code) -> str:
        code = (code or '').strip().upper() if isinstance(code, str) else ''
        if len(code) != CODE_LENGTH or not code.isalnum():
            raise ValidationError(f'Game code must be {CODE_LENGTH} characters')
        return code

    def clean_name(self, name) -> str:
        name = name.strip() if isinstance(name, str) else ''
        if not name:
            raise ValidationError('Name is required')
        if len(name) > self.name_max_length:
            raise ValidationError(f'Name must be at most {self.name_max_length} characters')
        return name

    def clean_rounds(self, total_rounds) -> int:
        if total_rounds is None:
            return self.default_rounds
        if isinstance(total_rounds, bool):
            raise ValidationError('total_rounds must be a number')
        try:
            total_rounds = int(total_rounds)
        except (TypeError, ValueError):
            raise ValidationError('total_rounds must be a number')
        if not self.min_rounds <= total_rounds <= self.max_rounds:
            raise ValidationError(f'total_rounds must be between {self.min_rounds} and {self.max_rounds}')
        return total_rounds

    @staticmethod
    def clean_choice(choice) -> ChoiceKind:
        try:
            return ChoiceKind(choice)
        except ValueError:
            raise ValidationError("choice must be 'safe' or 'risky'")

    # ---- plumbing ----

    def _snapshot(self, session: Session) -> dict:
        return session.to_dict(now=self.engine.clock())

    def _transition(self, code: str, apply: Callable[[Session], Events]) -> dict:
        def _locked(session):
            events = apply(session)
            session.revision += 1
            return self._snapshot(session), events

        snapshot, events = self.registry.with_lock(code, _locked)
        for event_type, message in events:
            self.broadcaster.publish(code, GameEvent(event_type, snapshot, message))
        if self.timer and snapshot['phase'] == Phase.PLAYING.value:
            if any(event_type in _ROUND_CLOCK_EVENTS for event_type, _ in events):
                deadline = snapshot['round_start_time'] + snapshot['round_duration_seconds']
                self.timer.schedule(code, snapshot['current_round'], deadline)
        return snapshot

    # ---- operations ----

    def create(self, host_name, total_rounds=None) -> dict:
        host_name = self.clean_name(host_name)
        total_rounds = self.clean_rounds(total_rounds)
        code, host_id, token = self.registry.create(host_name, total_rounds)
        logger.info(f"[create] game={code} rounds={total_rounds} host={host_id}")
        return {'code': code, 'host_id': host_id, 'secret_token': token}

    def join(self, code, name) -> dict:
        code = self.clean_code(code)
        name = self.clean_name(name)
        joined = {}

        def _apply(session):
            player, token = self.engine.join(session, name)
            joined['player_id'] = player.id
            joined['secret_token'] = token
            return [(EventType.PLAYER_JOINED, f'{name} joined the game')]

        snapshot = self._transition(code, _apply)
        logger.info(f"[join] game={code} player={joined['player_id']}")
        return {'player_id': joined['player_id'], 'secret_token': joined['secret_token'], 'session': snapshot}

    def get_state(self, code) -> dict:
        return self._snapshot(self.registry.get(self.clean_code(code)))

    def leaderboard(self, code) -> list:
        return leaderboard(self.registry.get(self.clean_code(code)))

    def start(self, code, host_id, token) -> dict:
        def _apply(session):
            self.auth.require_host(session, host_id, token)
            self.engine.start(session)
            return [(EventType.GAME_STARTED, 'Game started!')]

        snapshot = self._transition(self.clean_code(code), _apply)
        logger.info(f"[start] game={snapshot['code']} order={snapshot['scenario_order']}")
        return snapshot

    def pause(self, code, host_id, token) -> dict:
        def _apply(session):
            self.auth.require_host(session, host_id, token)
            self.engine.pause(session)
            return [(EventType.ROUND_PAUSED, 'Round paused')]

        return self._transition(self.clean_code(code), _apply)

    def resume(self, code, host_id, token) -> dict:
        def _apply(session):
            self.auth.require_host(session, host_id, token)
            self.engine.resume(session)
            return [(EventType.ROUND_RESUMED, 'Round resumed')]

        return self._transition(self.clean_code(code), _apply)

    def choose(self, code, player_id, token, choice) -> dict:
        choice = self.clean_choice(choice)

        def _apply(session):
            self.auth.require_participant(session, player_id, token)
            self.engine.choose(session, player_id, choice)
            if self.early_end and session.all_chosen():
                self.engine.end_round(session)
                return [(EventType.ROUND_ENDED, 'Everyone has chosen')]
            return [(EventType.PLAYER_CHOSE, None)]

        return self._transition(self.clean_code(code), _apply)

    def end_round(self, code, host_id, token) -> dict:
        def _apply(session):
            self.auth.require_host(session, host_id, token)
            self.engine.end_round(session)
            return [(EventType.ROUND_ENDED, None)]

        return self._transition(self.clean_code(code), _apply)

    def expire_round(self, code, player_id, token) -> dict:
        """End the round once its deadline passed; open to any participant."""
        def _apply(session):
            self.auth.require_participant(session, player_id, token)
            self.engine.expire(session)
            return [(EventType.ROUND_ENDED, "Time's up!")]

        return self._transition(self.clean_code(code), _apply)

    def timer_expire(self, code: str, expected_round: int) -> dict:
        def _apply(session):
            self.engine.expire(session, expected_round)
            return [(EventType.ROUND_ENDED, "Time's up!")]

        return self._transition(code, _apply)

    def next_round(self, code, host_id, token) -> dict:
        def _apply(session):
            self.auth.require_host(session, host_id, token)
            if self.engine.next_round(session):
                return [(EventType.GAME_ENDED, 'Game over!')]
            return [(EventType.ROUND_STARTED, None)]

        return self._transition(self.clean_code(code), _apply)

    def leave(self, code, player_id, token) -> dict:
        def _apply(session):
            self.auth.require_participant(session, player_id, token)
            player = self.engine.leave(session, player_id)
            return [(EventType.PLAYER_LEFT, f'{player.name} left the game')]

        self._transition(self.clean_code(code), _apply)
        return {'success': True}

    # ---- subscriptions and housekeeping ----

    def connect(self, code, handler) -> Callable[[], None]:
        """Subscribe ``handler`` to ``code`` and hand it the current state.

        The state is read only once the handler is subscribed, so every
        later transition reaches it. Returns the unsubscribe callable.
        """
        code = self.clean_code(code)
        return self.broadcaster.subscribe(
            code,
            handler,
            bootstrap=lambda: GameEvent(EventType.CONNECTED, self.get_state(code)),
        )

    def delete(self, code: str) -> bool:
        deleted = self.registry.delete(code)
        self.broadcaster.forget(code)
        if deleted:
            logger.info(f"[delete] game={code}")
        return deleted

    def purge_finished(self) -> int:
        purged = 0
        for code in self.registry.codes():
            session = self.registry.find(code)
            if session and session.phase is Phase.FINISHED and self.delete(code):
                purged += 1
        return purged
