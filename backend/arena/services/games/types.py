"""Data types shared by the game core.

Field presence on ``Session`` is part of the phase invariant:

- ``current_scenario`` is ``None`` only in LOBBY.
- ``round_start_time`` is set only while PLAYING.
- ``paused_remaining_seconds`` is set only while PAUSED.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import math
import time

from werkzeug.security import generate_password_hash, check_password_hash


# High-entropy random tokens do not need a slow key derivation
TOKEN_HASH_METHOD = 'pbkdf2:sha256:1000'


class Phase(str, Enum):
    LOBBY = 'lobby'
    PLAYING = 'playing'
    PAUSED = 'paused'
    RESULTS = 'results'
    FINISHED = 'finished'


class ChoiceKind(str, Enum):
    SAFE = 'safe'
    RISKY = 'risky'


class EventType(str, Enum):
    CONNECTED = 'connected'
    PLAYER_JOINED = 'player_joined'
    PLAYER_LEFT = 'player_left'
    GAME_STARTED = 'game_started'
    ROUND_STARTED = 'round_started'
    ROUND_PAUSED = 'round_paused'
    ROUND_RESUMED = 'round_resumed'
    PLAYER_CHOSE = 'player_chose'
    ROUND_ENDED = 'round_ended'
    GAME_ENDED = 'game_ended'


@dataclass(frozen=True)
class Choice:
    label: str
    failure_probability: float
    success_multiplier: float

    def to_dict(self):
        return {
            'label': self.label,
            'failure_probability': self.failure_probability,
            'success_multiplier': self.success_multiplier,
        }


@dataclass(frozen=True)
class Scenario:
    id: int
    title: str
    description: str
    safe: Choice
    risky: Choice
    explanation: str = ''

    def choice(self, kind: ChoiceKind) -> Choice:
        return self.safe if ChoiceKind(kind) is ChoiceKind.SAFE else self.risky

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'choices': {
                'safe': self.safe.to_dict(),
                'risky': self.risky.to_dict(),
            },
            'explanation': self.explanation,
        }


@dataclass
class Participant:
    id: str
    name: str
    population: int
    is_host: bool = False
    has_chosen: bool = False
    pending_choice: Optional[ChoiceKind] = None
    last_choice: Optional[ChoiceKind] = None
    is_eliminated: bool = False
    token_hash: str = ''

    def set_token(self, token: str) -> None:
        self.token_hash = generate_password_hash(token, method=TOKEN_HASH_METHOD)

    def check_token(self, token: str) -> bool:
        if not self.token_hash or not token:
            return False
        return check_password_hash(self.token_hash, token)

    def to_dict(self):
        # pending_choice stays private until the round resolves
        return {
            'id': self.id,
            'name': self.name,
            'population': self.population,
            'is_host': self.is_host,
            'has_chosen': self.has_chosen,
            'last_choice': self.last_choice.value if self.last_choice else None,
            'is_eliminated': self.is_eliminated,
        }


@dataclass(frozen=True)
class Outcome:
    participant_id: str
    name: str
    choice: ChoiceKind
    survived: bool
    population_before: int
    population_after: int
    multiplier_applied: float

    def to_dict(self):
        return {
            'participant_id': self.participant_id,
            'name': self.name,
            'choice': self.choice.value,
            'survived': self.survived,
            'population_before': self.population_before,
            'population_after': self.population_after,
            'multiplier_applied': self.multiplier_applied,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            participant_id=data['participant_id'],
            name=data.get('name', ''),
            choice=ChoiceKind(data['choice']),
            survived=bool(data['survived']),
            population_before=int(data['population_before']),
            population_after=int(data['population_after']),
            multiplier_applied=float(data['multiplier_applied']),
        )


@dataclass(frozen=True)
class RoundResult:
    round: int
    scenario_id: int
    outcomes: tuple = ()

    def to_dict(self):
        return {
            'round': self.round,
            'scenario_id': self.scenario_id,
            'outcomes': [o.to_dict() for o in self.outcomes],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            round=int(data['round']),
            scenario_id=int(data['scenario_id']),
            outcomes=tuple(Outcome.from_dict(o) for o in data.get('outcomes', [])),
        )


@dataclass
class Session:
    code: str
    total_rounds: int
    round_duration_seconds: int
    phase: Phase = Phase.LOBBY
    participants: List[Participant] = field(default_factory=list)
    current_round: int = 0
    scenario_order: List[int] = field(default_factory=list)
    current_scenario: Optional[Scenario] = None
    round_start_time: Optional[float] = None
    paused_remaining_seconds: Optional[int] = None
    round_results: List[RoundResult] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    # Bumped by every applied transition; snapshots carry it for ordering
    revision: int = 0

    @property
    def host(self) -> Optional[Participant]:
        return next((p for p in self.participants if p.is_host), None)

    def find(self, participant_id: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.id == participant_id), None)

    def players(self) -> List[Participant]:
        """Non-host participants in join order."""
        return [p for p in self.participants if not p.is_host]

    def active_players(self) -> List[Participant]:
        return [p for p in self.participants if not p.is_host and not p.is_eliminated]

    def all_chosen(self) -> bool:
        return all(p.has_chosen for p in self.active_players())

    def time_remaining(self, now: float) -> Optional[int]:
        if self.phase is Phase.PAUSED:
            return self.paused_remaining_seconds
        if self.phase is Phase.PLAYING and self.round_start_time is not None:
            return max(0, math.ceil(self.round_start_time + self.round_duration_seconds - now))
        return None

    def to_dict(self, now: float = None) -> Dict:
        now = time.time() if now is None else now
        host = self.host
        return {
            'code': self.code,
            'revision': self.revision,
            'phase': self.phase.value,
            'host_id': host.id if host else None,
            'participants': [p.to_dict() for p in self.participants],
            'current_round': self.current_round,
            'total_rounds': self.total_rounds,
            'scenario_order': list(self.scenario_order),
            'current_scenario': self.current_scenario.to_dict() if self.current_scenario else None,
            'round_start_time': self.round_start_time,
            'round_duration_seconds': self.round_duration_seconds,
            'paused_remaining_seconds': self.paused_remaining_seconds,
            'time_remaining': self.time_remaining(now),
            'round_results': [r.to_dict() for r in self.round_results],
            'all_chosen': self.all_chosen(),
            'active_player_count': len(self.active_players()),
        }


@dataclass(frozen=True)
class GameEvent:
    type: EventType
    session: Dict
    message: Optional[str] = None

    def to_dict(self):
        payload = {'type': self.type.value, 'session': self.session}
        if self.message:
            payload['message'] = self.message
        return payload
