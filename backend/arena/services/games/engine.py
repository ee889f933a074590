"""Round state machine.

Pure transitions over a ``Session`` aggregate. Every method validates
its guards before touching the aggregate, so a rejected call leaves the
session exactly as it was. Callers are responsible for serializing
access (see ``SessionRegistry.with_lock``).

    LOBBY --start--> PLAYING <--pause/resume--> PAUSED
    PLAYING|PAUSED --end_round--> RESULTS
    RESULTS --next_round--> PLAYING | FINISHED
"""

import logging
import math
import random
import secrets
import time
import uuid
from typing import Callable, Optional, Tuple

from .errors import StateError, ValidationError
from .scenarios import ScenarioCatalog
from .scoring import score_current_round
from .types import ChoiceKind, Participant, Phase, RoundResult, Session

logger = logging.getLogger(__name__)

DEFAULT_ROUND_DURATION = 30
DEFAULT_INITIAL_POPULATION = 100


def new_token() -> str:
    return secrets.token_urlsafe(32)


class RoundEngine:
    def __init__(
        self,
        catalog: ScenarioCatalog = None,
        rng: random.Random = None,
        clock: Callable[[], float] = time.time,
        round_duration: int = DEFAULT_ROUND_DURATION,
        initial_population: int = DEFAULT_INITIAL_POPULATION,
    ):
        self.catalog = catalog or ScenarioCatalog()
        self.rng = rng or random.Random()
        self.clock = clock
        self.round_duration = round_duration
        self.initial_population = initial_population

    # ---- lobby ----

    def new_session(self, code: str, host_name: str, total_rounds: int) -> Tuple[Session, Participant, str]:
        session = Session(code=code, total_rounds=total_rounds, round_duration_seconds=self.round_duration)
        host, token = self._new_participant('host', host_name, is_host=True)
        session.participants.append(host)
        return session, host, token

    def join(self, session: Session, name: str) -> Tuple[Participant, str]:
        if session.phase is not Phase.LOBBY:
            raise StateError('This game is not in the lobby')
        if any(p.name.lower() == name.lower() for p in session.participants):
            raise StateError('Name already taken')
        player, token = self._new_participant('player', name)
        session.participants.append(player)
        return player, token

    def leave(self, session: Session, participant_id: str) -> Participant:
        player = self._require_participant(session, participant_id)
        if player.is_host:
            raise StateError('The host cannot leave the game')
        session.participants.remove(player)
        return player

    def _new_participant(self, prefix: str, name: str, is_host: bool = False) -> Tuple[Participant, str]:
        token = new_token()
        participant = Participant(
            id=f'{prefix}_{uuid.uuid4().hex[:12]}',
            name=name,
            population=self.initial_population,
            is_host=is_host,
        )
        participant.set_token(token)
        return participant, token

    # ---- round lifecycle ----

    def start(self, session: Session) -> None:
        if session.phase is not Phase.LOBBY:
            raise StateError('Game has already started or is finished')
        if not session.players():
            raise StateError('At least one player is required to start')
        order = self.catalog.shuffled_ids(session.total_rounds, self.rng)
        session.scenario_order = order
        session.current_round = 1
        session.current_scenario = self.catalog.by_id(order[0])
        session.round_start_time = self.clock()
        session.paused_remaining_seconds = None
        session.phase = Phase.PLAYING

    def pause(self, session: Session) -> None:
        if session.phase is not Phase.PLAYING:
            raise StateError('Only a running round can be paused')
        elapsed = self.clock() - session.round_start_time
        session.paused_remaining_seconds = max(0, math.ceil(session.round_duration_seconds - elapsed))
        session.round_start_time = None
        session.phase = Phase.PAUSED

    def resume(self, session: Session) -> None:
        if session.phase is not Phase.PAUSED:
            raise StateError('Round is not paused')
        consumed = session.round_duration_seconds - session.paused_remaining_seconds
        session.round_start_time = self.clock() - consumed
        session.paused_remaining_seconds = None
        session.phase = Phase.PLAYING

    def choose(self, session: Session, participant_id: str, choice: ChoiceKind) -> Participant:
        if session.phase not in (Phase.PLAYING, Phase.PAUSED):
            raise StateError('Not accepting choices at this time')
        player = self._require_participant(session, participant_id)
        if player.is_host:
            raise StateError('The host does not make choices')
        if player.is_eliminated:
            raise StateError('Eliminated players cannot choose')
        if player.has_chosen:
            raise StateError('Already chose this round')
        player.pending_choice = ChoiceKind(choice)
        player.has_chosen = True
        return player

    def end_round(self, session: Session) -> RoundResult:
        if session.phase not in (Phase.PLAYING, Phase.PAUSED):
            raise StateError('Round already ended')
        result = score_current_round(session, self.rng)
        session.round_results.append(result)
        session.round_start_time = None
        session.paused_remaining_seconds = None
        session.phase = Phase.RESULTS
        logger.info(
            f"[round-end] game={session.code} round={session.current_round} "
            f"eliminated={sum(1 for p in session.players() if p.is_eliminated)}"
        )
        return result

    def expire(self, session: Session, expected_round: Optional[int] = None) -> RoundResult:
        """End the round on behalf of the clock.

        Only valid while PLAYING, once the deadline has passed, and (when
        given) for the round the caller observed.
        """
        if session.phase is not Phase.PLAYING:
            raise StateError('Round is not running')
        if expected_round is not None and session.current_round != expected_round:
            raise StateError('Round already ended')
        if self.clock() < self.deadline(session):
            raise StateError('Round time has not run out yet')
        return self.end_round(session)

    def next_round(self, session: Session) -> bool:
        """Advance to the next round; returns True when the game finished."""
        if session.phase is not Phase.RESULTS:
            raise StateError('Round results are not being shown')
        if session.current_round >= session.total_rounds:
            session.phase = Phase.FINISHED
            return True
        session.current_round += 1
        session.current_scenario = self.catalog.by_id(session.scenario_order[session.current_round - 1])
        session.round_start_time = self.clock()
        session.paused_remaining_seconds = None
        session.phase = Phase.PLAYING
        return False

    # ---- queries ----

    def deadline(self, session: Session) -> Optional[float]:
        if session.round_start_time is None:
            return None
        return session.round_start_time + session.round_duration_seconds

    @staticmethod
    def _require_participant(session: Session, participant_id: str) -> Participant:
        player = session.find(participant_id)
        if not player:
            raise ValidationError('Unknown player')
        return player
