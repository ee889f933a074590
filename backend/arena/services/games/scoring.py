import math
import random
from typing import Dict, List

from .types import ChoiceKind, Outcome, Participant, RoundResult, Scenario, Session

FAILURE_MULTIPLIER = 0.5


def resolve_outcome(population: int, choice, draw: float):
    """Resolve one committed choice against a uniform draw in [0, 1).

    Returns ``(survived, population_after, multiplier_applied)``. A draw
    below the failure probability halves the population, otherwise the
    choice's success multiplier applies. Results are floored at zero.
    """
    if draw < choice.failure_probability:
        multiplier = FAILURE_MULTIPLIER
        survived = False
    else:
        multiplier = choice.success_multiplier
        survived = True
    population_after = max(0, math.floor(population * multiplier))
    return survived, population_after, multiplier


def score_current_round(session: Session, rng: random.Random) -> RoundResult:
    """Apply outcomes for the current round to every active player.

    Players who did not choose default to the safe option. Eliminated
    players and the host are skipped and keep their population.
    """
    scenario: Scenario = session.current_scenario
    outcomes = []
    for player in session.active_players():
        kind = player.pending_choice or ChoiceKind.SAFE
        before = player.population
        survived, after, multiplier = resolve_outcome(before, scenario.choice(kind), rng.random())
        player.population = after
        player.last_choice = kind
        if after < 1:
            player.is_eliminated = True
        outcomes.append(Outcome(
            participant_id=player.id,
            name=player.name,
            choice=kind,
            survived=survived,
            population_before=before,
            population_after=after,
            multiplier_applied=multiplier,
        ))
    for p in session.participants:
        p.has_chosen = False
        p.pending_choice = None
    return RoundResult(round=session.current_round, scenario_id=scenario.id, outcomes=tuple(outcomes))


def leaderboard(session: Session) -> List[Dict]:
    """Rank players by population, highest first.

    Equal populations keep join order. A session holding only the host
    ranks the host.
    """
    ranked: List[Participant] = session.players() or list(session.participants)
    ranked = sorted(ranked, key=lambda p: -p.population)
    return [{'rank': i + 1, 'participant': p.to_dict()} for i, p in enumerate(ranked)]
