from arena import db
from arena.services.games.types import ChoiceKind, Participant, Phase, RoundResult, Session
import json


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(64), primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)  # join order
    name = db.Column(db.String(64), nullable=False)
    population = db.Column(db.Integer, nullable=False, default=100)
    is_host = db.Column(db.Boolean, default=False, nullable=False)
    has_chosen = db.Column(db.Boolean, default=False, nullable=False)
    pending_choice = db.Column(db.String(8), nullable=True)
    last_choice = db.Column(db.String(8), nullable=True)
    is_eliminated = db.Column(db.Boolean, default=False, nullable=False)
    token_hash = db.Column(db.String(256), nullable=False)
    game = db.relationship('Game', back_populates='players')

    def to_participant(self):
        return Participant(
            id=self.id,
            name=self.name,
            population=self.population,
            is_host=self.is_host,
            has_chosen=self.has_chosen,
            pending_choice=ChoiceKind(self.pending_choice) if self.pending_choice else None,
            last_choice=ChoiceKind(self.last_choice) if self.last_choice else None,
            is_eliminated=self.is_eliminated,
            token_hash=self.token_hash,
        )

    def update_from(self, participant, position):
        self.position = position
        self.name = participant.name
        self.population = participant.population
        self.is_host = participant.is_host
        self.has_chosen = participant.has_chosen
        self.pending_choice = participant.pending_choice.value if participant.pending_choice else None
        self.last_choice = participant.last_choice.value if participant.last_choice else None
        self.is_eliminated = participant.is_eliminated
        self.token_hash = participant.token_hash


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(6), unique=True, index=True, nullable=False)
    phase = db.Column(db.String(16), default='lobby', nullable=False)  # lobby, playing, paused, results, finished
    current_round = db.Column(db.Integer, default=0, nullable=False)
    total_rounds = db.Column(db.Integer, nullable=False)
    round_duration = db.Column(db.Integer, nullable=False)
    current_scenario_id = db.Column(db.Integer, nullable=True)
    round_start_time = db.Column(db.Float, nullable=True)  # epoch seconds, only while playing
    paused_remaining_seconds = db.Column(db.Integer, nullable=True)  # only while paused
    scenario_order = db.Column(db.Text, nullable=True)  # JSON-encoded list of scenario ids
    round_results = db.Column(db.Text, nullable=True)  # JSON-encoded list of round results
    created_at = db.Column(db.Float, nullable=False)
    revision = db.Column(db.Integer, default=0, nullable=False)
    players = db.relationship(
        'Player',
        back_populates='game',
        order_by='Player.position',
        cascade='all, delete-orphan',
    )

    def to_session(self, catalog):
        return Session(
            code=self.game_code,
            total_rounds=self.total_rounds,
            round_duration_seconds=self.round_duration,
            phase=Phase(self.phase),
            participants=[p.to_participant() for p in self.players],
            current_round=self.current_round,
            scenario_order=json.loads(self.scenario_order) if self.scenario_order else [],
            current_scenario=catalog.by_id(self.current_scenario_id) if self.current_scenario_id else None,
            round_start_time=self.round_start_time,
            paused_remaining_seconds=self.paused_remaining_seconds,
            round_results=[RoundResult.from_dict(r) for r in json.loads(self.round_results or '[]')],
            created_at=self.created_at,
            revision=self.revision or 0,
        )

    def update_from(self, session):
        self.game_code = session.code
        self.phase = session.phase.value
        self.current_round = session.current_round
        self.total_rounds = session.total_rounds
        self.round_duration = session.round_duration_seconds
        self.current_scenario_id = session.current_scenario.id if session.current_scenario else None
        self.round_start_time = session.round_start_time
        self.paused_remaining_seconds = session.paused_remaining_seconds
        self.scenario_order = json.dumps(list(session.scenario_order))
        self.round_results = json.dumps([r.to_dict() for r in session.round_results])
        self.created_at = session.created_at
        self.revision = session.revision

        existing = {p.id: p for p in self.players}
        rows = []
        for position, participant in enumerate(session.participants):
            row = existing.pop(participant.id, None) or Player(id=participant.id)
            row.update_from(participant, position)
            rows.append(row)
        # Players missing from the aggregate have left; delete-orphan removes them
        self.players = rows
