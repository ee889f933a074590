import os
import random
import sys
import pytest

# Ensure the backend root (containing the `arena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from arena import create_app, db, socketio
from arena.services.games.engine import RoundEngine
from arena.services.games.registry import SessionRegistry
from arena.services.games.service import GameService


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SESSION_BACKEND = 'memory'
    GAME_RANDOM_SEED = 1234
    ROUND_DURATION_SEC = 30
    INITIAL_POPULATION = 100
    MIN_ROUNDS = 3
    MAX_ROUNDS = 15
    DEFAULT_ROUNDS = 10
    NAME_MAX_LENGTH = 20
    ROUND_TIMER_ENABLED = True
    EARLY_END_ON_ALL_CHOSEN = False


class SqlTestConfig(TestConfig):
    SESSION_BACKEND = 'sql'


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class StubRandom:
    """Serves queued draws from random(); shuffles with a seeded fallback."""

    def __init__(self, draws=(), seed=0):
        self._draws = list(draws)
        self._fallback = random.Random(seed)

    def queue(self, *draws):
        self._draws.extend(draws)

    def random(self):
        if self._draws:
            return self._draws.pop(0)
        return self._fallback.random()

    def shuffle(self, items):
        self._fallback.shuffle(items)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def stub_rng():
    return StubRandom()


@pytest.fixture()
def engine(clock, stub_rng):
    return RoundEngine(rng=stub_rng, clock=clock, round_duration=30, initial_population=100)


@pytest.fixture()
def service(engine):
    registry = SessionRegistry(engine.new_session, rng=random.Random(7))
    return GameService(registry, engine)


def _make_app(config):
    application = create_app(config)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def flask_app():
    yield from _make_app(TestConfig)


@pytest.fixture()
def sql_app():
    yield from _make_app(SqlTestConfig)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def game_api(client):
    """Small helpers over the HTTP API returning parsed JSON."""

    class Api:
        def create(self, host_name='Alice', total_rounds=3):
            res = client.post('/api/games/create', json={'host_name': host_name, 'total_rounds': total_rounds})
            assert res.status_code == 201
            return res.get_json()

        def join(self, code, name):
            res = client.post('/api/games/join', json={'game_code': code, 'name': name})
            assert res.status_code == 201
            return res.get_json()

        def host(self, code, action, host):
            return client.post(
                f'/api/games/{code}/{action}',
                json={'host_id': host['host_id'], 'secret_token': host['secret_token']},
            )

        def choose(self, code, player, choice):
            return client.post(
                f'/api/games/{code}/choose',
                json={'player_id': player['player_id'], 'secret_token': player['secret_token'], 'choice': choice},
            )

    return Api()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
