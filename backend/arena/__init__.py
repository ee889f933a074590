from flask import Flask, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import random
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def build_game_service(config, flask_app=None):
    """Assemble the game core from a config mapping."""
    from arena.services.games import GameService
    from arena.services.games.backends import MemoryBackend, SqlBackend
    from arena.services.games.engine import RoundEngine
    from arena.services.games.registry import SessionRegistry
    from arena.services.games.scenarios import ScenarioCatalog
    from arena.services.games.scheduler import RoundTimer

    catalog = ScenarioCatalog()
    seed = config.get('GAME_RANDOM_SEED')
    engine = RoundEngine(
        catalog=catalog,
        rng=random.Random(seed),
        round_duration=int(config.get('ROUND_DURATION_SEC', 30)),
        initial_population=int(config.get('INITIAL_POPULATION', 100)),
    )
    backend_name = config.get('SESSION_BACKEND', 'memory')
    if backend_name == 'sql':
        backend = SqlBackend(db, catalog)
    elif backend_name == 'memory':
        backend = MemoryBackend()
    else:
        raise ValueError(f"Unknown SESSION_BACKEND {backend_name!r}")
    registry = SessionRegistry(engine.new_session, backend=backend, rng=random.Random(seed))
    service = GameService(
        registry,
        engine,
        min_rounds=int(config.get('MIN_ROUNDS', 3)),
        max_rounds=int(config.get('MAX_ROUNDS', 15)),
        default_rounds=int(config.get('DEFAULT_ROUNDS', 10)),
        name_max_length=int(config.get('NAME_MAX_LENGTH', 20)),
        early_end=bool(config.get('EARLY_END_ON_ALL_CHOSEN', False)),
    )

    # Timers are no-ops in tests unless explicitly enabled
    timers_on = config.get('ROUND_TIMER_ENABLED', True)
    if config.get('TESTING') and not config.get('ENABLE_SCHEDULER_IN_TESTS'):
        timers_on = False
    if timers_on and flask_app is not None:
        service.timer = RoundTimer(
            flask_app,
            service.timer_expire,
            spawn=socketio.start_background_task,
            sleep=socketio.sleep,
            clock=engine.clock,
            heartbeat=int(config.get('TIMER_HEARTBEAT_SEC', 0)),
        )
    return service


def get_game_service():
    return current_app.extensions['arena']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    flask_app.extensions['arena'] = build_game_service(flask_app.config, flask_app)

    from arena.main import main
    flask_app.register_blueprint(main)

    from arena.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from arena.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Ensure models are registered with the metadata
    from arena import models  # noqa: F401

    @click.command('games-purge')
    def games_purge_command():
        """Deletes finished games from the session registry."""
        with flask_app.app_context():
            purged = get_game_service().purge_finished()
        print(f'Purged {purged} finished game(s).')

    flask_app.cli.add_command(games_purge_command)

    return flask_app
