from flask import Blueprint, jsonify, request, current_app
from arena import get_game_service
from arena.services.games import GameError


games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.info(
        f"[rejected] path={request.path} status={exc.status_code} error={exc.message}"
    )
    return jsonify(exc.to_dict()), exc.status_code


def _body():
    return request.get_json(silent=True) or {}


@games.route('/create', methods=['POST'])
def create_game():
    data = _body()
    created = get_game_service().create(data.get('host_name'), data.get('total_rounds'))
    return jsonify(created), 201


@games.route('/join', methods=['POST'])
def join_game():
    data = _body()
    game_code = data.get('game_code')
    name = data.get('name')
    if not all([game_code, name]):
        return jsonify({'error': 'Game code and player name are required'}), 400
    joined = get_game_service().join(game_code, name)
    return jsonify(joined), 201


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    return jsonify(get_game_service().get_state(game_code))


@games.route('/<string:game_code>/leaderboard', methods=['GET'])
def get_leaderboard(game_code):
    return jsonify({'leaderboard': get_game_service().leaderboard(game_code)})


def _host_action(game_code, action):
    data = _body()
    return jsonify(action(game_code, data.get('host_id'), data.get('secret_token')))


@games.route('/<string:game_code>/start', methods=['POST'])
def start_game(game_code):
    return _host_action(game_code, get_game_service().start)


@games.route('/<string:game_code>/pause', methods=['POST'])
def pause_round(game_code):
    return _host_action(game_code, get_game_service().pause)


@games.route('/<string:game_code>/resume', methods=['POST'])
def resume_round(game_code):
    return _host_action(game_code, get_game_service().resume)


@games.route('/<string:game_code>/end-round', methods=['POST'])
def end_round(game_code):
    return _host_action(game_code, get_game_service().end_round)


@games.route('/<string:game_code>/next-round', methods=['POST'])
def next_round(game_code):
    return _host_action(game_code, get_game_service().next_round)


@games.route('/<string:game_code>/choose', methods=['POST'])
def choose(game_code):
    data = _body()
    if not data.get('choice'):
        return jsonify({'error': 'choice is required'}), 400
    state = get_game_service().choose(
        game_code, data.get('player_id'), data.get('secret_token'), data.get('choice')
    )
    return jsonify(state)


@games.route('/<string:game_code>/expire', methods=['POST'])
def expire_round(game_code):
    data = _body()
    state = get_game_service().expire_round(game_code, data.get('player_id'), data.get('secret_token'))
    return jsonify(state)


@games.route('/<string:game_code>/leave', methods=['POST'])
def leave_game(game_code):
    data = _body()
    return jsonify(get_game_service().leave(game_code, data.get('player_id'), data.get('secret_token')))
