from flask import Blueprint, jsonify
from arena import get_game_service

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Amoeba Arena game server!'})


@main.route('/health')
def health():
    service = get_game_service()
    return jsonify({'status': 'ok', 'active_games': len(service.registry.codes())})
