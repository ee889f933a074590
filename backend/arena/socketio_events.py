from flask_socketio import emit
from arena import socketio, get_game_service
from arena.services.games import GameError
from flask import request
from typing import Dict, Any
import threading


# Socket id -> {'game_code', 'unsubscribe'} for the connection's subscription
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_ctx_lock = threading.Lock()


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _drop_subscription(sid: str):
    with _ctx_lock:
        ctx = _sid_to_ctx.pop(sid, None)
    if ctx:
        ctx['unsubscribe']()
    return ctx


def _subscribe(game_code: str) -> bool:
    """Subscribe the current socket to a game's updates.

    The socket first receives a ``connected`` snapshot, then every
    ``game_update`` published for the game.
    """
    sid = _get_sid()
    namespace = request.namespace

    def _deliver(payload):
        socketio.emit('game_update', payload, to=sid, namespace=namespace)

    _drop_subscription(sid)
    try:
        unsubscribe = get_game_service().connect(game_code, _deliver)
    except GameError as exc:
        emit('error', {'message': exc.message})
        return False
    with _ctx_lock:
        _sid_to_ctx[sid] = {'game_code': game_code.strip().upper(), 'unsubscribe': unsubscribe}
    return True


def handle_connect(auth=None):
    game_code = auth.get('game_code') if isinstance(auth, dict) else None
    game_code = game_code or request.args.get('code')
    if game_code:
        _subscribe(game_code)


def handle_disconnect(reason=None):
    _drop_subscription(_get_sid())


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    if _subscribe(game_code):
        emit('joined', {'game_code': game_code.strip().upper()})


def handle_leave_game(data):
    ctx = _drop_subscription(_get_sid())
    if not ctx:
        emit('error', {'message': 'Not subscribed to a game'})
        return
    emit('left', {'game_code': ctx['game_code']})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_game', handle_join_game, namespace=namespace)
        socketio.on_event('leave_game', handle_leave_game, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
