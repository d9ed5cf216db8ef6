from flask import current_app, request
from flask_socketio import join_room, leave_room, emit

from whosaid import get_services, socketio
from whosaid.notifier import NAMESPACE, announce_disconnect, game_room
from whosaid.services.games.errors import PlayerNotFound, SessionNotFound, StorageError
from whosaid.services.games.validation import validate_opaque_id


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _sockets():
    """sid -> {'game_code', 'player_id'} for sockets that joined a game."""
    return get_services()['sockets']


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*_args):
    # A socket bound to a player marks that player disconnected in the game
    ctx = _sockets().pop(_get_sid(), None)
    if not ctx or not ctx.get('player_id'):
        return
    code = ctx['game_code']
    player_id = ctx['player_id']
    manager = get_services()['manager']
    try:
        result = manager.handle_disconnect(code, player_id)
    except (SessionNotFound, PlayerNotFound) as exc:
        # Game already ended or expired; nothing left to update
        current_app.logger.info(f"[ws-disconnect] code={code} player={player_id} skipped: {exc.code}")
        return
    except StorageError as exc:
        current_app.logger.warning(f"[ws-disconnect] code={code} player={player_id} not recorded: {exc.message}")
        return
    announce_disconnect(code, result, player_id, manager)


def handle_join_game(data):
    game_code = (data or {}).get('game_code')
    player_id = (data or {}).get('player_id')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    if player_id is not None and not validate_opaque_id(player_id):
        emit('error', {'message': 'Invalid player ID format'})
        return
    room = game_room(game_code)
    join_room(room)
    _sockets()[_get_sid()] = {'game_code': game_code.upper(), 'player_id': player_id}
    emit('joined', {'room': room})


def handle_leave_game(data):
    game_code = (data or {}).get('game_code')
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    room = game_room(game_code)
    leave_room(room)
    # An explicit leave is not a dropped connection
    _sockets().pop(_get_sid(), None)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('disconnect', handle_disconnect, namespace=ns)
        socketio.on_event('join_game', handle_join_game, namespace=ns)
        socketio.on_event('leave_game', handle_leave_game, namespace=ns)
        socketio.on_event('ping', handle_ping, namespace=ns)
