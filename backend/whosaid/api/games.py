from flask import Blueprint, jsonify, request, current_app
from datetime import datetime, timezone

from whosaid import get_services, notifier
from whosaid.services.games import errors
from whosaid.services.games.payloads import (
    game_ended_payload,
    player_joined_payload,
    prompt_started_payload,
    responses_ready_payload,
    results_ready_payload,
)
from whosaid.services.games.scoring import final_stats
from whosaid.services.games.state import Phase
from whosaid.services.games.validation import validate_opaque_id, validate_session_code


games = Blueprint('games', __name__)

# Transport mapping for each error kind
_STATUS_BY_KIND = {
    errors.VALIDATION: 400,
    errors.STATE: 409,
    errors.AUTHORIZATION: 403,
    errors.NOT_FOUND: 404,
    errors.STORAGE: 503,
}


class BadRequest(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


@games.errorhandler(errors.GameError)
def handle_game_error(exc: errors.GameError):
    status = _STATUS_BY_KIND.get(exc.kind, 400)
    if status >= 500:
        current_app.logger.warning(f"[error] {exc.code}: {exc.message}")
    else:
        current_app.logger.info(f"[rejected] {request.path} {exc.code}: {exc.message}")
    return jsonify(exc.to_dict()), status


@games.errorhandler(BadRequest)
def handle_bad_request(exc: BadRequest):
    return jsonify({'error': exc.message, 'code': 'BadRequest'}), 400


def _manager():
    return get_services()['manager']


def _client_id() -> str:
    forwarded_for = request.headers.get('X-Forwarded-For')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip
    return request.remote_addr or 'unknown'


def _rate_limited(limit_key: str):
    """Return a 429 response if this client is over the route's limit."""
    cfg = current_app.config
    if not cfg.get('RATE_LIMIT_ENABLED', True):
        return None
    max_requests = int(cfg.get(limit_key, 30))
    window = int(cfg.get('RATE_LIMIT_WINDOW_SEC', 60))
    result = get_services()['rate_limiter'].check(_client_id(), max_requests, window)
    if result.allowed:
        return None
    current_app.logger.info(f"[rate-limit] client={_client_id()} key={limit_key}")
    response = jsonify({'error': 'Too many requests. Please try again later.', 'code': 'RateLimited'})
    response.status_code = 429
    response.headers['X-RateLimit-Limit'] = str(max_requests)
    response.headers['X-RateLimit-Remaining'] = '0'
    response.headers['X-RateLimit-Reset'] = datetime.fromtimestamp(result.reset_at, timezone.utc).isoformat()
    return response


def _code(game_code: str) -> str:
    code = (game_code or '').upper()
    if not validate_session_code(code):
        raise BadRequest('Invalid game code format')
    return code


def _opaque_id(data, field: str, label: str) -> str:
    value = data.get(field)
    if not value or not isinstance(value, str):
        raise BadRequest(f'{label} is required')
    if not validate_opaque_id(value):
        raise BadRequest(f'Invalid {label.lower()} format')
    return value


@games.route('/create', methods=['POST'])
def create_game():
    limited = _rate_limited('RATE_LIMIT_CREATE')
    if limited:
        return limited
    data = request.get_json(silent=True) or {}
    nickname = data.get('nickname')
    if not nickname or not isinstance(nickname, str):
        return jsonify({'error': 'Nickname is required', 'code': 'BadRequest'}), 400

    session = _manager().create_session(nickname)
    return jsonify({
        'code': session.code,
        'playerId': session.host_id,
        'session': session.to_public_dict(),
    }), 201


@games.route('/<string:game_code>', methods=['GET'])
def get_game_state(game_code):
    limited = _rate_limited('RATE_LIMIT_STATE')
    if limited:
        return limited
    session = _manager().get_session(_code(game_code))
    return jsonify(session.to_public_dict())


@games.route('/<string:game_code>/join', methods=['POST'])
def join_game(game_code):
    limited = _rate_limited('RATE_LIMIT_JOIN')
    if limited:
        return limited
    code = _code(game_code)
    data = request.get_json(silent=True) or {}
    nickname = data.get('nickname')
    if not nickname or not isinstance(nickname, str):
        return jsonify({'error': 'Nickname is required', 'code': 'BadRequest'}), 400

    session, player = _manager().join_session(code, nickname)
    notifier.broadcast(code, notifier.PLAYER_JOINED, player_joined_payload(session, player))
    return jsonify({
        'playerId': player.id,
        'session': session.to_public_dict(),
    }), 201


@games.route('/<string:game_code>/start-round', methods=['POST'])
def start_round(game_code):
    limited = _rate_limited('RATE_LIMIT_START_ROUND')
    if limited:
        return limited
    code = _code(game_code)
    data = request.get_json(silent=True) or {}
    host_id = _opaque_id(data, 'hostId', 'Host ID')
    prompt = data.get('prompt')
    if prompt is not None and not isinstance(prompt, str):
        return jsonify({'error': 'Prompt must be text', 'code': 'BadRequest'}), 400

    session = _manager().start_round(code, host_id, prompt)
    notifier.broadcast(code, notifier.PROMPT_STARTED, prompt_started_payload(session.current))
    return jsonify(session.to_public_dict())


@games.route('/<string:game_code>/response', methods=['POST'])
def submit_response(game_code):
    limited = _rate_limited('RATE_LIMIT_RESPONSE')
    if limited:
        return limited
    code = _code(game_code)
    data = request.get_json(silent=True) or {}
    player_id = _opaque_id(data, 'playerId', 'Player ID')
    text = data.get('text')
    if not isinstance(text, str):
        return jsonify({'error': 'Response text is required', 'code': 'BadRequest'}), 400

    manager = _manager()
    session = manager.submit_response(code, player_id, text)
    round_ = session.current
    # Only this call can have moved the round out of responding
    if session.phase == Phase.GUESSING:
        notifier.broadcast(code, notifier.RESPONSES_READY,
                           responses_ready_payload(manager.shuffle_responses(round_)))
    return jsonify({
        'phase': session.phase.value,
        'responseCount': len(round_.responses),
        'totalPlayers': len(session.players),
    })


@games.route('/<string:game_code>/guess', methods=['POST'])
def submit_guesses(game_code):
    limited = _rate_limited('RATE_LIMIT_GUESS')
    if limited:
        return limited
    code = _code(game_code)
    data = request.get_json(silent=True) or {}
    player_id = _opaque_id(data, 'playerId', 'Player ID')
    guesses = data.get('guesses')
    if not isinstance(guesses, dict) or not guesses:
        return jsonify({'error': 'Guesses are required', 'code': 'BadRequest'}), 400
    for response_id, guessed_id in guesses.items():
        if not validate_opaque_id(response_id) or not validate_opaque_id(guessed_id):
            return jsonify({'error': 'Invalid ID format in guesses', 'code': 'BadRequest'}), 400

    session = _manager().submit_guesses(code, player_id, guesses)
    round_ = session.current
    if session.phase == Phase.REVEAL and round_.results:
        notifier.broadcast(code, notifier.RESULTS_READY, results_ready_payload(session, round_.results))
    return jsonify({
        'phase': session.phase.value,
        'guessCount': len(round_.guesses),
        'totalPlayers': len(session.players),
    })


@games.route('/<string:game_code>/disconnect', methods=['POST'])
def disconnect_player(game_code):
    limited = _rate_limited('RATE_LIMIT_DISCONNECT')
    if limited:
        return limited
    code = _code(game_code)
    data = request.get_json(silent=True) or {}
    player_id = _opaque_id(data, 'playerId', 'Player ID')

    manager = _manager()
    result = manager.handle_disconnect(code, player_id)
    notifier.announce_disconnect(code, result, player_id, manager)
    return jsonify({
        'success': True,
        'newHostId': result.new_host.id if result.new_host else None,
        'newHostNickname': result.new_host.nickname if result.new_host else None,
        'phaseChanged': result.phase_changed,
    })


@games.route('/<string:game_code>/end', methods=['POST'])
def end_game(game_code):
    limited = _rate_limited('RATE_LIMIT_END')
    if limited:
        return limited
    code = _code(game_code)
    data = request.get_json(silent=True) or {}
    host_id = _opaque_id(data, 'hostId', 'Host ID')

    manager = _manager()
    session = manager.end_game(code, host_id)
    notifier.broadcast(code, notifier.GAME_ENDED, game_ended_payload('Host ended the game', session))
    manager.delete_session(code)
    current_app.logger.info(f"[end] code={code} rounds={len(session.rounds)}")
    return jsonify({
        'success': True,
        'message': 'Game ended',
        'totalRounds': len(session.rounds),
        'finalStats': final_stats(session),
    })
