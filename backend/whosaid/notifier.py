"""Fan out game events to everyone in a game's Socket.IO room.

Payloads arrive fully built (see ``services.games.payloads``); this module
only decides where they go.
"""

from flask import current_app

from whosaid import socketio
from whosaid.services.games.payloads import (
    player_disconnected_payload, responses_ready_payload, results_ready_payload,
)
from whosaid.services.games.state import Phase

NAMESPACE = '/ws'

PLAYER_JOINED = 'player_joined'
PLAYER_DISCONNECTED = 'player_disconnected'
PROMPT_STARTED = 'prompt_started'
RESPONSES_READY = 'responses_ready'
RESULTS_READY = 'results_ready'
GAME_ENDED = 'game_ended'


def game_room(code: str) -> str:
    return f"game:{code.upper()}"


def broadcast(code: str, event: str, payload) -> None:
    try:
        current_app.logger.info(f"[notify] code={code} event={event}")
    except RuntimeError:
        # Outside an app context (background task); deliver anyway
        pass
    socketio.emit(event, payload, to=game_room(code), namespace=NAMESPACE)


def announce_disconnect(code: str, result, player_id: str, manager) -> None:
    """Broadcast a disconnect plus whatever phase change it caused."""
    session = result.session
    player = session.players[player_id]
    broadcast(code, PLAYER_DISCONNECTED, player_disconnected_payload(
        player, was_host=result.new_host is not None or player.is_host, new_host=result.new_host,
    ))
    if not result.phase_changed:
        return
    round_ = session.current
    if session.phase == Phase.GUESSING and round_ is not None:
        broadcast(code, RESPONSES_READY, responses_ready_payload(manager.shuffle_responses(round_)))
    elif session.phase == Phase.REVEAL and round_ is not None and round_.results:
        broadcast(code, RESULTS_READY, results_ready_payload(session, round_.results))
