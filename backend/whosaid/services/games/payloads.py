"""Broadcast payloads derived from session state.

Builders are pure; delivery is the notifier's job. Nothing built here
before a round is revealed carries a response author.
"""

from typing import Iterable, Optional

from .scoring import final_stats
from .state import Player, Response, Round, RoundResults, Session


def player_joined_payload(session: Session, player: Player):
    return {
        'player': {
            'id': player.id,
            'nickname': player.nickname,
            'isHost': player.is_host,
        },
        'playerCount': len(session.players),
    }


def prompt_started_payload(round_: Round):
    return {'prompt': round_.prompt, 'roundNumber': round_.round_number}


def responses_ready_payload(responses: Iterable[Response]):
    return {'responses': [{'id': r.id, 'text': r.text} for r in responses]}


def results_to_public(session: Session, results: RoundResults):
    responses = []
    for entry in results.responses:
        author = session.players.get(entry.actual_author)
        responses.append({
            'responseId': entry.response_id,
            'text': entry.text,
            'actualAuthor': {
                'id': entry.actual_author,
                'nickname': author.nickname if author else None,
            },
            'guessedBy': dict(entry.guessed_by),
        })
    return {'responses': responses, 'penalties': dict(results.penalties)}


def results_ready_payload(session: Session, results: RoundResults):
    return {'results': results_to_public(session, results)}


def player_disconnected_payload(player: Player, was_host: bool, new_host: Optional[Player] = None):
    return {
        'playerId': player.id,
        'nickname': player.nickname,
        'wasHost': was_host,
        'newHostId': new_host.id if new_host else None,
        'newHostNickname': new_host.nickname if new_host else None,
    }


def game_ended_payload(reason: str, session: Optional[Session] = None):
    return {
        'reason': reason,
        'finalStats': final_stats(session) if session is not None else None,
    }
