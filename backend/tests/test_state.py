import json
from datetime import datetime, timedelta, timezone

from whosaid.services.games.scoring import calculate_results
from whosaid.services.games.state import (
    Phase, Player, PlayerGuesses, Response, Round, Session,
)

T0 = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _session_with_history():
    players = {}
    for i, name in enumerate(['Zed', 'Amy', 'Mia']):
        pid = f'p{i}'
        players[pid] = Player(id=pid, nickname=name, joined_at=T0 + timedelta(seconds=i),
                              is_host=(i == 0), is_connected=(i != 2))
    sealed = Round(round_number=0, prompt='First prompt')
    for i, pid in enumerate(players):
        rid = f'r{i}'
        sealed.responses[rid] = Response(id=rid, player_id=pid, text=f'answer {i}',
                                         submitted_at=T0 + timedelta(minutes=1, seconds=i))
    sealed.guesses['p0'] = PlayerGuesses('p0', {'r0': 'p1', 'r1': 'p0', 'r2': 'p2'}, T0 + timedelta(minutes=2))
    sealed.guesses['p1'] = PlayerGuesses('p1', {'r0': 'p0', 'r1': 'p1', 'r2': 'p2'}, T0 + timedelta(minutes=2))
    session = Session(
        code='ZX81AB', host_id='p0', created_at=T0, expires_at=T0 + timedelta(hours=24),
        phase=Phase.RESPONDING, current_round=1, players=players,
        used_prompts=['First prompt', 'Second prompt'],
    )
    sealed.results = calculate_results(session, sealed)
    session.rounds = [sealed, Round(round_number=1, prompt='Second prompt')]
    session.rounds[1].responses['r9'] = Response('r9', 'p2', 'late', T0 + timedelta(minutes=5))
    return session


def test_round_trip_is_lossless():
    session = _session_with_history()
    restored = Session.from_dict(json.loads(json.dumps(session.to_dict())))
    assert restored == session
    assert list(restored.players) == ['p0', 'p1', 'p2']
    assert [r.round_number for r in restored.rounds] == [0, 1]
    assert restored.rounds[0].results.penalties == {'p0': 2, 'p1': 0, 'p2': 0}
    assert restored.players['p1'].joined_at.tzinfo is not None


def test_maps_are_stored_as_pair_lists():
    data = _session_with_history().to_dict()
    assert data['players'][0][0] == 'p0'
    assert isinstance(data['rounds'][0]['responses'], list)
    assert data['rounds'][0]['guesses'][0][1]['guesses'][0] == ['r0', 'p1']


def test_public_state_hides_authors_while_responding():
    session = _session_with_history()
    public = json.dumps(session.to_public_dict())
    # p2 authored the only response of the live round
    assert 'late' not in public
    assert '"playerId"' not in public
    info = session.to_public_dict()['currentRoundInfo']
    assert info['responseCount'] == 1
    assert 'responses' not in info


def test_public_state_hides_authors_while_guessing():
    session = _session_with_history()
    session.phase = Phase.GUESSING
    info = session.to_public_dict()['currentRoundInfo']
    assert info['responses'] == [{'id': 'r9', 'text': 'late'}]
    assert 'results' not in info


def test_public_state_reveals_authors_after_reveal():
    session = _session_with_history()
    session.current_round = 0
    session.phase = Phase.REVEAL
    info = session.to_public_dict()['currentRoundInfo']
    assert {r['playerId'] for r in info['responses']} == {'p0', 'p1', 'p2'}
    assert info['results']['penalties']['p0'] == 2
    first = info['results']['responses'][0]
    assert first['actualAuthor'] == {'id': 'p0', 'nickname': 'Zed'}
    assert first['guessedBy'] == {'p0': 'p1', 'p1': 'p0'}


def test_current_round_and_connected_players():
    session = _session_with_history()
    assert session.current.prompt == 'Second prompt'
    assert [p.id for p in session.connected_players()] == ['p0', 'p1']
    session.rounds = []
    assert session.current is None
