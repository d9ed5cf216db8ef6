import json
import uuid

import pytest

from whosaid import create_app, db


def _create(client, nickname='Alice'):
    res = client.post('/api/games/create', json={'nickname': nickname})
    assert res.status_code == 201
    data = res.get_json()
    return data['code'], data['playerId']


def _join(client, code, nickname):
    res = client.post(f'/api/games/{code}/join', json={'nickname': nickname})
    assert res.status_code == 201
    return res.get_json()['playerId']


def _table(client, size=3):
    code, host = _create(client)
    ids = [host] + [_join(client, code, f'Guest {i}') for i in range(1, size)]
    return code, ids


def test_index_and_health(client):
    assert client.get('/').status_code == 200
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json()['services']['database'] == 'connected'


def test_create_game(client):
    res = client.post('/api/games/create', json={'nickname': 'Alice'})
    assert res.status_code == 201
    data = res.get_json()
    assert len(data['code']) == 6
    assert data['session']['phase'] == 'lobby'
    assert data['session']['hostId'] == data['playerId']
    assert data['session']['players'][0]['nickname'] == 'Alice'


def test_create_game_requires_valid_nickname(client):
    assert client.post('/api/games/create', json={}).status_code == 400
    res = client.post('/api/games/create', json={'nickname': 'x'})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'InvalidNickname'


def test_join_and_state(client):
    code, host = _create(client)
    bob = _join(client, code, 'Bob')

    res = client.get(f'/api/games/{code.lower()}')
    assert res.status_code == 200
    game = res.get_json()
    assert game['code'] == code
    assert [p['nickname'] for p in game['players']] == ['Alice', 'Bob']
    assert [p['id'] for p in game['players']] == [host, bob]
    assert game['currentRoundInfo'] is None


def test_join_errors_map_to_statuses(client):
    code, host = _create(client)
    assert client.post('/api/games/ZZZZZZ/join', json={'nickname': 'Bob'}).status_code == 404
    assert client.post('/api/games/bad!/join', json={'nickname': 'Bob'}).status_code == 400
    res = client.post(f'/api/games/{code}/join', json={'nickname': 'alice'})
    assert res.status_code == 409
    assert res.get_json()['code'] == 'NicknameTaken'


def test_unknown_game_is_404(client):
    res = client.get('/api/games/ZZZZZZ')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Game not found', 'code': 'SessionNotFound'}


def test_full_round_flow(client):
    code, ids = _table(client, 3)
    host = ids[0]

    # Only the host may start
    res = client.post(f'/api/games/{code}/start-round', json={'hostId': ids[1]})
    assert res.status_code == 403
    res = client.post(f'/api/games/{code}/start-round', json={'hostId': host, 'prompt': 'Best snack?'})
    assert res.status_code == 200
    assert res.get_json()['currentRoundInfo']['prompt'] == 'Best snack?'

    for i, pid in enumerate(ids):
        res = client.post(f'/api/games/{code}/response', json={'playerId': pid, 'text': f'snack {i}'})
        assert res.status_code == 200
        body = res.get_json()
        assert body['responseCount'] == i + 1
        assert body['totalPlayers'] == 3
    assert body['phase'] == 'guessing'

    # Duplicate submit during guessing is a state conflict
    res = client.post(f'/api/games/{code}/response', json={'playerId': host, 'text': 'again'})
    assert res.status_code == 409

    state = client.get(f'/api/games/{code}').get_json()
    assert state['phase'] == 'guessing'
    responses = state['currentRoundInfo']['responses']
    assert all(set(r) == {'id', 'text'} for r in responses)

    for pid in ids:
        guesses = {r['id']: host for r in responses}
        res = client.post(f'/api/games/{code}/guess', json={'playerId': pid, 'guesses': guesses})
        assert res.status_code == 200
    assert res.get_json()['phase'] == 'reveal'

    state = client.get(f'/api/games/{code}').get_json()
    results = state['currentRoundInfo']['results']
    # Everyone blamed the host, so each player misattributed two responses
    assert results['penalties'] == {pid: 2 for pid in ids}
    assert {r['playerId'] for r in state['currentRoundInfo']['responses']} == set(ids)

    res = client.post(f'/api/games/{code}/end', json={'hostId': host})
    assert res.status_code == 200
    body = res.get_json()
    assert body['totalRounds'] == 1
    assert {p['totalPenalties'] for p in body['finalStats']['players']} == {2}
    assert client.get(f'/api/games/{code}').status_code == 404


def test_guess_payload_validation(client):
    code, ids = _table(client, 3)
    client.post(f'/api/games/{code}/start-round', json={'hostId': ids[0]})
    for pid in ids:
        client.post(f'/api/games/{code}/response', json={'playerId': pid, 'text': 'hi'})

    res = client.post(f'/api/games/{code}/guess', json={'playerId': ids[0], 'guesses': {'x': 'y'}})
    assert res.status_code == 400
    res = client.post(f'/api/games/{code}/guess', json={'playerId': ids[0]})
    assert res.status_code == 400
    res = client.post(f'/api/games/{code}/guess', json={
        'playerId': ids[0], 'guesses': {str(uuid.uuid4()): ids[1]},
    })
    assert res.status_code == 400
    assert res.get_json()['code'] == 'IncompleteGuesses'


def test_requests_validate_ids(client):
    code, ids = _table(client, 3)
    res = client.post(f'/api/games/{code}/start-round', json={'hostId': 'not-a-uuid'})
    assert res.status_code == 400
    res = client.post(f'/api/games/{code}/response', json={'text': 'hi'})
    assert res.status_code == 400
    res = client.post(f'/api/games/{code}/response', json={'playerId': str(uuid.uuid4()), 'text': 'hi'})
    assert res.status_code == 404


def test_disconnect_route_fails_over_host(client):
    code, ids = _table(client, 3)
    res = client.post(f'/api/games/{code}/disconnect', json={'playerId': ids[0]})
    assert res.status_code == 200
    body = res.get_json()
    assert body['newHostId'] == ids[1]
    assert body['newHostNickname'] == 'Guest 1'
    assert body['phaseChanged'] is False

    state = client.get(f'/api/games/{code}').get_json()
    assert state['hostId'] == ids[1]
    assert [p['isConnected'] for p in state['players']] == [False, True, True]

    # Old host lost its privileges
    res = client.post(f'/api/games/{code}/end', json={'hostId': ids[0]})
    assert res.status_code == 403


def test_disconnect_route_advances_phase(client):
    code, ids = _table(client, 3)
    client.post(f'/api/games/{code}/start-round', json={'hostId': ids[0]})
    for pid in ids[:2]:
        client.post(f'/api/games/{code}/response', json={'playerId': pid, 'text': 'hi'})

    res = client.post(f'/api/games/{code}/disconnect', json={'playerId': ids[2]})
    assert res.get_json()['phaseChanged'] is True
    assert client.get(f'/api/games/{code}').get_json()['phase'] == 'guessing'


class RateLimitedConfig:
    TESTING = True
    SECRET_KEY = 'test-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RATE_LIMIT_ENABLED = True
    RATE_LIMIT_WINDOW_SEC = 60
    RATE_LIMIT_STATE = 2


@pytest.fixture()
def limited_client():
    application = create_app(RateLimitedConfig)
    with application.app_context():
        db.create_all()
        yield application.test_client()
        db.session.remove()
        db.drop_all()


def test_rate_limit_returns_429(limited_client):
    codes = [limited_client.get('/api/games/ZZZZZZ').status_code for _ in range(3)]
    assert codes == [404, 404, 429]
    res = limited_client.get('/api/games/ZZZZZZ')
    assert res.headers['X-RateLimit-Limit'] == '2'
    assert res.headers['X-RateLimit-Remaining'] == '0'
    assert json.loads(res.data)['code'] == 'RateLimited'
