"""HTTP API via the Flask test client."""
import pytest


def start(client, **body):
    response = client.post('/api/game/start', json=body)
    assert response.status_code == 201
    return response.get_json()['session_id']


def action(client, session_id, action_type, **action_data):
    return client.post('/api/game/action', json={
        'session_id': session_id,
        'action_type': action_type,
        'action_data': action_data
    })


def test_start_and_get_state(client):
    response = client.post('/api/game/start', json={'player_name': 'ada'})
    assert response.status_code == 201
    data = response.get_json()
    assert data['game_state']['money'] == 1000
    assert data['game_state']['current_era'] == 'GNT-2'

    response = client.get(f"/api/game/state/{data['session_id']}")
    assert response.status_code == 200
    assert response.get_json()['game_state']['intelligence'] == 100


def test_missing_session_is_404(client):
    response = client.get('/api/game/state/9999')
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}


def test_action_updates_and_records(client):
    session_id = start(client)

    response = action(client, session_id, 'allocate_money', resource_type='compute', sub_input='money')
    assert response.status_code == 200
    data = response.get_json()
    assert data['result']['cost'] == pytest.approx(100)
    assert data['game_state']['money'] == pytest.approx(900)

    response = client.get(f'/api/game/state/{session_id}')
    assert response.get_json()['game_state']['compute_inputs']['money'] == 2

    response = client.get(f'/api/scores/actions/{session_id}')
    actions = response.get_json()['actions']
    assert [(a['action_type'], a['succeeded']) for a in actions] == [('allocate_money', True)]


def test_action_errors(client):
    session_id = start(client)

    response = action(client, session_id, 'start_training', duration=10, compute_cost=10, money_cost=5000)
    assert response.status_code == 400
    assert response.get_json()['type'] == 'insufficient_funds'

    response = action(client, session_id, 'start_training', duration=10, compute_cost=10, money_cost=100)
    assert response.status_code == 200
    assert 'training_started' in [e['name'] for e in response.get_json()['events']]

    response = action(client, session_id, 'start_training', duration=10, compute_cost=10, money_cost=100)
    assert response.status_code == 409
    assert response.get_json()['type'] == 'already_running'

    response = action(client, session_id, 'launch_rocket')
    assert response.status_code == 400

    response = client.post('/api/game/action', json={'session_id': session_id})
    assert response.status_code == 400

    actions = client.get(f'/api/scores/actions/{session_id}').get_json()['actions']
    assert [a['succeeded'] for a in actions] == [False, True, False]


def test_tick_respects_running_flag(client):
    session_id = start(client)

    response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 1})
    assert response.get_json()['ticks'] == 0

    response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 1, 'running': True})
    data = response.get_json()
    assert data['ticks'] == 10
    assert data['game_state']['time'] == pytest.approx(1.0)
    assert data['game_state']['is_running'] is True

    # Running state persists between requests
    response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 2})
    assert response.get_json()['ticks'] == 20


def test_tick_rejects_bad_seconds(client):
    session_id = start(client)
    response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 10_000})
    assert response.status_code == 400
    response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 'soon'})
    assert response.status_code == 400


def test_save_list_and_load(client):
    session_id = start(client, running=True)
    client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 2})

    response = client.post('/api/game/save', json={'session_id': session_id})
    assert response.status_code == 201
    saved = response.get_json()['saved_game']
    assert saved['time_elapsed'] == 2

    client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 5})
    saves = client.get(f'/api/game/saves/{session_id}').get_json()['saves']
    assert [s['id'] for s in saves] == [saved['id']]

    response = client.post('/api/game/load', json={'session_id': session_id, 'save_id': saved['id']})
    assert response.status_code == 200
    state = response.get_json()['game_state']
    assert state['time_elapsed'] == 2
    assert state['resources'] == pytest.approx(saved['resources'])


def test_reset(client):
    session_id = start(client, running=True)
    action(client, session_id, 'advertise')
    client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 1})

    response = client.post('/api/game/reset', json={'session_id': session_id})
    state = response.get_json()['game_state']
    assert state['money'] == 1000
    assert state['tick'] == 0
    assert state['is_running'] is False


def test_complete_submits_once(client):
    session_id = start(client, player_name='grace')

    response = client.post('/api/game/complete', json={'session_id': session_id})
    data = response.get_json()
    assert data['leaderboard_entry']['player_name'] == 'grace'
    assert data['already_submitted'] is False
    assert data['session']['completed_at'] is not None

    response = client.post('/api/game/complete', json={'session_id': session_id})
    assert response.get_json()['already_submitted'] is True

    response = client.post('/api/scores/submit', json={'session_id': session_id})
    assert response.status_code == 409

    board = client.get('/api/scores/leaderboard').get_json()
    assert board['total'] == 1
    assert board['entries'][0]['player_name'] == 'grace'


def test_agi_run_lands_on_leaderboard(client):
    session_id = start(client, player_name='turing', config={'initial_intelligence': 998}, running=True)
    response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 10})
    data = response.get_json()
    assert data['game_state']['agi_achieved'] is True
    assert 'agi_reached' in [e['name'] for e in data['events']]

    entries = client.get('/api/scores/leaderboard').get_json()['entries']
    assert len(entries) == 1
    assert entries[0]['has_achieved_agi'] is True
    assert entries[0]['session_id'] == session_id

    saves = client.get(f'/api/game/saves/{session_id}').get_json()['saves']
    assert len(saves) == 1


def test_leaderboard_ranks_agi_first(client):
    slow = start(client, player_name='slow')
    fast = start(client, player_name='fast', config={'initial_intelligence': 999}, running=True)
    client.post('/api/game/tick', json={'session_id': fast, 'seconds': 5})
    client.post('/api/scores/submit', json={'session_id': slow})

    entries = client.get('/api/scores/leaderboard?limit=5').get_json()['entries']
    assert [e['player_name'] for e in entries] == ['fast', 'slow']

    entries = client.get('/api/scores/leaderboard?limit=1&offset=1').get_json()['entries']
    assert [e['player_name'] for e in entries] == ['slow']


def test_breakthrough_catalog(client):
    breakthroughs = client.get('/api/game/breakthroughs').get_json()['breakthroughs']
    assert len(breakthroughs) == 10
    assert breakthroughs[0]['id'] == 'transformer_architecture'


def test_game_data_is_served(client):
    response = client.get('/game_data/eras.json')
    assert response.status_code == 200
    assert response.get_json()['eras'][0]['id'] == 'GNT-2'


def test_register_login_me(client):
    response = client.post('/api/auth/register', json={'username': 'ada', 'password': 'engine'})
    assert response.status_code == 201

    response = client.post('/api/auth/register', json={'username': 'ada', 'password': 'other'})
    assert response.status_code == 400

    response = client.post('/api/auth/login', json={'username': 'ada', 'password': 'wrong'})
    assert response.status_code == 401

    response = client.post('/api/auth/login', json={'username': 'ada', 'password': 'engine'})
    token = response.get_json()['token']

    response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert response.get_json()['user']['username'] == 'ada'

    assert client.get('/api/auth/me').status_code == 401


def test_sessions_are_private_to_their_owner(client):
    tokens = {}
    for name in ('ada', 'bob'):
        client.post('/api/auth/register', json={'username': name, 'password': 'pw'})
        tokens[name] = client.post('/api/auth/login', json={'username': name, 'password': 'pw'}).get_json()['token']

    response = client.post('/api/game/start', json={}, headers={'Authorization': f"Bearer {tokens['ada']}"})
    data = response.get_json()
    assert data['game_state']['session_id'] == data['session_id']

    response = client.get(f"/api/game/state/{data['session_id']}", headers={'Authorization': f"Bearer {tokens['bob']}"})
    assert response.status_code == 403


def test_periodic_saves_across_tick_requests(client):
    session_id = start(client, running=True)
    for _ in range(4):
        response = client.post('/api/game/tick', json={'session_id': session_id, 'seconds': 20})
        assert response.status_code == 200

    saves = client.get(f'/api/game/saves/{session_id}').get_json()['saves']
    assert sorted(s['time_elapsed'] for s in saves) == [30, 60]


def test_guest_session_claimed_on_register(client):
    session_id = start(client, player_name='guest-ada')
    client.post('/api/game/complete', json={'session_id': session_id})

    response = client.post('/api/auth/register', json={'username': 'ada', 'password': 'pw', 'session_id': session_id})
    assert response.status_code == 201
    data = response.get_json()
    assert data['claimed_session_id'] == session_id

    me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {data['token']}"}).get_json()
    assert [s['id'] for s in me['sessions']] == [session_id]
    assert me['sessions'][0]['current_era'] == 'GNT-2'
    assert me['completed_runs'] == 1
    assert me['best_entry']['player_name'] == 'guest-ada'

    # Someone else cannot claim it afterwards
    client.post('/api/auth/register', json={'username': 'bob', 'password': 'pw'})
    response = client.post('/api/auth/login', json={'username': 'bob', 'password': 'pw', 'session_id': session_id})
    assert response.status_code == 403

    response = client.post('/api/auth/register', json={'username': 'eve', 'password': 'pw', 'session_id': 9999})
    assert response.status_code == 404


def test_me_without_runs(client):
    token = client.post('/api/auth/register', json={'username': 'cy', 'password': 'pw'}).get_json()['token']
    me = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'}).get_json()
    assert me['sessions'] == []
    assert me['best_entry'] is None
