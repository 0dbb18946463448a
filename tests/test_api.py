import pytest

from sqlalchemy.exc import OperationalError


def _save(client, **overrides):
    body = {
        'gameState': {'hp': 30},
        'characterId': 'ahri',
        'floorNumber': 1,
        'currentGold': 0,
        'maxFloorReached': 1,
    }
    body.update(overrides)
    return client.post('/api/gamesave/save', json=body)


def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'ok'


def test_unknown_route_is_json_404(client):
    res = client.get('/api/nope')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Not found'}


def test_register_login_and_me(client, register):
    user = register(client, 'bob')
    assert user['username'] == 'bob'
    assert client.get('/api/auth/me').get_json()['user']['id'] == user['id']
    assert client.post('/api/auth/logout').get_json() == {'success': True}
    assert client.get('/api/auth/me').status_code == 401

    bad = client.post('/api/auth/login', json={'email': 'bob@example.com', 'password': 'nope'})
    assert bad.status_code == 401
    ok = client.post('/api/auth/login', json={'email': 'bob@example.com', 'password': 'password'})
    assert ok.status_code == 200
    assert ok.get_json()['user']['id'] == user['id']


def test_register_requires_fields_and_unique_email(client, register):
    res = client.post('/api/auth/register', json={'email': 'x@example.com'})
    assert res.status_code == 400
    register(client, 'bob')
    dup = client.post('/api/auth/register', json={'email': 'bob@example.com', 'password': 'p', 'username': 'bob2'})
    assert dup.status_code == 400


def test_anonymous_login(client):
    res = client.post('/api/auth/login-anonymous')
    assert res.status_code == 201
    user = res.get_json()['user']
    assert user['username'].startswith('player_')
    assert len(user['username']) == len('player_') + 8
    assert client.get('/api/gamesave/load').status_code == 200


def test_auth_required_endpoints_reject_anonymous_callers(client):
    for method, path in [
        ('post', '/api/gamesave/save'),
        ('get', '/api/gamesave/load'),
        ('get', '/api/gamesave/load/abc'),
        ('get', '/api/gamesave/list'),
        ('post', '/api/gamesave/finish/abc'),
        ('delete', '/api/gamesave/abc'),
        ('post', '/api/leaderboard/submit'),
        ('get', '/api/leaderboard/user/best'),
        ('get', '/api/leaderboard/user/best/ahri'),
    ]:
        res = getattr(client, method)(path)
        assert res.status_code == 401, path
        assert res.get_json() == {'error': 'Unauthorized'}


def test_full_run_flow(auth_client):
    res = _save(auth_client)
    assert res.status_code == 200
    run = res.get_json()
    run_id = run['run_id']
    assert run['is_active'] is True

    res = _save(auth_client, runId=run_id, floorNumber=5, currentGold=100)
    run = res.get_json()
    assert run['max_floor_reached'] == 5
    assert run['current_gold'] == 100

    assert auth_client.get('/api/gamesave/load').get_json()['run_id'] == run_id

    finished = auth_client.post(f'/api/gamesave/finish/{run_id}').get_json()
    assert finished['is_active'] is False
    again = auth_client.post(f'/api/gamesave/finish/{run_id}')
    assert again.status_code == 200
    assert again.get_json()['is_active'] is False
    assert auth_client.get('/api/gamesave/load').get_json() is None

    res = auth_client.post('/api/leaderboard/submit', json={
        'characterId': 'ahri', 'finalFloor': 5, 'finalGold': 100,
    })
    assert res.status_code == 200
    entry = res.get_json()
    assert entry['username'] == 'alice'
    assert entry['total_encounters'] == 0

    board = auth_client.get('/api/leaderboard/global?limit=10').get_json()
    assert [e['id'] for e in board] == [entry['id']]


def test_load_by_run_id_hides_other_users_runs(auth_client, flask_app, register):
    run_id = _save(auth_client).get_json()['run_id']
    other = flask_app.test_client()
    register(other, 'mallory')
    res = other.get(f'/api/gamesave/load/{run_id}')
    assert res.status_code == 200
    assert res.get_json() is None
    # Not found and not yours look the same
    theirs = other.post(f'/api/gamesave/finish/{run_id}')
    missing = other.post('/api/gamesave/finish/does-not-exist')
    assert theirs.status_code == missing.status_code == 404
    assert theirs.get_json() == missing.get_json()
    assert other.delete(f'/api/gamesave/{run_id}').status_code == 404


def test_delete_keeps_leaderboard_entries(auth_client):
    run_id = _save(auth_client).get_json()['run_id']
    auth_client.post('/api/leaderboard/submit', json={'characterId': 'ahri', 'finalFloor': 1, 'finalGold': 0})
    assert auth_client.delete(f'/api/gamesave/{run_id}').get_json() == {'success': True}
    assert auth_client.get('/api/gamesave/list').get_json() == []
    assert auth_client.get(f'/api/gamesave/load/{run_id}').get_json() is None
    assert len(auth_client.get('/api/leaderboard/user/best').get_json()) == 1


def test_save_validation_errors(auth_client):
    res = _save(auth_client, floorNumber=-1)
    assert res.status_code == 400
    assert 'floorNumber' in res.get_json()['error']
    assert _save(auth_client, characterId=None).status_code == 400
    assert auth_client.post('/api/gamesave/save', json=[1, 2]).status_code == 400
    assert auth_client.get('/api/gamesave/list').get_json() == []


def test_submit_requires_floor_and_gold(auth_client):
    res = auth_client.post('/api/leaderboard/submit', json={'characterId': 'ahri', 'finalFloor': 3})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'finalFloor and finalGold are required'}
    res = auth_client.post('/api/leaderboard/submit', json={'characterId': 'ahri', 'finalFloor': -3, 'finalGold': 0})
    assert res.status_code == 400


def test_submit_out_of_range_values_are_validation_errors(auth_client):
    res = auth_client.post('/api/leaderboard/submit', json={
        'characterId': 'ahri', 'finalFloor': 10 ** 10, 'finalGold': 0,
    })
    assert res.status_code == 400
    assert 'finalFloor' in res.get_json()['error']
    res = auth_client.post('/api/leaderboard/submit', json={
        'characterId': 'a' * 65, 'finalFloor': 1, 'finalGold': 0,
    })
    assert res.status_code == 400
    res = auth_client.post(
        '/api/leaderboard/submit',
        data='{"characterId": "ahri", "finalFloor": 1, "finalGold": 0, "runDurationSeconds": NaN}',
        content_type='application/json',
    )
    assert res.status_code == 400
    assert 'runDurationSeconds' in res.get_json()['error']
    assert auth_client.get('/api/leaderboard/stats/global').get_json()['totalRuns'] == 0


def test_recent_with_huge_hours_back(client, add_score):
    add_score(floor=3)
    res = client.get('/api/leaderboard/recent?hoursBack=100000000')
    assert res.status_code == 200
    assert len(res.get_json()) == 1


def test_unauthorized_handler_raises_taxonomy_error(flask_app):
    from runvault import login_manager
    from runvault.errors import Unauthorized

    with flask_app.test_request_context('/api/gamesave/load'):
        with pytest.raises(Unauthorized):
            login_manager.unauthorized()


def test_register_rejects_long_username(client):
    res = client.post('/api/auth/register', json={
        'email': 'long@example.com', 'password': 'password', 'username': 'u' * 65,
    })
    assert res.status_code == 400


def test_limits_are_clamped(auth_client, add_score):
    for floor in range(3):
        add_score(floor=floor)
    assert len(auth_client.get('/api/leaderboard/global?limit=2').get_json()) == 2
    assert len(auth_client.get('/api/leaderboard/global?limit=-4').get_json()) == 1
    assert len(auth_client.get('/api/leaderboard/global?limit=abc').get_json()) == 3
    assert len(auth_client.get('/api/leaderboard/global?limit=999999').get_json()) == 3
    assert len(auth_client.get('/api/leaderboard/recent?hoursBack=1&limit=0').get_json()) == 3
    assert len(auth_client.get('/api/leaderboard/character/ahri').get_json()) == 3


def test_user_best_endpoints(auth_client):
    for floor, character in [(2, 'ahri'), (6, 'ahri'), (3, 'garen')]:
        auth_client.post('/api/leaderboard/submit', json={
            'characterId': character, 'finalFloor': floor, 'finalGold': 1,
        })
    best = auth_client.get('/api/leaderboard/user/best').get_json()
    assert [(e['character_id'], e['final_floor']) for e in best] == [('ahri', 6), ('garen', 3)]
    assert auth_client.get('/api/leaderboard/user/best/garen').get_json()['final_floor'] == 3
    assert auth_client.get('/api/leaderboard/user/best/teemo').get_json() is None


def test_global_stats_endpoint(client):
    assert client.get('/api/leaderboard/stats/global').get_json() == {
        'totalRuns': 0, 'avgFloor': 0, 'maxFloor': 0, 'avgGold': 0,
    }


class _BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('connection refused by db-7.internal'))

    def rollback(self):
        pass


def test_store_failure_is_generic_503(auth_client, flask_app):
    from runvault.services.runs import RunLifecycleManager

    flask_app.extensions['run_lifecycle'] = RunLifecycleManager(_BrokenSession())
    res = auth_client.get('/api/gamesave/load')
    assert res.status_code == 503
    assert res.get_json() == {'error': 'Storage temporarily unavailable'}
    assert 'db-7' not in res.get_data(as_text=True)
