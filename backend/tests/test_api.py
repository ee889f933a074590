from arena.services.games.registry import CODE_ALPHABET


def test_index(client):
    assert client.get('/').status_code == 200
    assert client.get('/health').get_json()['status'] == 'ok'


def test_create_game(client):
    res = client.post('/api/games/create', json={'host_name': 'Alice', 'total_rounds': 5})
    assert res.status_code == 201
    data = res.get_json()
    assert len(data['code']) == 6
    assert set(data['code']) <= set(CODE_ALPHABET)
    assert data['host_id'] and data['secret_token']

    state = client.get(f"/api/games/{data['code']}/state").get_json()
    assert state['phase'] == 'lobby'
    assert state['total_rounds'] == 5
    assert state['host_id'] == data['host_id']


def test_create_defaults_to_ten_rounds(client):
    data = client.post('/api/games/create', json={'host_name': 'Alice'}).get_json()
    assert client.get(f"/api/games/{data['code']}/state").get_json()['total_rounds'] == 10


def test_create_validates_input(client):
    for body in (
        {'host_name': 'Alice', 'total_rounds': 2},
        {'host_name': 'Alice', 'total_rounds': 16},
        {'host_name': 'Alice', 'total_rounds': 'many'},
        {'host_name': '   '},
        {'host_name': 'x' * 21},
        {},
    ):
        res = client.post('/api/games/create', json=body)
        assert res.status_code == 400, body
        assert 'error' in res.get_json()


def test_join_and_state(client, game_api):
    host = game_api.create()
    code = host['code']
    bob = game_api.join(code.lower(), 'Bob')
    assert bob['player_id'] and bob['secret_token']
    assert any(p['name'] == 'Bob' for p in bob['session']['participants'])

    game = client.get(f'/api/games/{code}/state').get_json()
    assert game['code'] == code
    assert [p['name'] for p in game['participants']] == ['Alice', 'Bob']
    # Secrets are only handed out once
    assert host['secret_token'] not in str(game)
    assert bob['secret_token'] not in str(game)
    assert all('token_hash' not in p for p in game['participants'])


def test_join_rejects_duplicate_name(client, game_api):
    code = game_api.create()['code']
    game_api.join(code, 'Bob')
    res = client.post('/api/games/join', json={'game_code': code, 'name': 'bob'})
    assert res.status_code == 409


def test_join_errors(client, game_api):
    assert client.post('/api/games/join', json={'game_code': 'ABC', 'name': 'Bob'}).status_code == 400
    assert client.post('/api/games/join', json={'game_code': 'ZZZZZZ', 'name': 'Bob'}).status_code == 404
    assert client.post('/api/games/join', json={'name': 'Bob'}).status_code == 400
    assert client.get('/api/games/ZZZZZZ/state').status_code == 404


def test_start_requires_player_and_host(client, game_api):
    host = game_api.create()
    code = host['code']
    assert game_api.host(code, 'start', host).status_code == 409

    bob = game_api.join(code, 'Bob')
    res = client.post(f'/api/games/{code}/start', json={'host_id': bob['player_id'], 'secret_token': bob['secret_token']})
    assert res.status_code == 403
    res = client.post(f'/api/games/{code}/start', json={'host_id': host['host_id'], 'secret_token': 'guess'})
    assert res.status_code == 401
    res = client.post(f'/api/games/{code}/start', json={})
    assert res.status_code == 401

    started = game_api.host(code, 'start', host)
    assert started.status_code == 200
    data = started.get_json()
    assert data['phase'] == 'playing'
    assert data['current_round'] == 1
    assert len(data['scenario_order']) == 3
    assert data['current_scenario']['id'] == data['scenario_order'][0]
    assert data['time_remaining'] == 30

    assert game_api.host(code, 'start', host).status_code == 409
    res = client.post('/api/games/join', json={'game_code': code, 'name': 'Late'})
    assert res.status_code == 409


def test_full_game_flow(client, game_api):
    host = game_api.create(total_rounds=3)
    code = host['code']
    bob = game_api.join(code, 'Bob')
    cara = game_api.join(code, 'Cara')
    assert game_api.host(code, 'start', host).status_code == 200

    for round_no in (1, 2, 3):
        state = client.get(f'/api/games/{code}/state').get_json()
        assert state['current_round'] == round_no
        assert state['phase'] == 'playing'
        assert not any(p['has_chosen'] for p in state['participants'])

        assert game_api.choose(code, bob, 'risky').status_code == 200
        again = game_api.choose(code, bob, 'safe')
        assert again.status_code == 409
        chose = game_api.choose(code, cara, 'safe').get_json()
        assert chose['all_chosen'] is True

        ended = game_api.host(code, 'end-round', host)
        assert ended.status_code == 200
        ended = ended.get_json()
        assert ended['phase'] == 'results'
        assert len(ended['round_results']) == round_no
        assert all(not p['has_chosen'] for p in ended['participants'])
        assert game_api.host(code, 'end-round', host).status_code == 409

        outcomes = {o['name']: o for o in ended['round_results'][-1]['outcomes']}
        # Halving from 100 cannot eliminate anyone within three rounds
        assert set(outcomes) == {'Bob', 'Cara'}
        assert outcomes['Bob']['choice'] == 'risky'
        assert outcomes['Cara']['choice'] == 'safe'
        for p in ended['participants']:
            assert p['population'] > 0
            if not p['is_host']:
                assert p['last_choice'] == outcomes[p['name']]['choice']

        res = game_api.host(code, 'next-round', host).get_json()
        assert res['phase'] == ('playing' if round_no < 3 else 'finished')

    assert game_api.host(code, 'next-round', host).status_code == 409
    assert game_api.choose(code, bob, 'safe').status_code == 409


def test_choose_validates_choice(client, game_api):
    host = game_api.create()
    code = host['code']
    bob = game_api.join(code, 'Bob')
    game_api.host(code, 'start', host)
    assert game_api.choose(code, bob, 'reckless').status_code == 400
    res = client.post(f'/api/games/{code}/choose', json={'player_id': bob['player_id'], 'secret_token': bob['secret_token']})
    assert res.status_code == 400
    res = client.post(
        f'/api/games/{code}/choose',
        json={'player_id': bob['player_id'], 'secret_token': host['secret_token'], 'choice': 'safe'},
    )
    assert res.status_code == 401


def test_pause_and_resume(client, game_api, flask_app, clock):
    flask_app.extensions['arena'].engine.clock = clock
    host = game_api.create()
    code = host['code']
    bob = game_api.join(code, 'Bob')
    game_api.host(code, 'start', host)
    assert game_api.host(code, 'resume', host).status_code == 409

    clock.advance(8)
    paused = game_api.host(code, 'pause', host).get_json()
    assert paused['phase'] == 'paused'
    assert paused['paused_remaining_seconds'] == 22
    assert paused['round_start_time'] is None
    assert game_api.choose(code, bob, 'safe').status_code == 200

    clock.advance(120)
    resumed = game_api.host(code, 'resume', host).get_json()
    assert resumed['phase'] == 'playing'
    assert resumed['paused_remaining_seconds'] is None
    assert resumed['time_remaining'] == 22


def test_expire_only_after_deadline(client, game_api, flask_app, clock):
    flask_app.extensions['arena'].engine.clock = clock
    host = game_api.create()
    code = host['code']
    bob = game_api.join(code, 'Bob')
    game_api.host(code, 'start', host)
    body = {'player_id': bob['player_id'], 'secret_token': bob['secret_token']}

    assert client.post(f'/api/games/{code}/expire', json=body).status_code == 409
    clock.advance(30)
    res = client.post(f'/api/games/{code}/expire', json=body)
    assert res.status_code == 200
    assert res.get_json()['phase'] == 'results'
    assert client.post(f'/api/games/{code}/expire', json=body).status_code == 409


def test_leave(client, game_api):
    host = game_api.create()
    code = host['code']
    bob = game_api.join(code, 'Bob')
    res = client.post(f'/api/games/{code}/leave', json={'player_id': host['host_id'], 'secret_token': host['secret_token']})
    assert res.status_code == 409
    res = client.post(f'/api/games/{code}/leave', json={'player_id': bob['player_id'], 'secret_token': bob['secret_token']})
    assert res.status_code == 200
    assert res.get_json() == {'success': True}
    state = client.get(f'/api/games/{code}/state').get_json()
    assert [p['name'] for p in state['participants']] == ['Alice']
    # Name is free again
    game_api.join(code, 'Bob')


def test_leaderboard(client, game_api):
    host = game_api.create()
    code = host['code']
    game_api.join(code, 'Bob')
    game_api.join(code, 'Cara')
    board = client.get(f'/api/games/{code}/leaderboard').get_json()['leaderboard']
    assert [(row['rank'], row['participant']['name']) for row in board] == [(1, 'Bob'), (2, 'Cara')]


def test_early_end_when_everyone_chose(client, game_api, flask_app):
    flask_app.extensions['arena'].early_end = True
    host = game_api.create()
    code = host['code']
    bob = game_api.join(code, 'Bob')
    cara = game_api.join(code, 'Cara')
    game_api.host(code, 'start', host)
    assert game_api.choose(code, bob, 'safe').get_json()['phase'] == 'playing'
    state = game_api.choose(code, cara, 'risky').get_json()
    assert state['phase'] == 'results'
    assert len(state['round_results']) == 1
