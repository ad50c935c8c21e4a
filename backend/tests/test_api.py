import pytest

from game_helpers import mismatch_for, pairs_of, partner_of
from memory_matchers.services.games import PersistenceError


def _deck(services, code):
    return services.registry.get(code).session.deck


def _create(client, **body):
    res = client.post('/api/games/create', json=body)
    assert res.status_code == 201
    return res.get_json()


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'Memory Matchers' in res.get_json()['message']


def test_list_modes(client):
    res = client.get('/api/games/modes')
    assert res.status_code == 200
    assert '2x2' in res.get_json()['modes']


def test_create_game_starts_on_mode_select(client):
    data = _create(client)
    assert 'game_code' in data
    assert data['screen'] == 'mode_select'

    state = client.get(f"/api/games/{data['game_code'].lower()}/state").get_json()
    assert state['screen'] == 'mode_select'
    assert state['evaluation_delay'] == 0.5


def test_create_with_mode_starts_playing(client):
    data = _create(client, mode='2x3')
    assert data['screen'] == 'playing'
    session = data['session']
    assert session['game'] == '2x3'
    assert len(session['cards']) == 6
    assert all(c['face'] is None for c in session['cards'])


def test_create_with_invalid_grid_is_rejected(client, services):
    res = client.post('/api/games/create', json={'rows': 3, 'columns': 3})
    assert res.status_code == 400
    assert 'error' in res.get_json()
    res = client.post('/api/games/create', json={'rows': 'two', 'columns': 2})
    assert res.status_code == 400
    assert len(services.registry) == 0


def test_unknown_game_is_404(client):
    assert client.get('/api/games/ZZZZ/state').status_code == 404
    assert client.post('/api/games/ZZZZ/tap', json={'index': 0}).status_code == 404


def test_choose_mode_then_play_to_win_and_save(client, services):
    code = _create(client)['game_code']
    res = client.post(f'/api/games/{code}/mode', json={'rows': 2, 'columns': 2})
    assert res.status_code == 200
    assert res.get_json()['screen'] == 'playing'

    for first, second in pairs_of(_deck(services, code)):
        assert client.post(f'/api/games/{code}/tap', json={'index': first}).get_json()['accepted'] is True
        state = client.post(f'/api/games/{code}/tap', json={'index': second}).get_json()
        assert state['session']['pending'] is True
        services.scheduler.run_pending()

    state = client.get(f'/api/games/{code}/state').get_json()
    assert state['screen'] == 'name_entry'
    assert state['game'] == '2x2'
    elapsed = state['elapsed']

    res = client.post(f'/api/games/{code}/name', json={'name': 'Ada'})
    assert res.status_code == 201
    body = res.get_json()
    assert body['screen'] == 'mode_select'
    assert body['record']['name'] == 'Ada'
    assert body['record']['game'] == '2x2'
    assert body['record']['time'] == elapsed

    scores = client.get('/api/scores').get_json()
    assert [s['id'] for s in scores] == [body['record']['id']]


def test_mismatch_then_ignored_taps(client, services):
    code = _create(client, mode='2x3')['game_code']
    deck = _deck(services, code)
    other = mismatch_for(deck, 0)

    client.post(f'/api/games/{code}/tap', json={'index': 0})
    client.post(f'/api/games/{code}/tap', json={'index': other})
    # A third card cannot flip while the pair is pending
    third = next(i for i in range(6) if i not in (0, other))
    assert client.post(f'/api/games/{code}/tap', json={'index': third}).get_json()['accepted'] is False

    services.scheduler.run_pending()
    session = client.get(f'/api/games/{code}/state').get_json()['session']
    assert not any(c['face_up'] for c in session['cards'])
    assert session['won'] is False


def test_tap_validation(client):
    code = _create(client, mode='2x2')['game_code']
    assert client.post(f'/api/games/{code}/tap', json={}).status_code == 400
    res = client.post(f'/api/games/{code}/tap', json={'index': 4})
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_tap_on_menu_is_conflict(client):
    code = _create(client)['game_code']
    res = client.post(f'/api/games/{code}/tap', json={'index': 0})
    assert res.status_code == 409


def test_restart_discards_pending_pair(client, services):
    code = _create(client, mode='2x3')['game_code']
    deck = _deck(services, code)
    client.post(f'/api/games/{code}/tap', json={'index': 0})
    client.post(f'/api/games/{code}/tap', json={'index': partner_of(deck, 0)})

    res = client.post(f'/api/games/{code}/restart')
    assert res.status_code == 200
    assert services.scheduler.run_pending() == 0
    session = client.get(f'/api/games/{code}/state').get_json()['session']
    assert not any(c['matched'] for c in session['cards'])
    assert session['elapsed'] >= 0


def test_persistence_failure_allows_retry(client, services, monkeypatch):
    code = _create(client, mode='2x2')['game_code']
    for first, second in pairs_of(_deck(services, code)):
        client.post(f'/api/games/{code}/tap', json={'index': first})
        client.post(f'/api/games/{code}/tap', json={'index': second})
        services.scheduler.run_pending()

    def broken(score):
        raise PersistenceError('database unavailable')

    monkeypatch.setattr(services.store, 'record', broken)
    res = client.post(f'/api/games/{code}/name', json={'name': 'Ada'})
    assert res.status_code == 503
    assert res.get_json()['retry'] is True
    assert client.get(f'/api/games/{code}/state').get_json()['screen'] == 'name_entry'

    monkeypatch.undo()
    res = client.post(f'/api/games/{code}/name', json={'name': 'Ada'})
    assert res.status_code == 201


def test_discard_and_blank_name(client, services):
    code = _create(client, mode='2x2')['game_code']
    for first, second in pairs_of(_deck(services, code)):
        client.post(f'/api/games/{code}/tap', json={'index': first})
        client.post(f'/api/games/{code}/tap', json={'index': second})
        services.scheduler.run_pending()

    assert client.post(f'/api/games/{code}/name', json={'name': ''}).status_code == 400
    res = client.post(f'/api/games/{code}/discard')
    assert res.status_code == 200
    assert res.get_json()['screen'] == 'mode_select'
    assert client.get('/api/scores').get_json() == []


def test_scores_screen_and_menu(client, services):
    from memory_matchers.services.games import ScoreRecord

    services.store.record(ScoreRecord(name='Ada', time=20.0, game='2x2'))
    services.store.record(ScoreRecord(name='Bob', time=5.0, game='2x2'))
    services.store.record(ScoreRecord(name='Cy', time=40.0, game='3x4'))

    code = _create(client)['game_code']
    res = client.post(f'/api/games/{code}/scores')
    assert res.status_code == 200
    assert len(res.get_json()['scores']) == 3

    res = client.post(f'/api/games/{code}/menu')
    assert res.get_json()['screen'] == 'mode_select'

    ranked = client.get('/api/scores?game=2x2').get_json()
    assert [s['name'] for s in ranked] == ['Bob', 'Ada']


def test_delete_game(client, services):
    code = _create(client, mode='2x2')['game_code']
    assert client.delete(f'/api/games/{code}').status_code == 200
    assert services.registry.get(code) is None
    assert client.delete(f'/api/games/{code}').status_code == 404


def test_tap_debounce(flask_app, client):
    flask_app.config['TAP_DEBOUNCE_MS'] = 60_000
    code = _create(client, mode='2x2')['game_code']
    assert client.post(f'/api/games/{code}/tap', json={'index': 0}).status_code == 200
    res = client.post(f'/api/games/{code}/tap', json={'index': 1})
    assert res.status_code == 202
    assert res.get_json()['message'] == 'debounced'


def test_non_text_name_is_rejected(client, services):
    code = _create(client, mode='2x2')['game_code']
    for first, second in pairs_of(_deck(services, code)):
        client.post(f'/api/games/{code}/tap', json={'index': first})
        client.post(f'/api/games/{code}/tap', json={'index': second})
        services.scheduler.run_pending()

    res = client.post(f'/api/games/{code}/name', json={'name': 123})
    assert res.status_code == 400
    assert 'error' in res.get_json()
    assert client.get(f'/api/games/{code}/state').get_json()['screen'] == 'name_entry'
    assert client.get('/api/scores').get_json() == []


def test_body_must_be_a_json_object(client, services):
    res = client.post('/api/games/create', json=[2, 2])
    assert res.status_code == 400
    assert 'error' in res.get_json()
    assert len(services.registry) == 0

    code = _create(client)['game_code']
    assert client.post(f'/api/games/{code}/mode', json='2x2').status_code == 400
    client.post(f'/api/games/{code}/mode', json={'mode': '2x2'})
    assert client.post(f'/api/games/{code}/tap', json=[0]).status_code == 400
    assert client.post(f'/api/games/{code}/name', json=['Ada']).status_code == 400


@pytest.mark.parametrize('rows, columns', [(2.7, 2), (True, 4), ('2', '2'), (2, None)])
def test_grid_dimensions_must_be_whole_numbers(client, services, rows, columns):
    res = client.post('/api/games/create', json={'rows': rows, 'columns': columns})
    assert res.status_code == 400
    assert len(services.registry) == 0


def test_idle_games_are_evicted_on_create(flask_app, client, services, clock):
    flask_app.config['TAP_DEBOUNCE_MS'] = 1
    services.registry.clock = clock
    services.registry.idle_timeout = 60

    old_codes = [_create(client, mode='2x2')['game_code'] for _ in range(5)]
    for code in old_codes:
        client.post(f'/api/games/{code}/tap', json={'index': 0})
    assert set(services.last_tap_at) == set(old_codes)

    clock.advance(120)
    fresh = _create(client)['game_code']

    assert len(services.registry) == 1
    assert services.registry.get(fresh) is not None
    assert all(client.get(f'/api/games/{code}/state').status_code == 404 for code in old_codes)
    assert services.last_tap_at == {}


def test_delete_forgets_debounce_state(flask_app, client, services):
    flask_app.config['TAP_DEBOUNCE_MS'] = 1
    code = _create(client, mode='2x2')['game_code']
    client.post(f'/api/games/{code}/tap', json={'index': 0})
    assert code in services.last_tap_at

    client.delete(f'/api/games/{code}')
    assert code not in services.last_tap_at
