from last_standing.services.games.notifier import EventType, GameNotifier, get_notifier, room_for


def _events(sio_client):
    return {pkt['name']: pkt['args'][0] for pkt in sio_client.get_received('/ws')}


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received)

    sio_client.emit('join_game', {'game_code': 'abcd12'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert received[0]['name'] == 'joined'
    assert received[0]['args'][0] == {'room': 'game:ABCD12'}


def test_join_requires_game_code(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_game', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert received[0]['name'] == 'error'


def test_ping_echoes(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _events(sio_client)['pong'] == {'n': 1}


def test_subscribers_receive_game_events(flask_app, sio_client, make_game, host_post):
    code, _ = make_game(players=('Alice',))
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    host_post(code, 'start')
    events = _events(sio_client)
    assert events['next_round']['question_index'] == 0
    assert events['next_round']['game_code'] == code
    assert events['phase_changed']['phase'] == 'question'
    assert events['phase_changed']['type'] == EventType.PHASE_CHANGED.value

    host_post(code, 'reveal')
    events = _events(sio_client)
    assert events['answer_revealed']['correct_answer'] == 'B'
    assert events['round_results']['survivors'] == ['Alice']


def test_voting_events(flask_app, client, sio_client, make_game, host_post):
    code, joined = make_game(players=('Alice', 'Bob'))
    host_post(code, 'start')
    client.post(f'/api/games/{code}/answer', json={'username': 'Alice', 'answer': 'B'})
    client.post(f'/api/games/{code}/answer', json={'username': 'Bob', 'answer': 'A'})
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    round_id = client.post('/api/votes/start', json={'game_code': code, 'host_name': 'Quizmaster'}).get_json()['round_id']
    assert _events(sio_client)['voting_started']['round_id'] == round_id

    client.post('/api/votes/cast', json={
        'round_id': round_id,
        'voter_player_id': joined['Alice']['id'],
        'voted_for_player_id': joined['Bob']['id'],
    })
    assert _events(sio_client)['vote_tick']['tallies'] == [{'player_id': joined['Bob']['id'], 'votes': 1}]

    client.post('/api/votes/end', json={'round_id': round_id, 'host_name': 'Quizmaster'})
    ended = _events(sio_client)['voting_ended']
    assert ended['winner'] == {'player_id': joined['Bob']['id'], 'username': 'Bob'}
    assert ended['pot'] == 1100


def test_leave_stops_delivery(flask_app, sio_client, make_game, host_post):
    code, _ = make_game(players=('Alice',))
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    assert get_notifier().subscriber_count(code) == 1
    sio_client.emit('leave_game', {'game_code': code}, namespace='/ws')
    assert not get_notifier().has_room(code)
    sio_client.get_received('/ws')

    host_post(code, 'start')
    assert sio_client.get_received('/ws') == []


def test_disconnect_drops_subscriptions(flask_app, sio_client):
    sio_client.emit('join_game', {'game_code': 'ROOM01'}, namespace='/ws')
    assert get_notifier().has_room('ROOM01')
    sio_client.disconnect(namespace='/ws')
    assert not get_notifier().has_room('ROOM01')


def test_registry_lifecycle():
    notifier = GameNotifier()
    assert notifier.broadcast('ABC123', EventType.STATE_CHANGED) is False

    assert notifier.subscribe('abc123', 'sid-1') == room_for('ABC123')
    notifier.subscribe('ABC123', 'sid-2')
    assert notifier.subscriber_count('ABC123') == 2

    notifier.unsubscribe('ABC123', 'sid-1')
    assert notifier.has_room('ABC123')
    notifier.drop_connection('sid-2')
    assert not notifier.has_room('ABC123')
    # Unsubscribing from an unknown game is harmless
    notifier.unsubscribe('ZZZ999', 'sid-3')
