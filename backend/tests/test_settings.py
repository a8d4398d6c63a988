from last_standing.models import Game
from last_standing.services.games import media


def _set(client, video_type, url):
    return client.post('/api/settings/global-videos', json={'video_type': video_type, 'url': url})


def test_global_videos_default_to_none(client):
    res = client.get('/api/settings/global-videos')
    assert res.status_code == 200
    assert res.get_json() == {
        'elimination_video_url': None,
        'survivor_video_url': None,
        'redemption_video_url': None,
    }


def test_set_and_clear_global_video(client):
    assert _set(client, 'elimination', 'https://cdn.example.com/out.mp4').status_code == 200
    assert _set(client, 'redemption', 'https://cdn.example.com/back.mp4').status_code == 200
    videos = client.get('/api/settings/global-videos').get_json()
    assert videos['elimination_video_url'] == 'https://cdn.example.com/out.mp4'
    assert videos['redemption_video_url'] == 'https://cdn.example.com/back.mp4'
    assert videos['survivor_video_url'] is None

    # An empty url clears the default
    assert _set(client, 'elimination', '').status_code == 200
    assert client.get('/api/settings/global-videos').get_json()['elimination_video_url'] is None


def test_set_global_video_validates(client):
    res = _set(client, 'intro', 'https://cdn.example.com/a.mp4')
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Invalid video type'
    assert _set(client, 'survivor', 'ftp://cdn.example.com/a.mp4').status_code == 400


def test_game_video_overrides_global_default(client, make_game, host_post):
    _set(client, 'survivor', 'https://cdn.example.com/default-survivor.mp4')
    _set(client, 'elimination', 'https://cdn.example.com/default-out.mp4')
    code, _ = make_game(players=('Alice',))
    host_post(code, 'sequence-video', video_type='elimination', url='https://cdn.example.com/mine.mp4')

    videos = media.phase_videos(Game.query.filter_by(code=code).one())
    assert videos == {
        'elimination': 'https://cdn.example.com/mine.mp4',
        'survivor': 'https://cdn.example.com/default-survivor.mp4',
        'redemption': None,
    }


def test_round_results_fall_back_to_global_videos(client, sio_client, make_game, host_post):
    _set(client, 'survivor', 'https://cdn.example.com/default-survivor.mp4')
    code, _ = make_game(players=('Alice',))
    host_post(code, 'start')
    sio_client.emit('join_game', {'game_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    assert host_post(code, 'reveal').status_code == 200
    events = {pkt['name']: pkt['args'][0] for pkt in sio_client.get_received('/ws')}
    videos = events['round_results']['videos']
    assert videos['survivors']['url'] == 'https://cdn.example.com/default-survivor.mp4'
    assert videos['survivors']['duration'] == 3
    assert videos['elimination']['url'] is None
