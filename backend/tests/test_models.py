import random

import pytest

from last_standing import db
from last_standing.models import CODE_ALPHABET, Game, Phase, Player, PlayerStatus, generate_game_code
from last_standing.services.games.errors import Conflict


def test_new_game_defaults(flask_app):
    game = Game(host_name='Quizmaster')
    db.session.add(game)
    db.session.commit()
    assert game.phase == Phase.LOBBY
    assert game.status == 'lobby'
    assert not game.is_active
    assert len(game.code) == 6
    assert all(ch in CODE_ALPHABET for ch in game.code)


def test_code_generation_retries_on_collision(flask_app, monkeypatch):
    db.session.add(Game(host_name='Quizmaster', code='AAAAAA'))
    db.session.commit()
    candidates = iter([list('AAAAAA'), list('AAAAAA'), list('B7C8D9')])
    monkeypatch.setattr(random, 'choices', lambda population, k: next(candidates))
    assert generate_game_code(max_attempts=3) == 'B7C8D9'


def test_code_generation_gives_up(flask_app, monkeypatch):
    db.session.add(Game(host_name='Quizmaster', code='AAAAAA'))
    db.session.commit()
    monkeypatch.setattr(random, 'choices', lambda population, k: list('AAAAAA'))
    with pytest.raises(Conflict):
        generate_game_code(max_attempts=5)


def test_create_game_surfaces_code_exhaustion(client, monkeypatch):
    client.post('/api/games/create', json={'host_name': 'Quizmaster', 'initial_prize_pot': 0, 'prize_pot_increment': 0})
    taken = Game.query.one().code
    monkeypatch.setattr(random, 'choices', lambda population, k: list(taken))
    res = client.post('/api/games/create', json={'host_name': 'Quizmaster', 'initial_prize_pot': 0, 'prize_pot_increment': 0})
    assert res.status_code == 409
    assert res.get_json()['error'] == 'Failed to generate a unique game code after multiple attempts.'


def test_player_username_key(flask_app):
    game = Game(host_name='Quizmaster')
    db.session.add(game)
    db.session.flush()
    player = Player(game_id=game.id, username='MixedCase')
    db.session.add(player)
    db.session.commit()
    assert player.username_key == 'mixedcase'
    assert player.status == PlayerStatus.ACTIVE
    assert player.to_dict()['status'] == 'active'
