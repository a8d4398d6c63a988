import threading
import time

from conftest import HOST
from last_standing import db
from last_standing.models import Game, Player, PlayerStatus
from last_standing.services.games import elimination


def _answer(client, code, username, answer):
    return client.post(f'/api/games/{code}/answer', json={'username': username, 'answer': answer})


def _player(code, username):
    game = Game.query.filter_by(code=code).one()
    return Player.query.filter_by(game_id=game.id, username=username).one()


def test_correct_answer_keeps_player_active(client, make_game, host_post):
    code, _ = make_game(players=('Alice',))
    host_post(code, 'start')
    res = _answer(client, code, 'Alice', 'B')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'active', 'message': 'Answer submitted successfully.'}
    assert _player(code, 'Alice').status == PlayerStatus.ACTIVE


def test_repeat_correct_answer_is_idempotent(client, make_game, host_post):
    code, _ = make_game(players=('Alice',))
    host_post(code, 'start')
    _answer(client, code, 'Alice', 'B')
    # A second, different answer to a settled question changes nothing
    res = _answer(client, code, 'Alice', 'A')
    assert res.get_json()['status'] == 'active'
    assert 'already submitted' in res.get_json()['message']
    assert _player(code, 'Alice').status == PlayerStatus.ACTIVE


def test_wrong_answer_eliminates(client, make_game, host_post):
    code, _ = make_game(players=('Alice', 'Bob'))
    host_post(code, 'start')
    res = _answer(client, code, 'Bob', 'C')
    assert res.get_json()['status'] == 'eliminated'
    bob = _player(code, 'Bob')
    assert bob.status == PlayerStatus.ELIMINATED
    assert bob.eliminated_round == 0


def test_answer_after_elimination_is_benign(client, make_game, host_post):
    code, _ = make_game(players=('Bob',))
    host_post(code, 'start')
    _answer(client, code, 'Bob', 'C')
    res = _answer(client, code, 'Bob', 'B')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'eliminated'
    assert 'already been eliminated' in res.get_json()['message']
    assert _player(code, 'Bob').eliminated_round == 0


def test_late_answer_eliminates_regardless_of_answer(client, make_game, host_post, expire_question):
    code, _ = make_game(players=('Alice',))
    host_post(code, 'start')
    expire_question(code)
    res = _answer(client, code, 'Alice', 'B')
    assert res.get_json() == {'status': 'eliminated', 'message': "Time's up! You have been eliminated."}
    assert _player(code, 'Alice').status == PlayerStatus.ELIMINATED


def test_correct_answer_after_reveal_within_window_stays_active(client, make_game, host_post):
    code, _ = make_game(players=('Alice', 'Bob'))
    host_post(code, 'start')
    host_post(code, 'reveal')
    res = _answer(client, code, 'Alice', 'B')
    assert res.get_json() == {'status': 'active', 'message': 'Answer submitted successfully.'}
    assert _player(code, 'Alice').status == PlayerStatus.ACTIVE


def test_malformed_retry_after_elimination_is_benign(client, make_game, host_post):
    code, _ = make_game(players=('Bob',))
    host_post(code, 'start')
    _answer(client, code, 'Bob', 'C')
    res = _answer(client, code, 'Bob', 'banana')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'eliminated'


def test_malformed_late_answer_still_times_out(client, make_game, host_post, expire_question):
    code, _ = make_game(players=('Alice',))
    host_post(code, 'start')
    expire_question(code)
    res = _answer(client, code, 'Alice', None)
    assert res.status_code == 200
    assert res.get_json()['message'] == "Time's up! You have been eliminated."
    assert _player(code, 'Alice').status == PlayerStatus.ELIMINATED


def test_answer_validation_and_state(client, make_game, host_post):
    code, _ = make_game(players=('Alice',))
    # Lobby has no active question
    assert _answer(client, code, 'Alice', 'B').status_code == 409
    host_post(code, 'start')
    assert _answer(client, code, 'Alice', 'E').status_code == 400
    assert _answer(client, code, 'Alice', 'b').status_code == 400
    assert _answer(client, code, 'Nobody', 'B').status_code == 404


def test_eliminate_flips_a_player_once(flask_app, make_game, host_post):
    code, _ = make_game(players=('Alice',))
    host_post(code, 'start')
    alice = _player(code, 'Alice')
    assert elimination.eliminate(alice.id, 0) is True
    assert elimination.eliminate(alice.id, 0) is False
    db.session.commit()
    assert _player(code, 'Alice').status == PlayerStatus.ELIMINATED


def test_sweep_waits_for_time_limit(flask_app, client, make_game, host_post):
    code, _ = make_game(players=('Alice', 'Bob', 'Cara'))
    host_post(code, 'start')
    _answer(client, code, 'Alice', 'B')
    game = Game.query.filter_by(code=code).one()

    assert elimination.sweep_timeouts(game, game.question_started_at + 10) == 0
    # Only players who never settled the question are swept
    assert elimination.sweep_timeouts(game, game.question_started_at + 30) == 2
    db.session.commit()

    assert _player(code, 'Alice').status == PlayerStatus.ACTIVE
    for username in ('Bob', 'Cara'):
        swept = _player(code, username)
        assert swept.status == PlayerStatus.ELIMINATED
        assert swept.eliminated_round == 0


def test_sweep_without_question_is_noop(flask_app, make_game):
    code, _ = make_game(players=('Alice',))
    game = Game.query.filter_by(code=code).one()
    assert elimination.sweep_timeouts(game, time.time() + 100) == 0


def test_concurrent_duplicate_answers_eliminate_once(file_app, monkeypatch):
    from last_standing.services.games import flow, questions

    code = flow.create_game(HOST, 0, 0)['code']
    questions.add_question(code, HOST, {
        'question_text': 'What is the capital of France?',
        'option_a': 'Berlin', 'option_b': 'Paris', 'option_c': 'Rome', 'option_d': 'Madrid',
        'correct_answer': 'B',
    })
    flow.join_game(code, 'Bob')
    flow.start_game(code, HOST)
    db.session.remove()

    flips = []
    original = elimination.eliminate

    def _counting_eliminate(player_id, question_index):
        flipped = original(player_id, question_index)
        flips.append(flipped)
        return flipped

    monkeypatch.setattr(elimination, 'eliminate', _counting_eliminate)

    submitters = 4
    barrier = threading.Barrier(submitters)
    results, errors = [], []

    def _submit():
        with file_app.app_context():
            barrier.wait()
            try:
                results.append(elimination.submit_answer(code, 'Bob', 'C'))
            except Exception as exc:
                errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=_submit) for _ in range(submitters)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert len(results) == submitters
    assert all(r['status'] == 'eliminated' for r in results)
    assert flips.count(True) == 1
    bob = _player(code, 'Bob')
    assert bob.status == PlayerStatus.ELIMINATED
    assert bob.eliminated_round == 0
