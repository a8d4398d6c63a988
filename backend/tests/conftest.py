import os
import sys
import pytest

# Ensure the backend root (containing the `last_standing` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from last_standing import create_app, db, socketio

HOST = 'Quizmaster'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = []
    LOG_LEVEL = 'DEBUG'
    QUESTION_TIME_LIMIT_SEC = 30
    VOTING_DURATION_SEC = 20
    REVEAL_DURATION_SEC = 2
    ELIMINATION_DURATION_SEC = 5
    SURVIVORS_DURATION_SEC = 3
    REDEMPTION_DURATION_SEC = 2
    SCHEDULER_TICK_SEC = 0.1
    GAME_CODE_MAX_ATTEMPTS = 10


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import last_standing.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def file_app(tmp_path):
    """App on a file-backed SQLite database shared by several threads.

    SQLite has no row locks, so every transaction opens with
    BEGIN IMMEDIATE and writers serialize the way FOR UPDATE makes them
    serialize on PostgreSQL.
    """
    from sqlalchemy import event

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'race.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {'connect_args': {'timeout': 15, 'check_same_thread': False}}

    application = create_app(FileConfig)
    with application.app_context():
        import last_standing.models  # noqa: F401

        @event.listens_for(db.engine, 'connect')
        def _no_implicit_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(db.engine, 'begin')
        def _begin_immediate(connection):
            connection.exec_driver_sql('BEGIN IMMEDIATE')

        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


QUESTIONS = [
    ('What is the capital of France?', 'Berlin', 'Paris', 'Rome', 'Madrid', 'B'),
    ('How many legs does a spider have?', 'Six', 'Ten', 'Eight', 'Four', 'C'),
    ('Which planet is known as the red planet?', 'Mars', 'Venus', 'Jupiter', 'Saturn', 'A'),
]


@pytest.fixture()
def make_game(client):
    """Create a game over HTTP, add questions and join players.

    Returns ``(code, {username: player_dict})``.
    """
    def _make(players=('Alice', 'Bob'), questions=2, pot=1000, increment=100, auto_flow=False):
        res = client.post('/api/games/create', json={
            'host_name': HOST,
            'initial_prize_pot': pot,
            'prize_pot_increment': increment,
            'auto_flow': auto_flow,
        })
        assert res.status_code == 201, res.get_json()
        code = res.get_json()['code']
        for text, a, b, c, d, correct in QUESTIONS[:questions]:
            res = client.post(f'/api/games/{code}/questions', json={
                'host_name': HOST, 'question_text': text,
                'option_a': a, 'option_b': b, 'option_c': c, 'option_d': d,
                'correct_answer': correct,
            })
            assert res.status_code == 201, res.get_json()
        joined = {}
        for username in players:
            res = client.post('/api/games/join', json={'game_code': code, 'username': username})
            assert res.status_code == 201, res.get_json()
            joined[username] = res.get_json()
        return code, joined

    return _make


@pytest.fixture()
def host_post(client):
    """POST a host action to /api/games/<code>/<action>."""
    def _post(code, action, **extra):
        return client.post(f'/api/games/{code}/{action}', json={'host_name': HOST, **extra})

    return _post


@pytest.fixture()
def expire_question(flask_app):
    """Move the current question's start back past the answer window."""
    from last_standing.models import Game

    def _expire(code, extra=1):
        game = Game.query.filter_by(code=code).one()
        game.question_started_at -= flask_app.config['QUESTION_TIME_LIMIT_SEC'] + extra
        db.session.commit()

    return _expire
