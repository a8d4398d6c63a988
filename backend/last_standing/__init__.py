from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

from last_standing.services.games.notifier import GameNotifier  # noqa: E402

notifier = GameNotifier(socketio, namespace='/ws')


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    notifier.init_app(flask_app, socketio)

    from last_standing.api import register_error_handlers
    register_error_handlers(flask_app)

    from last_standing.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from last_standing.api.questions import questions
    flask_app.register_blueprint(questions, url_prefix='/api')

    from last_standing.api.votes import votes
    flask_app.register_blueprint(votes, url_prefix='/api/votes')

    from last_standing.api.settings import settings
    flask_app.register_blueprint(settings, url_prefix='/api/settings')

    # Register Socket.IO event handlers on the initialized socketio instance
    from last_standing.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    @click.option('--seed/--no-seed', default=True, help='Create a demo game with questions.')
    def db_reset_command(seed):
        """Drops, recreates, and optionally seeds the database."""
        from last_standing.models import Game, Question
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            if seed:
                game = Game(host_name='Host', initial_prize_pot=1000,
                            current_prize_pot=1000, prize_pot_increment=100)
                db.session.add(game)
                db.session.flush()
                demo = [
                    ('What is the capital of France?', 'Berlin', 'Paris', 'Rome', 'Madrid', 'B'),
                    ('How many legs does a spider have?', 'Six', 'Ten', 'Eight', 'Four', 'C'),
                ]
                for index, (text, a, b, c, d, correct) in enumerate(demo):
                    db.session.add(Question(game_id=game.id, question_index=index, question_text=text,
                                            option_a=a, option_b=b, option_c=c, option_d=d,
                                            correct_answer=correct))
                db.session.commit()
                click.echo(f'Database has been reset and seeded! Demo game code: {game.code}')
            else:
                click.echo('Database has been reset!')

    @click.command('tick')
    def tick_command():
        """Runs due phase transitions once (for cron-driven deployments)."""
        from last_standing.services.games.scheduler import run_due_transitions
        with flask_app.app_context():
            fired = run_due_transitions(flask_app)
            click.echo(f'{fired} transition(s) fired')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(tick_command)

    if flask_app.config.get('SCHEDULER_AUTOSTART'):
        from last_standing.services.games import scheduler
        scheduler.start_scheduler(flask_app)

    return flask_app
