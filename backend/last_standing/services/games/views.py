"""Read-only snapshots that clients poll to recover from missed pushes."""

from flask import current_app

from last_standing.models import Phase, Player, Question
from .errors import NotFound
from .redemption import active_round_for
from .store import get_game

# Phases in which the current question's answer is public
ANSWER_PUBLIC_PHASES = (Phase.REVEAL, Phase.ELIMINATION, Phase.SURVIVORS, Phase.REDEMPTION, Phase.FINISHED)


def _players(game):
    return Player.query.filter_by(game_id=game.id).order_by(Player.username).all()


def game_info(game_code) -> dict:
    game = get_game(game_code)
    return {
        'game': game.to_dict(),
        'players': [p.to_dict() for p in _players(game)],
    }


def player_state(game_code, username) -> dict:
    game = get_game(game_code)
    player = Player.query.filter_by(game_id=game.id, username_key=username.lower()).first()
    if not player:
        raise NotFound('Player not found in this game.')
    is_host = game.host_name == player.username

    game_data = game.to_dict()
    if not is_host:
        game_data['host_name'] = 'Host'

    current_question = None
    if game.phase != Phase.LOBBY and game.current_question_index is not None:
        question = Question.query.filter_by(
            game_id=game.id, question_index=game.current_question_index
        ).first()
        if question:
            show_answer = is_host or game.phase in ANSWER_PUBLIC_PHASES
            current_question = question.to_dict(include_answer=show_answer)

    voting = active_round_for(game) if game.is_active else None
    return {
        'game': game_data,
        'player': player.to_dict(),
        'players': [p.to_dict() for p in _players(game)],
        'current_question': current_question,
        'question_start_time': game.question_started_at if game.is_active and current_question else None,
        'time_limit_sec': int(current_app.config.get('QUESTION_TIME_LIMIT_SEC', 30)),
        'active_round': voting.to_dict() if voting else None,
    }
