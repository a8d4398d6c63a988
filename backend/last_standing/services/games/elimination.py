"""Answer checking and elimination.

Eliminations are guarded updates conditioned on ``status = 'active'`` so a
duplicate submission (or a sweep racing an answer) can flip a player at
most once.
"""

from flask import current_app
from sqlalchemy import or_

from last_standing.models import Game, Player, PlayerStatus, Question
from . import validation
from .errors import InvalidState, NotFound
from .store import lock_game, lock_player, now, transaction


def time_limit() -> int:
    return int(current_app.config.get('QUESTION_TIME_LIMIT_SEC', 30))


def _result(status: PlayerStatus, message: str) -> dict:
    return {'status': status.value, 'message': message}


def eliminate(player_id: int, question_index: int) -> bool:
    """Eliminate one player if still active. Returns True when this call flipped it."""
    rows = Player.query.filter_by(id=player_id, status=PlayerStatus.ACTIVE).update(
        {
            'status': PlayerStatus.ELIMINATED,
            'eliminated_round': question_index,
            'last_answered_index': question_index,
        },
        synchronize_session='fetch',
    )
    return rows == 1


def sweep_timeouts(game: Game, at: float) -> int:
    """Eliminate every active player who has not settled the current question.

    Only acts once the answer window has elapsed. The caller holds the game
    row lock and owns the transaction.
    """
    idx = game.current_question_index
    if idx is None or game.question_started_at is None:
        return 0
    elapsed = at - game.question_started_at
    if elapsed < time_limit():
        current_app.logger.info(
            f"[sweep-skip] game={game.code} question={idx} elapsed={elapsed:.1f}s before time limit"
        )
        return 0
    count = (
        Player.query.filter(
            Player.game_id == game.id,
            Player.status == PlayerStatus.ACTIVE,
            or_(Player.last_answered_index.is_(None), Player.last_answered_index != idx),
        )
        .update(
            {
                'status': PlayerStatus.ELIMINATED,
                'eliminated_round': idx,
                'last_answered_index': idx,
            },
            synchronize_session='fetch',
        )
    )
    current_app.logger.info(f"[sweep] game={game.code} question={idx} eliminated={count}")
    return count


def submit_answer(game_code: str, username: str, answer: str) -> dict:
    """Settle one answer for the current question.

    Repeats and late answers are settled before the answer format is checked.
    """
    with transaction():
        game = lock_game(game_code)
        if not game.is_active:
            raise InvalidState('Game is not currently active.')
        idx = game.current_question_index
        if idx is None:
            raise InvalidState('There is no active question to answer.')
        player = lock_player(game, username)

        if player.status == PlayerStatus.ELIMINATED:
            current_app.logger.info(f"[answer-after-elimination] game={game.code} player={username}")
            return _result(PlayerStatus.ELIMINATED, 'You have already been eliminated and cannot submit answers.')
        if player.status != PlayerStatus.ACTIVE:
            raise InvalidState('Only active players can submit answers.')
        if player.last_answered_index == idx:
            return _result(PlayerStatus.ACTIVE, 'Answer already submitted for this question.')
        if game.question_started_at is None:
            raise InvalidState('Invalid game state - question start time not found.')

        elapsed = now() - game.question_started_at
        if elapsed > time_limit():
            eliminate(player.id, idx)
            current_app.logger.info(
                f"[eliminate] game={game.code} player={username} question={idx} reason=timeout elapsed={elapsed:.1f}s"
            )
            return _result(PlayerStatus.ELIMINATED, "Time's up! You have been eliminated.")

        answer = validation.answer(answer)
        question = Question.query.filter_by(game_id=game.id, question_index=idx).first()
        if not question:
            raise NotFound('Current question could not be found.')

        if answer == question.correct_answer:
            Player.query.filter_by(id=player.id, status=PlayerStatus.ACTIVE).update(
                {'last_answered_index': idx}, synchronize_session='fetch'
            )
            current_app.logger.info(f"[answer-correct] game={game.code} player={username} question={idx}")
            return _result(PlayerStatus.ACTIVE, 'Answer submitted successfully.')

        eliminate(player.id, idx)
        current_app.logger.info(f"[eliminate] game={game.code} player={username} question={idx} reason=incorrect")
        return _result(PlayerStatus.ELIMINATED, 'Incorrect answer. You have been eliminated.')
