"""Per-game question lists and the shared question bank.

Question indexes are contiguous from 0. Only questions that have not been
asked yet (index above ``current_question_index``) may change.
"""

from typing import List

from flask import current_app

from last_standing import db
from last_standing.models import Game, GlobalQuestion, Phase, Question
from . import validation
from .errors import InvalidState, NotFound, ValidationError
from .store import lock_game, require_host, transaction

QUESTION_FIELDS = ('question_text', 'option_a', 'option_b', 'option_c', 'option_d', 'correct_answer')


def _ordered(game: Game) -> List[Question]:
    return Question.query.filter_by(game_id=game.id).order_by(Question.question_index).all()


def _require_editable(game: Game, question: Question, verb: str) -> None:
    if game.phase == Phase.FINISHED:
        raise InvalidState(f'Cannot {verb} questions in a finished game.')
    if game.current_question_index is not None and question.question_index <= game.current_question_index:
        raise InvalidState(f'Cannot {verb} a question that has already been asked or is currently active.')


def _find(game: Game, question_id) -> Question:
    question = Question.query.filter_by(id=question_id, game_id=game.id).first()
    if not question:
        raise NotFound('Question not found in this game.')
    return question


def list_questions(game_code, host_name) -> List[dict]:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'list questions')
        return [q.to_dict() for q in _ordered(game)]


def add_question(game_code, host_name, data: dict) -> dict:
    fields = validation.question_fields(data)
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'add questions')
        if game.phase == Phase.FINISHED:
            raise InvalidState('Cannot add questions to a finished game.')
        index = Question.query.filter_by(game_id=game.id).count()
        question = Question(game_id=game.id, question_index=index, **fields)
        db.session.add(question)
        db.session.flush()
        current_app.logger.info(f"[question-add] game={game.code} index={index}")
        return question.to_dict()


def update_question(game_code, host_name, question_id, data: dict) -> dict:
    fields = validation.question_fields(data, partial=True)
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'update questions')
        question = _find(game, question_id)
        _require_editable(game, question, 'update')
        for key, value in fields.items():
            setattr(question, key, value)
        db.session.flush()
        return question.to_dict()


def delete_question(game_code, host_name, question_id) -> dict:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'delete questions')
        question = _find(game, question_id)
        _require_editable(game, question, 'delete')
        removed_index = question.question_index
        db.session.delete(question)
        db.session.flush()
        # Shift one row at a time so the (game, index) unique constraint holds throughout
        later = (
            Question.query.filter(Question.game_id == game.id, Question.question_index > removed_index)
            .order_by(Question.question_index)
            .all()
        )
        for q in later:
            q.question_index -= 1
            db.session.flush()
        current_app.logger.info(f"[question-delete] game={game.code} index={removed_index} shifted={len(later)}")
        return {'success': True, 'deleted_question_id': question_id}


def save_global_question(data: dict) -> dict:
    fields = validation.question_fields(data)
    created_by = validation.name(data.get('created_by'), 'Creator name', min_len=1)
    with transaction():
        question = GlobalQuestion(
            category=(data.get('category') or 'General'),
            difficulty=validation.difficulty(data.get('difficulty')),
            created_by=created_by,
            is_public=True,
            **fields,
        )
        db.session.add(question)
        db.session.flush()
        return question.to_dict()


def list_global_questions(category=None, difficulty=None) -> List[dict]:
    query = GlobalQuestion.query.filter_by(is_public=True)
    if category and category != 'All':
        query = query.filter_by(category=category)
    if difficulty and difficulty != 'All':
        query = query.filter_by(difficulty=difficulty)
    return [q.to_dict() for q in query.order_by(GlobalQuestion.created_at.desc(), GlobalQuestion.id.desc())]


def import_global_questions(game_code, host_name, question_ids) -> dict:
    """Append bank questions to the game in the order given; unknown ids are skipped."""
    if not isinstance(question_ids, list):
        raise ValidationError('question_ids must be a list')
    ids = [validation.positive_id(qid, 'question id') for qid in question_ids]
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'import questions')
        if game.phase == Phase.FINISHED:
            raise InvalidState('Cannot add questions to a finished game.')
        bank = {q.id: q for q in GlobalQuestion.query.filter(GlobalQuestion.id.in_(ids))} if ids else {}
        index = Question.query.filter_by(game_id=game.id).count()
        imported = 0
        for qid in ids:
            source = bank.get(qid)
            if not source:
                continue
            db.session.add(Question(
                game_id=game.id,
                question_index=index,
                **{key: getattr(source, key) for key in QUESTION_FIELDS},
            ))
            index += 1
            imported += 1
        db.session.flush()
        return {'success': True, 'imported': imported}
