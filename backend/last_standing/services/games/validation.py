"""Input checks shared by the HTTP handlers and services."""

import re

from last_standing.models import ANSWER_CHOICES, CODE_LENGTH, DIFFICULTIES
from .errors import ValidationError

_CODE_RE = re.compile(r'^[a-zA-Z0-9]+$')


def game_code(value) -> str:
    if not isinstance(value, str) or len(value) != CODE_LENGTH:
        raise ValidationError(f'Game code must be {CODE_LENGTH} characters')
    if not _CODE_RE.match(value):
        raise ValidationError('Game code must be alphanumeric')
    return value.upper()


def name(value, field: str, min_len: int = 2, max_len: int = 50) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required')
    value = value.strip()
    if len(value) < min_len:
        raise ValidationError(f'{field} must be at least {min_len} characters')
    if len(value) > max_len:
        raise ValidationError(f'{field} cannot exceed {max_len} characters')
    return value


def required(value, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(f'{field} is required')
    return value


def non_negative_int(value, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{field} must be an integer')
    if value < 0:
        raise ValidationError(f'{field} must be a positive number')
    return value


def positive_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f'Invalid {field}')
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}')
    if value <= 0:
        raise ValidationError(f'Invalid {field}')
    return value


def answer(value) -> str:
    if value not in ANSWER_CHOICES:
        raise ValidationError('Answer must be one of A, B, C, D')
    return value


def difficulty(value) -> str:
    if value is None:
        return 'Medium'
    if value not in DIFFICULTIES:
        raise ValidationError('Difficulty must be one of Easy, Medium, Hard')
    return value


def question_fields(data: dict, partial: bool = False) -> dict:
    """Validate question text, options and answer.

    With ``partial`` only the keys present in ``data`` are checked and returned.
    """
    fields = {}
    if not partial or 'question_text' in data:
        text = data.get('question_text')
        if not isinstance(text, str) or len(text.strip()) < 5:
            raise ValidationError('Question text must be at least 5 characters long.')
        fields['question_text'] = text.strip()
    for key, label in (('option_a', 'Option A'), ('option_b', 'Option B'),
                       ('option_c', 'Option C'), ('option_d', 'Option D')):
        if not partial or key in data:
            fields[key] = required(data.get(key), label)
    if not partial or 'correct_answer' in data:
        if data.get('correct_answer') not in ANSWER_CHOICES:
            raise ValidationError('Correct answer must be one of A, B, C, D')
        fields['correct_answer'] = data['correct_answer']
    return fields
