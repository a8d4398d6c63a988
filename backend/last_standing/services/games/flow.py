"""Round flow: the phase state machine of a game.

    lobby -> question -> reveal -> elimination -> survivors -> redemption
          -> question (next) -> ... -> finished

Host actions and timer ticks both go through the same transition helpers
while holding the game row lock, and each checks the phase it expects, so a
late host click and a fired timer cannot both perform one transition.
Helpers return the events to broadcast; callers emit them after commit.
"""

from typing import List, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from last_standing import db
from last_standing.models import Game, Phase, Player, PlayerStatus, Question, RedemptionRound
from . import validation
from .elimination import sweep_timeouts, time_limit
from .errors import Conflict, InvalidState
from .media import phase_videos
from .notifier import EventType, get_notifier
from .redemption import (
    active_round_for,
    candidates_for,
    close_round,
    open_round,
    round_started_payload,
    voting_duration,
)
from .store import lock_game, lock_game_by_id, lock_round, now, require_host, transaction

Events = List[Tuple[EventType, dict]]

# Config key holding how long a phase lasts before the scheduler moves on
PHASE_DURATION_KEYS = {
    Phase.QUESTION: ('QUESTION_TIME_LIMIT_SEC', 30),
    Phase.REVEAL: ('REVEAL_DURATION_SEC', 2),
    Phase.ELIMINATION: ('ELIMINATION_DURATION_SEC', 5),
    Phase.SURVIVORS: ('SURVIVORS_DURATION_SEC', 3),
    Phase.REDEMPTION: ('REDEMPTION_DURATION_SEC', 2),
}


def phase_duration(phase: Phase) -> int:
    key, default = PHASE_DURATION_KEYS[phase]
    return int(current_app.config.get(key, default))


def _deadline(game: Game, phase: Phase, at: float):
    if not game.auto_flow or phase not in PHASE_DURATION_KEYS:
        return None
    return at + phase_duration(phase)


def _emit(game_code: str, events: Events) -> None:
    notifier = get_notifier()
    for event, payload in events:
        notifier.broadcast(game_code, event, payload)


def _move(game: Game, phase: Phase, at: float) -> Events:
    previous = game.phase
    game.set_phase(phase, at, _deadline(game, phase, at))
    current_app.logger.info(
        f"[phase] game={game.code} {previous.value} -> {phase.value} question={game.current_question_index} deadline={game.phase_deadline}"
    )
    return [(EventType.PHASE_CHANGED, {
        'phase': phase.value,
        'status': game.status,
        'question_index': game.current_question_index,
        'phase_deadline': game.phase_deadline,
    })]


def _usernames(game: Game, **filters) -> List[str]:
    return [p.username for p in Player.query.filter_by(game_id=game.id, **filters).order_by(Player.username)]


def _active_players(game: Game) -> List[Player]:
    return (
        Player.query.filter_by(game_id=game.id, status=PlayerStatus.ACTIVE)
        .with_for_update()
        .order_by(Player.id)
        .all()
    )


def _question_at(game: Game, index: int):
    return Question.query.filter_by(game_id=game.id, question_index=index).first()


def _require_active(game: Game) -> None:
    if not game.is_active:
        raise InvalidState('Game is not active.')


# ---- phase entry helpers (caller holds the game lock) ----

def _begin_question(game: Game, index: int, at: float) -> Events:
    game.current_question_index = index
    game.question_started_at = at
    events = _move(game, Phase.QUESTION, at)
    events.insert(0, (EventType.NEXT_ROUND, {
        'question_index': index,
        'question_started_at': at,
        'answer_window_sec': time_limit(),
    }))
    return events


def _enter_reveal(game: Game, at: float) -> Events:
    idx = game.current_question_index
    question = _question_at(game, idx)
    events = _move(game, Phase.REVEAL, at)
    events.append((EventType.ANSWER_REVEALED, {
        'question_index': idx,
        'correct_answer': question.correct_answer if question else None,
    }))
    videos = phase_videos(game)
    events.append((EventType.ROUND_RESULTS, {
        'question_index': idx,
        'eliminated': _usernames(game, status=PlayerStatus.ELIMINATED, eliminated_round=idx),
        'survivors': _usernames(game, status=PlayerStatus.ACTIVE),
        'pot': game.current_prize_pot,
        'videos': {
            'elimination': {'url': videos['elimination'], 'duration': phase_duration(Phase.ELIMINATION)},
            'survivors': {'url': videos['survivor'], 'duration': phase_duration(Phase.SURVIVORS)},
            'redemption': {'url': videos['redemption'], 'duration': phase_duration(Phase.REDEMPTION)},
        },
        'vote_window_sec': voting_duration(),
    }))
    return events


def _enter_elimination(game: Game, at: float) -> Events:
    swept = sweep_timeouts(game, at)
    events = _move(game, Phase.ELIMINATION, at)
    events[0][1]['eliminated'] = _usernames(
        game, status=PlayerStatus.ELIMINATED, eliminated_round=game.current_question_index
    )
    events[0][1]['timed_out'] = swept
    return events


def _enter_survivors(game: Game, at: float) -> Events:
    events = _move(game, Phase.SURVIVORS, at)
    events[0][1]['survivors'] = _usernames(game, status=PlayerStatus.ACTIVE)
    return events


def _enter_redemption(game: Game, at: float) -> Events:
    return _move(game, Phase.REDEMPTION, at)


ADVANCE = {
    Phase.QUESTION: _enter_reveal,
    Phase.REVEAL: _enter_elimination,
    Phase.ELIMINATION: _enter_survivors,
    Phase.SURVIVORS: _enter_redemption,
}


def _settle_question(game: Game, at: float) -> Events:
    """Timeout sweep, then close the open voting round of the current question."""
    events: Events = []
    sweep_timeouts(game, at)
    current = active_round_for(game)
    if current:
        result = close_round(game, lock_round(current.id))
        winner = result['redeemed_player']
        events.append((EventType.VOTING_ENDED, {
            'round_id': result['round']['id'],
            'winner': {'player_id': winner['id'], 'username': winner['username']} if winner else None,
            'tallies': result['final_vote_tallies'],
            'pot': result['current_prize_pot'],
        }))
    return events


def _advance_question(game: Game, at: float) -> Events:
    next_index = game.current_question_index + 1
    if not _question_at(game, next_index):
        raise InvalidState('There are no more questions in this game.')
    events = _settle_question(game, at)
    events.extend(_begin_question(game, next_index, at))
    return events


def _finish(game: Game, winner: Player, at: float) -> Events:
    winner.balance += game.current_prize_pot
    events = _move(game, Phase.FINISHED, at)
    events.append((EventType.GAME_ENDED, {
        'winner': winner.to_dict(),
        'pot': game.current_prize_pot,
    }))
    current_app.logger.info(f"[finish] game={game.code} winner={winner.username} pot={game.current_prize_pot}")
    return events


# ---- host-driven operations ----

def create_game(host_name, initial_prize_pot, prize_pot_increment, auto_flow=False) -> dict:
    host_name = validation.name(host_name, 'Host name')
    initial_prize_pot = validation.non_negative_int(initial_prize_pot, 'Initial prize pot')
    prize_pot_increment = validation.non_negative_int(prize_pot_increment, 'Prize pot increment')
    with transaction():
        game = Game(
            host_name=host_name,
            initial_prize_pot=initial_prize_pot,
            current_prize_pot=initial_prize_pot,
            prize_pot_increment=prize_pot_increment,
            auto_flow=bool(auto_flow),
            max_code_attempts=int(current_app.config.get('GAME_CODE_MAX_ATTEMPTS', 10)),
        )
        db.session.add(game)
        try:
            db.session.flush()
        except IntegrityError:
            raise Conflict('Game code already in use, please try again.')
        current_app.logger.info(f"[create] game={game.code} host={host_name} auto_flow={game.auto_flow}")
        return game.to_dict()


def join_game(game_code, username) -> dict:
    game_code = validation.game_code(game_code)
    username = validation.name(username, 'Username')
    with transaction():
        game = lock_game(game_code)
        if game.phase != Phase.LOBBY:
            raise InvalidState('This game is no longer accepting new players.')
        if Player.query.filter_by(game_id=game.id, username_key=username.lower()).first():
            raise Conflict('This username is already taken in this game.')
        player = Player(game_id=game.id, username=username)
        db.session.add(player)
        try:
            db.session.flush()
        except IntegrityError:
            raise Conflict('This username is already taken in this game.')
        payload = player.to_dict()
    current_app.logger.info(f"[join] game={game_code} player={username}")
    get_notifier().broadcast(game_code, EventType.STATE_CHANGED, {'reason': 'player_joined', 'player': payload})
    return payload


def start_game(game_code, host_name) -> dict:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'start the game')
        if game.phase != Phase.LOBBY:
            raise InvalidState(f'Game is already {game.status}.')
        if not Player.query.filter_by(game_id=game.id).count():
            raise InvalidState('No players in game.')
        if not _question_at(game, 0):
            raise InvalidState('Add at least one question before starting.')
        events = _begin_question(game, 0, now())
        payload = game.to_dict()
    _emit(payload['code'], events)
    return payload


def reveal_answer(game_code, host_name) -> dict:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'reveal the answer')
        _require_active(game)
        if game.phase != Phase.QUESTION:
            raise InvalidState('The answer can only be revealed while a question is open.')
        events = _enter_reveal(game, now())
        payload = game.to_dict()
    _emit(payload['code'], events)
    return payload


def advance_phase(game_code, host_name) -> dict:
    """Move to the next phase; from redemption this is the next question."""
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'advance the game')
        _require_active(game)
        at = now()
        if game.phase == Phase.REDEMPTION:
            events = _advance_question(game, at)
        elif game.phase in ADVANCE:
            events = ADVANCE[game.phase](game, at)
        else:
            raise InvalidState(f'Cannot advance from phase {game.phase.value}.')
        payload = game.to_dict()
    _emit(payload['code'], events)
    return payload


def next_question(game_code, host_name) -> dict:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'advance the game')
        _require_active(game)
        events = _advance_question(game, now())
        payload = game.to_dict()
    _emit(payload['code'], events)
    return payload


def end_game(game_code, host_name) -> dict:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'end the game')
        if game.phase == Phase.FINISHED:
            raise InvalidState('Game is already finished.')
        _require_active(game)
        if active_round_for(game):
            raise InvalidState('A redemption round is still in progress.')
        at = now()
        sweep_timeouts(game, at)
        active = _active_players(game)
        if len(active) != 1:
            raise InvalidState('Cannot end the game without a single winner.')
        events = _finish(game, active[0], at)
        payload = game.to_dict()
        payload['winner'] = active[0].to_dict()
    _emit(payload['code'], events)
    return payload


# ---- timer-driven operations ----

def _auto_redemption(game: Game, at: float) -> Events:
    idx = game.current_question_index
    opened = RedemptionRound.query.filter_by(game_id=game.id, question_index=idx).first()
    if not opened and candidates_for(game.id, idx):
        rnd, candidates = open_round(game, at)
        game.phase_deadline = rnd.ends_at
        return [(EventType.VOTING_STARTED, round_started_payload(rnd, candidates))]
    if _question_at(game, idx + 1):
        return _advance_question(game, at)
    events = _settle_question(game, at)
    active = _active_players(game)
    if len(active) == 1:
        events.extend(_finish(game, active[0], at))
    else:
        # Out of questions without a sole survivor; the host decides.
        game.phase_deadline = None
        current_app.logger.info(
            f"[auto-hold] game={game.code} questions exhausted with {len(active)} active players"
        )
    return events


def auto_advance(game_id: int, expected_phase: Phase, expected_index, at: float) -> bool:
    """Perform the due transition of an auto-flow game.

    Re-checks everything under the game lock and returns False without
    touching the game when it was deleted, finished, moved on by the host,
    or its deadline has not passed yet.
    """
    with transaction():
        game = lock_game_by_id(game_id)
        if not game or not game.auto_flow or not game.is_active:
            current_app.logger.info(f"[timer-abort] game={game_id} missing or not active")
            return False
        if game.phase != expected_phase or game.current_question_index != expected_index:
            current_app.logger.info(
                f"[timer-abort] game={game.code} expected={expected_phase.value}/{expected_index} "
                f"actual={game.phase.value}/{game.current_question_index}"
            )
            return False
        if game.phase_deadline is None or game.phase_deadline > at:
            return False
        if game.phase == Phase.REDEMPTION:
            events = _auto_redemption(game, at)
        else:
            events = ADVANCE[game.phase](game, at)
        code = game.code
    _emit(code, events)
    return True
