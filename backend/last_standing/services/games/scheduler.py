"""Deadline-driven auto advance.

Deadlines live on the rows (``game.phase_deadline``, ``round.ends_at``),
so a restart loses nothing: a single background loop wakes every
``SCHEDULER_TICK_SEC`` and performs whatever transitions have come due.
Each transition re-validates the game under its row lock, so a host action
that got there first turns the timer into a no-op.
"""

from typing import List, Tuple

from last_standing import db, socketio
from last_standing.models import ACTIVE_PHASES, Game, Phase, RedemptionRound, RoundStatus
from .errors import GameError
from .flow import auto_advance
from .redemption import expire_round
from .store import now


def due_games(at: float) -> List[Tuple[int, Phase, int]]:
    games = (
        Game.query.filter(
            Game.auto_flow.is_(True),
            Game.phase.in_(ACTIVE_PHASES),
            Game.phase_deadline.isnot(None),
            Game.phase_deadline <= at,
        )
        .order_by(Game.phase_deadline)
        .all()
    )
    return [(g.id, g.phase, g.current_question_index) for g in games]


def due_rounds(at: float) -> List[int]:
    rounds = RedemptionRound.query.filter(
        RedemptionRound.status == RoundStatus.ACTIVE,
        RedemptionRound.ends_at <= at,
    ).all()
    return [r.id for r in rounds]


def run_due_transitions(app, at=None) -> int:
    """Fire every due phase transition and voting close once.

    Must run inside an application context. Returns how many fired.
    """
    at = now() if at is None else at
    games = due_games(at)
    round_ids = due_rounds(at)
    # End the read transaction before taking row locks one game at a time
    db.session.commit()

    fired = 0
    for game_id, phase, index in games:
        app.logger.info(f"[timer-fire] game={game_id} phase={phase.value} question={index}")
        try:
            if auto_advance(game_id, phase, index, at):
                fired += 1
        except GameError as exc:
            app.logger.warning(f"[timer-error] game={game_id} phase={phase.value}: {exc.message}")
    for round_id in round_ids:
        try:
            if expire_round(round_id, at):
                app.logger.info(f"[timer-fire] round={round_id} voting closed")
                fired += 1
        except GameError as exc:
            app.logger.warning(f"[timer-error] round={round_id}: {exc.message}")
    return fired


def start_scheduler(app):
    """Start the background tick loop once per app.

    No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set.
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return None
    if app.extensions.get('game_scheduler'):
        return app.extensions['game_scheduler']

    tick = float(app.config.get('SCHEDULER_TICK_SEC', 1))

    def _worker():
        app.logger.info(f"[scheduler] started tick={tick}s")
        while True:
            socketio.sleep(tick)
            with app.app_context():
                try:
                    run_due_transitions(app)
                except Exception:
                    db.session.rollback()
                    app.logger.exception("[scheduler] tick failed")
                finally:
                    db.session.remove()

    task = socketio.start_background_task(_worker)
    app.extensions['game_scheduler'] = task
    return task
