"""Transactional access to game rows.

Every read-then-write sequence in the game services goes through
``transaction()`` and the ``lock_*`` helpers, which issue
``SELECT ... FOR UPDATE`` so concurrent answers, votes, tallies and phase
transitions on the same game serialize on the game row. Backends without
row locks (SQLite) ignore the clause and serialize writers on the database
file instead.
"""

from contextlib import contextmanager
import time

from last_standing import db
from last_standing.models import Game, Player, RedemptionRound
from .errors import Forbidden, NotFound


def now() -> float:
    return time.time()


def require_host(game: Game, host_name: str, action: str) -> None:
    if not host_name or game.host_name != host_name:
        raise Forbidden(f'Only the host can {action}.')


@contextmanager
def transaction():
    """Commit on success, roll back on any error and re-raise it."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def get_game(code: str) -> Game:
    game = Game.query.filter_by(code=(code or '').upper()).first()
    if not game:
        raise NotFound('Game not found.')
    return game


def lock_game(code: str) -> Game:
    game = (
        Game.query.filter_by(code=(code or '').upper())
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not game:
        raise NotFound('Game not found.')
    return game


def lock_game_by_id(game_id: int):
    """Locked game or None; used by timers where a missing game is a no-op."""
    return (
        Game.query.filter_by(id=game_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def lock_player(game: Game, username: str) -> Player:
    player = (
        Player.query.filter_by(game_id=game.id, username_key=username.lower())
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not player:
        raise NotFound('Player not found in this game.')
    return player


def lock_round(round_id: int) -> RedemptionRound:
    rnd = (
        RedemptionRound.query.filter_by(id=round_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not rnd:
        raise NotFound('Voting round not found.')
    return rnd
