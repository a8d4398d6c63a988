"""Redemption rounds: eliminated players voted back in by survivors.

Lock order is always game row, then round row, so a tally cannot race a
late vote and two closes of the same round cannot both redeem.
"""

from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError

from last_standing import db
from last_standing.models import Game, Phase, Player, PlayerStatus, RedemptionRound, RoundStatus, Vote
from .errors import Conflict, Forbidden, InvalidState, NotFound
from .notifier import EventType, get_notifier
from .store import lock_game, lock_game_by_id, lock_round, now, require_host, transaction


def voting_duration() -> int:
    return int(current_app.config.get('VOTING_DURATION_SEC', 20))


def candidates_for(game_id: int, question_index: int) -> List[Player]:
    return (
        Player.query.filter_by(
            game_id=game_id,
            status=PlayerStatus.ELIMINATED,
            eliminated_round=question_index,
        )
        .order_by(Player.id)
        .all()
    )


def active_round_for(game: Game) -> Optional[RedemptionRound]:
    if game.current_question_index is None:
        return None
    return RedemptionRound.query.filter_by(
        game_id=game.id,
        question_index=game.current_question_index,
        status=RoundStatus.ACTIVE,
    ).first()


def tally(round_id: int) -> List[Tuple[int, int]]:
    """(candidate id, votes), most votes first, ties to the lowest id."""
    votes = func.count(Vote.id)
    rows = (
        db.session.query(Vote.voted_for_player_id, votes)
        .filter(Vote.round_id == round_id)
        .group_by(Vote.voted_for_player_id)
        .order_by(votes.desc(), Vote.voted_for_player_id.asc())
        .all()
    )
    return [(candidate_id, count) for candidate_id, count in rows]


def _tally_rows(candidates: List[Player], counts: List[Tuple[int, int]]) -> List[dict]:
    by_id = dict(counts)
    return [
        {'player_id': c.id, 'username': c.username, 'votes': by_id.get(c.id, 0)}
        for c in candidates
    ]


def open_round(game: Game, at: float) -> Tuple[RedemptionRound, List[Player]]:
    """Create the voting round for the game's current question.

    The caller holds the game row lock and owns the transaction.
    """
    idx = game.current_question_index
    candidates = candidates_for(game.id, idx)
    if not candidates:
        raise InvalidState('No players were eliminated in the last round, so no redemption round is needed.')
    if active_round_for(game):
        raise Conflict('A redemption round is already active for this question.')
    rnd = RedemptionRound(
        game_id=game.id,
        question_index=idx,
        status=RoundStatus.ACTIVE,
        started_at=at,
        ends_at=at + voting_duration(),
    )
    db.session.add(rnd)
    db.session.flush()
    current_app.logger.info(
        f"[vote-start] game={game.code} round={rnd.id} question={idx} candidates={[c.id for c in candidates]}"
    )
    return rnd, candidates


def round_started_payload(rnd: RedemptionRound, candidates: List[Player]) -> dict:
    return {
        'round_id': rnd.id,
        'question_index': rnd.question_index,
        'ends_at': rnd.ends_at,
        'eligible_players': [c.to_dict() for c in candidates],
    }


def close_round(game: Game, rnd: RedemptionRound) -> dict:
    """Tally, redeem the winner, bump the pot, complete the round.

    The caller holds the game and round row locks and owns the transaction.
    """
    if rnd.status != RoundStatus.ACTIVE:
        raise Conflict('This voting round has already been completed.')
    candidates = candidates_for(game.id, rnd.question_index)
    counts = tally(rnd.id)
    winner = None
    if counts:
        winner_id = counts[0][0]
        rows = Player.query.filter_by(
            id=winner_id,
            game_id=game.id,
            status=PlayerStatus.ELIMINATED,
            eliminated_round=rnd.question_index,
        ).update(
            {
                'status': PlayerStatus.ACTIVE,
                'eliminated_round': None,
                'last_answered_index': rnd.question_index,
            },
            synchronize_session='fetch',
        )
        if rows:
            winner = db.session.get(Player, winner_id)
            game.current_prize_pot += game.prize_pot_increment
            current_app.logger.info(
                f"[redeem] game={game.code} round={rnd.id} player={winner_id} pot={game.current_prize_pot}"
            )
    else:
        current_app.logger.info(f"[redeem-none] game={game.code} round={rnd.id} no votes cast")
    rnd.status = RoundStatus.COMPLETED
    rnd.redeemed_player_id = winner.id if winner else None
    db.session.flush()
    return {
        'round': rnd.to_dict(),
        'redeemed_player': winner.to_dict() if winner else None,
        'final_vote_tallies': _tally_rows(candidates, counts),
        'current_prize_pot': game.current_prize_pot,
    }


def _broadcast_result(game_code: str, result: dict) -> None:
    winner = result['redeemed_player']
    get_notifier().broadcast(game_code, EventType.VOTING_ENDED, {
        'round_id': result['round']['id'],
        'winner': {'player_id': winner['id'], 'username': winner['username']} if winner else None,
        'tallies': result['final_vote_tallies'],
        'pot': result['current_prize_pot'],
    })


def start_round(game_code: str, host_name: str) -> dict:
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'start a redemption round')
        if not game.is_active:
            raise InvalidState('Game is not active.')
        if game.current_question_index is None:
            raise InvalidState('No active question round to start voting for.')
        rnd, candidates = open_round(game, now())
        if game.auto_flow and game.phase == Phase.REDEMPTION:
            game.phase_deadline = rnd.ends_at
        payload = round_started_payload(rnd, candidates)
        code = game.code
    get_notifier().broadcast(code, EventType.VOTING_STARTED, payload)
    return payload


def cast_vote(round_id, voter_player_id, voted_for_player_id) -> dict:
    with transaction():
        found = db.session.get(RedemptionRound, round_id)
        if not found:
            raise NotFound('Voting round not found.')
        game = lock_game_by_id(found.game_id)
        if not game:
            raise NotFound('Game not found.')
        rnd = lock_round(round_id)
        if rnd.status != RoundStatus.ACTIVE or not game.is_active:
            raise InvalidState('This voting round is no longer active.')
        if now() > rnd.ends_at:
            raise InvalidState('The time for voting has expired.')

        voter = Player.query.filter_by(id=voter_player_id, game_id=game.id).first()
        if not voter:
            raise NotFound('Voter not found in this game.')
        if voter.status != PlayerStatus.ACTIVE:
            raise Forbidden('Only active players can vote.')
        candidate = Player.query.filter_by(id=voted_for_player_id, game_id=game.id).first()
        if not candidate:
            raise NotFound('Candidate player not found in this game.')
        if candidate.status != PlayerStatus.ELIMINATED or candidate.eliminated_round != rnd.question_index:
            raise InvalidState('This player is not eligible for redemption in this round.')
        if Vote.query.filter_by(round_id=rnd.id, voter_player_id=voter.id).first():
            raise Conflict('You have already voted in this round.')

        db.session.add(Vote(round_id=rnd.id, voter_player_id=voter.id, voted_for_player_id=candidate.id))
        try:
            db.session.flush()
        except IntegrityError:
            raise Conflict('You have already voted in this round.')
        current_app.logger.info(f"[vote] game={game.code} round={rnd.id} voter={voter.id} candidate={candidate.id}")
        tallies = [{'player_id': pid, 'votes': n} for pid, n in tally(rnd.id)]
        code = game.code
    get_notifier().broadcast(code, EventType.VOTE_TICK, {'round_id': round_id, 'tallies': tallies})
    return {'success': True, 'message': 'Your vote has been cast successfully.'}


def end_round(round_id, host_name: str) -> dict:
    with transaction():
        found = db.session.get(RedemptionRound, round_id)
        if not found:
            raise NotFound('Voting round not found.')
        game = lock_game_by_id(found.game_id)
        if not game:
            raise NotFound('Game not found.')
        require_host(game, host_name, 'end the voting round')
        rnd = lock_round(round_id)
        result = close_round(game, rnd)
        code = game.code
    _broadcast_result(code, result)
    return result


def end_current_round(game_code: str, host_name: str) -> dict:
    """Close the active round of the game's current question."""
    with transaction():
        game = lock_game(game_code)
        require_host(game, host_name, 'end redemption')
        current = active_round_for(game)
        if not current:
            raise NotFound('Redemption round not found.')
        rnd = lock_round(current.id)
        result = close_round(game, rnd)
        code = game.code
    _broadcast_result(code, result)
    return result


def expire_round(round_id: int, at: float) -> Optional[dict]:
    """Timer close of an expired round; None when there is nothing to do."""
    with transaction():
        found = db.session.get(RedemptionRound, round_id)
        if not found:
            return None
        game = lock_game_by_id(found.game_id)
        if not game:
            return None
        rnd = lock_round(round_id)
        if rnd.status != RoundStatus.ACTIVE or rnd.ends_at > at:
            return None
        result = close_round(game, rnd)
        code = game.code
    _broadcast_result(code, result)
    return result


def vote_state(round_id) -> dict:
    rnd = db.session.get(RedemptionRound, round_id)
    if not rnd:
        raise NotFound('Voting round not found.')
    eligible = (
        Player.query.filter(
            Player.game_id == rnd.game_id,
            or_(
                and_(Player.status == PlayerStatus.ELIMINATED, Player.eliminated_round == rnd.question_index),
                Player.id == rnd.redeemed_player_id,
            ),
        )
        .order_by(Player.id)
        .all()
    )
    remaining = 0
    if rnd.status == RoundStatus.ACTIVE:
        remaining = max(0, int(round(rnd.ends_at - now())))
    return {
        'round_id': rnd.id,
        'status': rnd.status.value,
        'question_index': rnd.question_index,
        'ends_at': rnd.ends_at,
        'time_remaining': remaining,
        'redeemed_player_id': rnd.redeemed_player_id,
        'vote_tallies': _tally_rows(eligible, tally(rnd.id)),
        'eligible_candidates': [p.to_dict() for p in eligible],
    }
