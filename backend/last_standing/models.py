from last_standing import db
from last_standing.services.games.errors import Conflict
import enum
import random
import string
import time


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Phase(str, enum.Enum):
    """Single authoritative stage of a game."""

    LOBBY = 'lobby'
    QUESTION = 'question'
    REVEAL = 'reveal'
    ELIMINATION = 'elimination'
    SURVIVORS = 'survivors'
    REDEMPTION = 'redemption'
    FINISHED = 'finished'

    @property
    def status(self) -> str:
        if self is Phase.LOBBY:
            return 'lobby'
        if self is Phase.FINISHED:
            return 'finished'
        return 'active'


ACTIVE_PHASES = (
    Phase.QUESTION,
    Phase.REVEAL,
    Phase.ELIMINATION,
    Phase.SURVIVORS,
    Phase.REDEMPTION,
)


class PlayerStatus(str, enum.Enum):
    ACTIVE = 'active'
    ELIMINATED = 'eliminated'
    REDEEMED = 'redeemed'


class RoundStatus(str, enum.Enum):
    ACTIVE = 'active'
    COMPLETED = 'completed'


CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_LENGTH = 6


def generate_game_code(max_attempts=10, length=CODE_LENGTH):
    """Generate a game code not used by any existing game.

    Raises Conflict once ``max_attempts`` candidates have all collided.
    """
    for _ in range(max_attempts):
        code = ''.join(random.choices(CODE_ALPHABET, k=length))
        if not Game.query.filter_by(code=code).first():
            return code
    raise Conflict('Failed to generate a unique game code after multiple attempts.')


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(CODE_LENGTH), unique=True, nullable=False, index=True)
    host_name = db.Column(db.String(50), nullable=False)
    phase = db.Column(
        db.Enum(Phase, name='game_phase', native_enum=False, values_callable=_enum_values),
        default=Phase.LOBBY,
        nullable=False,
    )
    current_question_index = db.Column(db.Integer, nullable=True)
    initial_prize_pot = db.Column(db.Integer, default=0, nullable=False)
    current_prize_pot = db.Column(db.Integer, default=0, nullable=False)
    prize_pot_increment = db.Column(db.Integer, default=0, nullable=False)
    auto_flow = db.Column(db.Boolean, default=False, nullable=False)
    # Epoch seconds
    question_started_at = db.Column(db.Float, nullable=True)
    phase_started_at = db.Column(db.Float, nullable=True)
    phase_deadline = db.Column(db.Float, nullable=True, index=True)
    # Ephemeral host-set triggers, cleared by players once shown
    media_url = db.Column(db.String(1024), nullable=True)
    sound_id = db.Column(db.String(128), nullable=True)
    elimination_video_url = db.Column(db.String(1024), nullable=True)
    survivor_video_url = db.Column(db.String(1024), nullable=True)
    redemption_video_url = db.Column(db.String(1024), nullable=True)
    created_at = db.Column(db.Float, default=time.time, nullable=False)

    players = db.relationship('Player', back_populates='game', order_by='Player.id')
    questions = db.relationship('Question', back_populates='game', order_by='Question.question_index')
    redemption_rounds = db.relationship('RedemptionRound', back_populates='game', lazy='dynamic')

    def __init__(self, **kwargs):
        max_attempts = kwargs.pop('max_code_attempts', 10)
        super(Game, self).__init__(**kwargs)
        if self.phase is None:
            self.phase = Phase.LOBBY
        if not self.code:
            self.code = generate_game_code(max_attempts)

    @property
    def status(self) -> str:
        return self.phase.status

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    def set_phase(self, phase: Phase, now: float, deadline=None) -> None:
        self.phase = phase
        self.phase_started_at = now
        self.phase_deadline = deadline

    def to_dict(self, include_players=False):
        data = {
            'id': self.id,
            'code': self.code,
            'host_name': self.host_name,
            'status': self.status,
            'phase': self.phase.value,
            'current_question_index': self.current_question_index,
            'initial_prize_pot': self.initial_prize_pot,
            'current_prize_pot': self.current_prize_pot,
            'prize_pot_increment': self.prize_pot_increment,
            'auto_flow': self.auto_flow,
            'question_started_at': self.question_started_at,
            'phase_started_at': self.phase_started_at,
            'phase_deadline': self.phase_deadline,
            'media_url': self.media_url,
            'sound_id': self.sound_id,
            'elimination_video_url': self.elimination_video_url,
            'survivor_video_url': self.survivor_video_url,
            'redemption_video_url': self.redemption_video_url,
            'created_at': self.created_at,
        }
        if include_players:
            data['players'] = [p.to_dict() for p in self.players]
        return data


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'username_key', name='uq_player_game_username'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    username = db.Column(db.String(50), nullable=False)
    # Lower-cased username; enforces case-insensitive uniqueness per game
    username_key = db.Column(db.String(50), nullable=False)
    status = db.Column(
        db.Enum(PlayerStatus, name='player_status', native_enum=False, values_callable=_enum_values),
        default=PlayerStatus.ACTIVE,
        nullable=False,
    )
    eliminated_round = db.Column(db.Integer, nullable=True)
    last_answered_index = db.Column(db.Integer, nullable=True)
    balance = db.Column(db.Integer, default=0, nullable=False)
    joined_at = db.Column(db.Float, default=time.time, nullable=False)
    game = db.relationship('Game', back_populates='players')

    def __init__(self, **kwargs):
        super(Player, self).__init__(**kwargs)
        if self.username and not self.username_key:
            self.username_key = self.username.lower()
        if self.status is None:
            self.status = PlayerStatus.ACTIVE

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'username': self.username,
            'status': self.status.value,
            'eliminated_round': self.eliminated_round,
            'balance': self.balance,
            'joined_at': self.joined_at,
        }


ANSWER_CHOICES = ('A', 'B', 'C', 'D')


class Question(db.Model):
    __tablename__ = 'question'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'question_index', name='uq_question_game_index'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    question_index = db.Column(db.Integer, nullable=False)
    question_text = db.Column(db.Text, nullable=False)
    option_a = db.Column(db.String(255), nullable=False)
    option_b = db.Column(db.String(255), nullable=False)
    option_c = db.Column(db.String(255), nullable=False)
    option_d = db.Column(db.String(255), nullable=False)
    correct_answer = db.Column(db.String(1), nullable=False)
    game = db.relationship('Game', back_populates='questions')

    def to_dict(self, include_answer=True):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'question_index': self.question_index,
            'question_text': self.question_text,
            'option_a': self.option_a,
            'option_b': self.option_b,
            'option_c': self.option_c,
            'option_d': self.option_d,
            'correct_answer': self.correct_answer if include_answer else None,
        }


class RedemptionRound(db.Model):
    __tablename__ = 'redemption_round'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    question_index = db.Column(db.Integer, nullable=False)
    status = db.Column(
        db.Enum(RoundStatus, name='round_status', native_enum=False, values_callable=_enum_values),
        default=RoundStatus.ACTIVE,
        nullable=False,
    )
    started_at = db.Column(db.Float, default=time.time, nullable=False)
    ends_at = db.Column(db.Float, nullable=False, index=True)
    redeemed_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=True)
    game = db.relationship('Game', back_populates='redemption_rounds')
    votes = db.relationship('Vote', back_populates='round', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'game_id': self.game_id,
            'question_index': self.question_index,
            'status': self.status.value,
            'started_at': self.started_at,
            'ends_at': self.ends_at,
            'redeemed_player_id': self.redeemed_player_id,
        }


class Vote(db.Model):
    __tablename__ = 'vote'
    __table_args__ = (
        db.UniqueConstraint('round_id', 'voter_player_id', name='uq_vote_round_voter'),
    )
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.Integer, db.ForeignKey('redemption_round.id'), nullable=False, index=True)
    voter_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    voted_for_player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False)

    round = db.relationship('RedemptionRound', back_populates='votes')
    voter = db.relationship('Player', foreign_keys=[voter_player_id])
    voted_for = db.relationship('Player', foreign_keys=[voted_for_player_id])


DIFFICULTIES = ('Easy', 'Medium', 'Hard')


class GlobalQuestion(db.Model):
    """Reusable question shared between games."""
    __tablename__ = 'global_question'
    id = db.Column(db.Integer, primary_key=True)
    question_text = db.Column(db.Text, nullable=False)
    option_a = db.Column(db.String(255), nullable=False)
    option_b = db.Column(db.String(255), nullable=False)
    option_c = db.Column(db.String(255), nullable=False)
    option_d = db.Column(db.String(255), nullable=False)
    correct_answer = db.Column(db.String(1), nullable=False)
    category = db.Column(db.String(64), default='General', nullable=False, index=True)
    difficulty = db.Column(db.String(16), default='Medium', nullable=False)
    created_by = db.Column(db.String(50), nullable=False)
    is_public = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'question_text': self.question_text,
            'option_a': self.option_a,
            'option_b': self.option_b,
            'option_c': self.option_c,
            'option_d': self.option_d,
            'correct_answer': self.correct_answer,
            'category': self.category,
            'difficulty': self.difficulty,
            'created_by': self.created_by,
            'is_public': self.is_public,
            'created_at': self.created_at,
        }


class GlobalSettings(db.Model):
    """Server-wide settings rows, one per ``setting_type``."""
    __tablename__ = 'global_settings'
    id = db.Column(db.Integer, primary_key=True)
    setting_type = db.Column(db.String(64), unique=True, nullable=False)
    # Default phase videos for games that set none of their own
    elimination_video_url = db.Column(db.String(1024), nullable=True)
    survivor_video_url = db.Column(db.String(1024), nullable=True)
    redemption_video_url = db.Column(db.String(1024), nullable=True)
    updated_at = db.Column(db.Float, default=time.time, onupdate=time.time, nullable=False)

    def to_dict(self):
        return {
            'elimination_video_url': self.elimination_video_url,
            'survivor_video_url': self.survivor_video_url,
            'redemption_video_url': self.redemption_video_url,
            'updated_at': self.updated_at,
        }
