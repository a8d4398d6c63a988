"""initial schema: games, players, questions, redemption rounds and votes

Revision ID: 5c2d9e71a0b4
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e71a0b4'
down_revision = None
branch_labels = None
depends_on = None


PHASES = ('lobby', 'question', 'reveal', 'elimination', 'survivors', 'redemption', 'finished')
PLAYER_STATUSES = ('active', 'eliminated', 'redeemed')
ROUND_STATUSES = ('active', 'completed')


def upgrade():
    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('host_name', sa.String(length=50), nullable=False),
        sa.Column('phase', sa.Enum(*PHASES, name='game_phase', native_enum=False), nullable=False),
        sa.Column('current_question_index', sa.Integer(), nullable=True),
        sa.Column('initial_prize_pot', sa.Integer(), nullable=False),
        sa.Column('current_prize_pot', sa.Integer(), nullable=False),
        sa.Column('prize_pot_increment', sa.Integer(), nullable=False),
        sa.Column('auto_flow', sa.Boolean(), nullable=False),
        sa.Column('question_started_at', sa.Float(), nullable=True),
        sa.Column('phase_started_at', sa.Float(), nullable=True),
        sa.Column('phase_deadline', sa.Float(), nullable=True),
        sa.Column('media_url', sa.String(length=1024), nullable=True),
        sa.Column('sound_id', sa.String(length=128), nullable=True),
        sa.Column('elimination_video_url', sa.String(length=1024), nullable=True),
        sa.Column('survivor_video_url', sa.String(length=1024), nullable=True),
        sa.Column('redemption_video_url', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('game') as batch_op:
        batch_op.create_index(batch_op.f('ix_game_code'), ['code'], unique=True)
        batch_op.create_index(batch_op.f('ix_game_phase_deadline'), ['phase_deadline'], unique=False)

    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('username_key', sa.String(length=50), nullable=False),
        sa.Column('status', sa.Enum(*PLAYER_STATUSES, name='player_status', native_enum=False), nullable=False),
        sa.Column('eliminated_round', sa.Integer(), nullable=True),
        sa.Column('last_answered_index', sa.Integer(), nullable=True),
        sa.Column('balance', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'username_key', name='uq_player_game_username'),
    )
    with op.batch_alter_table('player') as batch_op:
        batch_op.create_index(batch_op.f('ix_player_game_id'), ['game_id'], unique=False)

    op.create_table(
        'question',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('question_index', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('option_a', sa.String(length=255), nullable=False),
        sa.Column('option_b', sa.String(length=255), nullable=False),
        sa.Column('option_c', sa.String(length=255), nullable=False),
        sa.Column('option_d', sa.String(length=255), nullable=False),
        sa.Column('correct_answer', sa.String(length=1), nullable=False),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('game_id', 'question_index', name='uq_question_game_index'),
    )
    with op.batch_alter_table('question') as batch_op:
        batch_op.create_index(batch_op.f('ix_question_game_id'), ['game_id'], unique=False)

    op.create_table(
        'redemption_round',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('game_id', sa.Integer(), nullable=False),
        sa.Column('question_index', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(*ROUND_STATUSES, name='round_status', native_enum=False), nullable=False),
        sa.Column('started_at', sa.Float(), nullable=False),
        sa.Column('ends_at', sa.Float(), nullable=False),
        sa.Column('redeemed_player_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['game_id'], ['game.id']),
        sa.ForeignKeyConstraint(['redeemed_player_id'], ['player.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('redemption_round') as batch_op:
        batch_op.create_index(batch_op.f('ix_redemption_round_game_id'), ['game_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_redemption_round_ends_at'), ['ends_at'], unique=False)

    op.create_table(
        'vote',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('round_id', sa.Integer(), nullable=False),
        sa.Column('voter_player_id', sa.Integer(), nullable=False),
        sa.Column('voted_for_player_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(['round_id'], ['redemption_round.id']),
        sa.ForeignKeyConstraint(['voter_player_id'], ['player.id']),
        sa.ForeignKeyConstraint(['voted_for_player_id'], ['player.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('round_id', 'voter_player_id', name='uq_vote_round_voter'),
    )
    with op.batch_alter_table('vote') as batch_op:
        batch_op.create_index(batch_op.f('ix_vote_round_id'), ['round_id'], unique=False)

    op.create_table(
        'global_question',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('option_a', sa.String(length=255), nullable=False),
        sa.Column('option_b', sa.String(length=255), nullable=False),
        sa.Column('option_c', sa.String(length=255), nullable=False),
        sa.Column('option_d', sa.String(length=255), nullable=False),
        sa.Column('correct_answer', sa.String(length=1), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('created_by', sa.String(length=50), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('global_question') as batch_op:
        batch_op.create_index(batch_op.f('ix_global_question_category'), ['category'], unique=False)


def downgrade():
    with op.batch_alter_table('global_question') as batch_op:
        batch_op.drop_index(batch_op.f('ix_global_question_category'))
    op.drop_table('global_question')

    with op.batch_alter_table('vote') as batch_op:
        batch_op.drop_index(batch_op.f('ix_vote_round_id'))
    op.drop_table('vote')

    with op.batch_alter_table('redemption_round') as batch_op:
        batch_op.drop_index(batch_op.f('ix_redemption_round_ends_at'))
        batch_op.drop_index(batch_op.f('ix_redemption_round_game_id'))
    op.drop_table('redemption_round')

    with op.batch_alter_table('question') as batch_op:
        batch_op.drop_index(batch_op.f('ix_question_game_id'))
    op.drop_table('question')

    with op.batch_alter_table('player') as batch_op:
        batch_op.drop_index(batch_op.f('ix_player_game_id'))
    op.drop_table('player')

    with op.batch_alter_table('game') as batch_op:
        batch_op.drop_index(batch_op.f('ix_game_phase_deadline'))
        batch_op.drop_index(batch_op.f('ix_game_code'))
    op.drop_table('game')
