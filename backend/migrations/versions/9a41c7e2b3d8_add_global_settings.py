"""add global_settings for default phase videos

Revision ID: 9a41c7e2b3d8
Revises: 5c2d9e71a0b4
Create Date: 2026-10-18 16:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9a41c7e2b3d8'
down_revision = '5c2d9e71a0b4'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'global_settings' in set(insp.get_table_names()):
        return
    op.create_table(
        'global_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('setting_type', sa.String(length=64), nullable=False),
        sa.Column('elimination_video_url', sa.String(length=1024), nullable=True),
        sa.Column('survivor_video_url', sa.String(length=1024), nullable=True),
        sa.Column('redemption_video_url', sa.String(length=1024), nullable=True),
        sa.Column('updated_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('setting_type'),
    )


def downgrade():
    op.drop_table('global_settings')
