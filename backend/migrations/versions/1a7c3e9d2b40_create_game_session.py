"""create game_session table

Revision ID: 1a7c3e9d2b40
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a7c3e9d2b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'game_session' in set(insp.get_table_names()):
        return

    op.create_table(
        'game_session',
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('expires_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('code'),
    )
    with op.batch_alter_table('game_session') as batch_op:
        batch_op.create_index(batch_op.f('ix_game_session_expires_at'), ['expires_at'], unique=False)


def downgrade():
    with op.batch_alter_table('game_session') as batch_op:
        batch_op.drop_index(batch_op.f('ix_game_session_expires_at'))
    op.drop_table('game_session')
