"""create score table

Revision ID: 5c2d9e7a1b40
Revises: 
Create Date: 2025-03-16 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e7a1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # Databases created through `flask db-reset` already have the table.
    if 'score' in set(insp.get_table_names()):
        return

    op.create_table(
        'score',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('time', sa.Float(), nullable=False),
        sa.Column('game', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_score_game'), 'score', ['game'], unique=False)
    op.create_index(op.f('ix_score_created_at'), 'score', ['created_at'], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'score' not in set(insp.get_table_names()):
        return
    op.drop_index(op.f('ix_score_created_at'), table_name='score')
    op.drop_index(op.f('ix_score_game'), table_name='score')
    op.drop_table('score')
