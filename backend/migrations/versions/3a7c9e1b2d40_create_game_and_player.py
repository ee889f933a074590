"""create game and player tables

Revision ID: 3a7c9e1b2d40
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c9e1b2d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game' not in existing_tables:
        op.create_table(
            'game',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('game_code', sa.String(length=6), nullable=False),
            sa.Column('phase', sa.String(length=16), nullable=False),
            sa.Column('current_round', sa.Integer(), nullable=False),
            sa.Column('total_rounds', sa.Integer(), nullable=False),
            sa.Column('round_duration', sa.Integer(), nullable=False),
            sa.Column('current_scenario_id', sa.Integer(), nullable=True),
            sa.Column('round_start_time', sa.Float(), nullable=True),
            sa.Column('paused_remaining_seconds', sa.Integer(), nullable=True),
            sa.Column('scenario_order', sa.Text(), nullable=True),
            sa.Column('round_results', sa.Text(), nullable=True),
            sa.Column('created_at', sa.Float(), nullable=False),
            sa.Column('revision', sa.Integer(), nullable=False, server_default='0'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_game_game_code', 'game', ['game_code'], unique=True)

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('game_id', sa.Integer(), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('population', sa.Integer(), nullable=False),
            sa.Column('is_host', sa.Boolean(), nullable=False),
            sa.Column('has_chosen', sa.Boolean(), nullable=False),
            sa.Column('pending_choice', sa.String(length=8), nullable=True),
            sa.Column('last_choice', sa.String(length=8), nullable=True),
            sa.Column('is_eliminated', sa.Boolean(), nullable=False),
            sa.Column('token_hash', sa.String(length=256), nullable=False),
            sa.ForeignKeyConstraint(['game_id'], ['game.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_player_game_id', 'player', ['game_id'], unique=False)


def downgrade():
    op.drop_index('ix_player_game_id', table_name='player')
    op.drop_table('player')
    op.drop_index('ix_game_game_code', table_name='game')
    op.drop_table('game')
