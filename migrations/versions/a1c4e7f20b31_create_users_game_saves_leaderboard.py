"""create users, game_saves and leaderboard_scores

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2025-11-02 10:12:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7f20b31'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('password_hash', sa.String(length=256), nullable=True),
            sa.Column('is_anonymous_account', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_users_username', 'users', ['username'])
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'game_saves' not in existing_tables:
        op.create_table(
            'game_saves',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('run_id', sa.String(length=36), nullable=False),
            sa.Column('character_id', sa.String(length=64), nullable=False),
            sa.Column('game_state', sa.JSON(), nullable=False),
            sa.Column('floor_number', sa.Integer(), nullable=False),
            sa.Column('current_gold', sa.Integer(), nullable=False),
            sa.Column('max_floor_reached', sa.Integer(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint('user_id', 'run_id', name='uq_game_saves_user_run'),
        )
        op.create_index('ix_game_saves_user_id', 'game_saves', ['user_id'])
        # At most one active run per user
        op.create_index(
            'uq_game_saves_one_active_per_user',
            'game_saves',
            ['user_id'],
            unique=True,
            postgresql_where=sa.text('is_active'),
            sqlite_where=sa.text('is_active = 1'),
        )

    if 'leaderboard_scores' not in existing_tables:
        op.create_table(
            'leaderboard_scores',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('character_id', sa.String(length=64), nullable=False),
            sa.Column('final_floor', sa.Integer(), nullable=False),
            sa.Column('final_gold', sa.Integer(), nullable=False),
            sa.Column('total_encounters', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('run_duration_seconds', sa.Float(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_leaderboard_scores_user_id', 'leaderboard_scores', ['user_id'])
        op.create_index('ix_leaderboard_scores_character_id', 'leaderboard_scores', ['character_id'])
        op.create_index('ix_leaderboard_scores_created_at', 'leaderboard_scores', ['created_at'])
        op.create_index('ix_leaderboard_scores_rank', 'leaderboard_scores', ['final_floor', 'final_gold'])


def downgrade():
    op.drop_table('leaderboard_scores')
    op.drop_table('game_saves')
    op.drop_table('users')
