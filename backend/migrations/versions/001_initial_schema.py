"""Initial wagering schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

from backend.migrations.util import get_timestamp_default, get_uuid_type

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    uuid_type = get_uuid_type()
    now = get_timestamp_default()

    op.create_table(
        'users',
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('username', sa.String(80), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('balance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('transaction_pin_hash', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )

    op.create_table(
        'ledger_transactions',
        sa.Column('transaction_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('kind', sa.String(30), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='SUCCESS'),
        sa.Column('description', sa.String(255), nullable=False),
        sa.Column('reference_id', uuid_type, nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('balance_after', sa.Numeric(14, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('transaction_id'),
    )
    op.create_index('ix_ledger_transactions_user_id', 'ledger_transactions', ['user_id'])
    op.create_index('ix_ledger_transactions_kind', 'ledger_transactions', ['kind'])
    op.create_index('ix_ledger_transactions_reference_id', 'ledger_transactions', ['reference_id'])
    op.create_index('ix_ledger_transactions_created_at', 'ledger_transactions', ['created_at'])
    op.create_index('ix_ledger_transactions_user_created', 'ledger_transactions', ['user_id', 'created_at'])

    op.create_table(
        'quiz_courses',
        sa.Column('course_id', uuid_type, nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('icon', sa.String(16), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('course_id'),
        sa.UniqueConstraint('name', name='uq_quiz_courses_name'),
    )

    op.create_table(
        'quiz_modules',
        sa.Column('module_id', uuid_type, nullable=False),
        sa.Column('course_id', uuid_type, nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['course_id'], ['quiz_courses.course_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('module_id'),
    )
    op.create_index('ix_quiz_modules_course_id', 'quiz_modules', ['course_id'])

    op.create_table(
        'quiz_levels',
        sa.Column('level_id', uuid_type, nullable=False),
        sa.Column('module_id', uuid_type, nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.ForeignKeyConstraint(['module_id'], ['quiz_modules.module_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('level_id'),
    )
    op.create_index('ix_quiz_levels_module_id', 'quiz_levels', ['module_id'])

    op.create_table(
        'quiz_questions',
        sa.Column('question_id', uuid_type, nullable=False),
        sa.Column('level_id', uuid_type, nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('option_a', sa.String(255), nullable=False),
        sa.Column('option_b', sa.String(255), nullable=False),
        sa.Column('correct_option', sa.String(1), nullable=False),
        sa.Column('time_limit', sa.Integer(), nullable=False, server_default='15'),
        sa.ForeignKeyConstraint(['level_id'], ['quiz_levels.level_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('question_id'),
    )
    op.create_index('ix_quiz_questions_level_id', 'quiz_questions', ['level_id'])

    op.create_table(
        'quiz_games',
        sa.Column('game_id', uuid_type, nullable=False),
        sa.Column('mode', sa.String(10), nullable=False),
        sa.Column('level_id', uuid_type, nullable=False),
        sa.Column('entry_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='WAITING'),
        sa.Column('match_code', sa.String(6), nullable=True),
        sa.Column('max_players', sa.Integer(), nullable=False),
        sa.Column('question_ids', sa.JSON(), nullable=False),
        sa.Column('platform_fee_taken', sa.Numeric(14, 2), nullable=True),
        sa.Column('prize_pool_distributed', sa.Numeric(14, 2), nullable=True),
        sa.Column('house_contribution', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('settlement_status', sa.String(20), nullable=False, server_default='NONE'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['level_id'], ['quiz_levels.level_id']),
        sa.PrimaryKeyConstraint('game_id'),
        sa.UniqueConstraint('match_code', name='uq_quiz_games_match_code'),
    )
    op.create_index('ix_quiz_games_mode', 'quiz_games', ['mode'])
    op.create_index('ix_quiz_games_level_id', 'quiz_games', ['level_id'])
    op.create_index('ix_quiz_games_settlement_status', 'quiz_games', ['settlement_status'])

    op.create_table(
        'quiz_participants',
        sa.Column('participant_id', uuid_type, nullable=False),
        sa.Column('game_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('seat', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_time_seconds', sa.Float(), nullable=False, server_default='0'),
        sa.Column('answers', sa.JSON(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('is_winner', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payout', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('payout_credited_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['game_id'], ['quiz_games.game_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('participant_id'),
        sa.UniqueConstraint('game_id', 'user_id', name='uq_quiz_participants_game_user'),
        sa.UniqueConstraint('game_id', 'seat', name='uq_quiz_participants_game_seat'),
    )
    op.create_index('ix_quiz_participants_game_id', 'quiz_participants', ['game_id'])
    op.create_index('ix_quiz_participants_user_id', 'quiz_participants', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('notification_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('title', sa.String(120), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('severity', sa.String(10), nullable=False, server_default='INFO'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('notification_id'),
    )
    op.create_index('ix_notifications_user_created', 'notifications', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_notifications_user_created', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_quiz_participants_user_id', table_name='quiz_participants')
    op.drop_index('ix_quiz_participants_game_id', table_name='quiz_participants')
    op.drop_table('quiz_participants')

    op.drop_index('ix_quiz_games_settlement_status', table_name='quiz_games')
    op.drop_index('ix_quiz_games_level_id', table_name='quiz_games')
    op.drop_index('ix_quiz_games_mode', table_name='quiz_games')
    op.drop_table('quiz_games')

    op.drop_index('ix_quiz_questions_level_id', table_name='quiz_questions')
    op.drop_table('quiz_questions')
    op.drop_index('ix_quiz_levels_module_id', table_name='quiz_levels')
    op.drop_table('quiz_levels')
    op.drop_index('ix_quiz_modules_course_id', table_name='quiz_modules')
    op.drop_table('quiz_modules')
    op.drop_table('quiz_courses')

    op.drop_index('ix_ledger_transactions_user_created', table_name='ledger_transactions')
    op.drop_index('ix_ledger_transactions_created_at', table_name='ledger_transactions')
    op.drop_index('ix_ledger_transactions_reference_id', table_name='ledger_transactions')
    op.drop_index('ix_ledger_transactions_kind', table_name='ledger_transactions')
    op.drop_index('ix_ledger_transactions_user_id', table_name='ledger_transactions')
    op.drop_table('ledger_transactions')

    op.drop_table('users')
