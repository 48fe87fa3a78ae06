"""create account, users, game_state, answers and buzzer_responses

Revision ID: 4c7a9e2d1b60
Revises:
Create Date: 2025-10-04 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a9e2d1b60'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'account',
        sa.Column('uid', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('uid'),
    )
    with op.batch_alter_table('account') as batch_op:
        batch_op.create_index(batch_op.f('ix_account_email'), ['email'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uid', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('team_name', sa.String(length=128), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('round1_score', sa.Integer(), nullable=False),
        sa.Column('round2_score', sa.Integer(), nullable=False),
        sa.Column('total_score', sa.Integer(), nullable=False),
        sa.Column('round1_rank', sa.Integer(), nullable=True),
        sa.Column('round2_rank', sa.Integer(), nullable=True),
        sa.Column('final_rank', sa.Integer(), nullable=True),
        sa.Column('qualified', sa.Boolean(), nullable=False),
        sa.Column('round1_completed', sa.Boolean(), nullable=False),
        sa.Column('round1_answers', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('last_active', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('users') as batch_op:
        batch_op.create_index(batch_op.f('ix_users_uid'), ['uid'], unique=True)
        batch_op.create_index(batch_op.f('ix_users_is_admin'), ['is_admin'], unique=False)

    op.create_table(
        'game_state',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('current_round', sa.Integer(), nullable=False),
        sa.Column('round1_active', sa.Boolean(), nullable=False),
        sa.Column('round2_active', sa.Boolean(), nullable=False),
        sa.Column('game_started', sa.Boolean(), nullable=False),
        sa.Column('game_ended', sa.Boolean(), nullable=False),
        sa.Column('current_question', sa.Integer(), nullable=False),
        sa.Column('round1_total_questions', sa.Integer(), nullable=False),
        sa.Column('round2_total_questions', sa.Integer(), nullable=False),
        sa.Column('timer_active', sa.Boolean(), nullable=False),
        sa.Column('timer_start_time', sa.BigInteger(), nullable=True),
        sa.Column('timer_duration', sa.Integer(), nullable=False),
        sa.Column('time_remaining', sa.Integer(), nullable=True),
        sa.Column('round2_question_active', sa.Boolean(), nullable=False),
        sa.Column('round2_buzzer_active', sa.Boolean(), nullable=False),
        sa.Column('buzzer_start_time', sa.BigInteger(), nullable=True),
        sa.Column('qualified_count', sa.Integer(), nullable=False),
        sa.Column('admin_uid', sa.String(length=36), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('question_number', sa.Integer(), nullable=False),
        sa.Column('answer', sa.String(length=255), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.uid']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('answers') as batch_op:
        batch_op.create_index(batch_op.f('ix_answers_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_answers_round_number'), ['round_number'], unique=False)

    op.create_table(
        'buzzer_responses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('question_number', sa.Integer(), nullable=False),
        sa.Column('response_time', sa.Integer(), nullable=False),
        sa.Column('scored', sa.Boolean(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('scored_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.uid']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'question_number', name='uq_buzzer_user_question'),
    )
    with op.batch_alter_table('buzzer_responses') as batch_op:
        batch_op.create_index(batch_op.f('ix_buzzer_responses_question_number'), ['question_number'], unique=False)


def downgrade():
    with op.batch_alter_table('buzzer_responses') as batch_op:
        batch_op.drop_index(batch_op.f('ix_buzzer_responses_question_number'))
    op.drop_table('buzzer_responses')

    with op.batch_alter_table('answers') as batch_op:
        batch_op.drop_index(batch_op.f('ix_answers_round_number'))
        batch_op.drop_index(batch_op.f('ix_answers_user_id'))
    op.drop_table('answers')

    op.drop_table('game_state')

    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_index(batch_op.f('ix_users_is_admin'))
        batch_op.drop_index(batch_op.f('ix_users_uid'))
    op.drop_table('users')

    with op.batch_alter_table('account') as batch_op:
        batch_op.drop_index(batch_op.f('ix_account_email'))
    op.drop_table('account')
