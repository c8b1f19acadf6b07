"""Initial schema: interviews, calls, question answers and analytics snapshots

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-17 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'interviews',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('analytics_state', sa.String(length=20), nullable=False, server_default='dirty'),
        sa.Column('analytics_generation', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('analytics_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_interviews_analytics_state', 'interviews', ['analytics_state'])

    op.create_table(
        'calls',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('interview_id', sa.Integer(), sa.ForeignKey('interviews.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('transcript', sa.Text(), nullable=False),
        sa.Column('analysis', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'question_answers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('interview_id', sa.Integer(), sa.ForeignKey('interviews.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('full_answer', sa.Text(), nullable=False, server_default=''),
        sa.Column('accuracy', sa.Float(), nullable=False, server_default='0'),
        sa.Column('reason_unanswered', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_question_answers_interview_id', 'question_answers', ['interview_id'])

    op.create_table(
        'interview_analytics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('interview_id', sa.Integer(), sa.ForeignKey('interviews.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('answered_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unanswered_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('answered_percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('unanswered_percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average_accuracy', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average_answered_accuracy', sa.Float(), nullable=False, server_default='0'),
        sa.Column('high_confidence_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('medium_confidence_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('low_confidence_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('questions_with_reason', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('accuracy_sum', sa.Float(), nullable=False, server_default='0'),
        sa.Column('answered_accuracy_sum', sa.Float(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_interview_analytics_updated_at', 'interview_analytics', ['updated_at'])

    op.create_table(
        'global_analytics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('total_interviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_questions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_answered', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_unanswered', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('global_answered_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('global_average_accuracy', sa.Float(), nullable=False, server_default='0'),
        sa.Column('global_answered_accuracy', sa.Float(), nullable=False, server_default='0'),
        sa.Column('best_interview_id', sa.Integer(), nullable=True),
        sa.Column('best_interview_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('worst_interview_id', sa.Integer(), nullable=True),
        sa.Column('worst_interview_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.Column('change_seq', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('published_seq', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade() -> None:
    op.drop_table('global_analytics')
    op.drop_index('ix_interview_analytics_updated_at', table_name='interview_analytics')
    op.drop_table('interview_analytics')
    op.drop_index('ix_question_answers_interview_id', table_name='question_answers')
    op.drop_table('question_answers')
    op.drop_table('calls')
    op.drop_index('ix_interviews_analytics_state', table_name='interviews')
    op.drop_table('interviews')
