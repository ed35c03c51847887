"""initial schema

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Accounts
    op.create_table('users',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('password_hash', sa.String(length=255), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('role', sa.String(length=10), nullable=False),
    sa.Column('tech_comfort_level', sa.String(length=20), nullable=True),
    sa.Column('college', sa.String(length=255), nullable=True),
    sa.Column('major', sa.String(length=255), nullable=True),
    sa.Column('bio', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint("role IN ('tutee', 'tutor')", name='ck_users_role'),
    sa.CheckConstraint(
        "tech_comfort_level IN ('beginner', 'intermediate', 'advanced')",
        name='ck_users_tech_comfort_level'
    ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_role', 'users', ['role'], unique=False)

    op.create_table('tutor_profiles',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('age', sa.Integer(), nullable=True),
    sa.Column('industry', sa.String(length=100), nullable=True),
    sa.Column('specialties', sa.JSON(), nullable=False),
    sa.Column('tutoring_style', sa.Text(), nullable=True),
    sa.Column('availability_hours', sa.String(length=255), nullable=True),
    sa.Column('experience_years', sa.Integer(), nullable=False),
    sa.Column('total_sessions', sa.Integer(), nullable=False),
    sa.Column('average_rating', sa.Float(), nullable=False),
    sa.Column('total_reviews', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id')
    )

    # Reading library
    op.create_table('readings',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('summary', sa.Text(), nullable=False),
    sa.Column('content', sa.Text(), nullable=False),
    sa.Column('difficulty_level', sa.String(length=10), nullable=False),
    sa.Column('topic_tags', sa.String(length=255), nullable=True),
    sa.Column('discussion_questions', sa.JSON(), nullable=False),
    sa.Column('featured_image', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint("difficulty_level IN ('easy', 'medium', 'hard')", name='ck_readings_difficulty'),
    sa.PrimaryKeyConstraint('id')
    )

    # Tutor availability
    op.create_table('availability_windows',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('tutor_id', sa.Integer(), nullable=False),
    sa.Column('day_of_week', sa.Integer(), nullable=True),
    sa.Column('date', sa.Date(), nullable=True),
    sa.Column('start_time', sa.String(length=5), nullable=False),
    sa.Column('end_time', sa.String(length=5), nullable=False),
    sa.Column('topics', sa.String(length=500), nullable=True),
    sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column('recurring_pattern', sa.String(length=10), nullable=True),
    sa.Column('recurring_end_date', sa.Date(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_availability_day_of_week'),
    sa.CheckConstraint('(day_of_week IS NULL) <> (date IS NULL)', name='ck_availability_day_or_date'),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_availability_tutor_day', 'availability_windows', ['tutor_id', 'day_of_week'], unique=False)
    op.create_index('idx_availability_tutor_date', 'availability_windows', ['tutor_id', 'date'], unique=False)

    # Sessions
    op.create_table('sessions',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('tutee_id', sa.Integer(), nullable=False),
    sa.Column('tutor_id', sa.Integer(), nullable=False),
    sa.Column('reading_id', sa.Integer(), nullable=False),
    sa.Column('session_date', sa.DateTime(), nullable=False),
    sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='20'),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
    sa.Column('chat_room_id', sa.String(length=36), nullable=True),
    sa.Column('request_expires_at', sa.DateTime(), nullable=True),
    sa.Column('meeting_id', sa.String(length=100), nullable=True),
    sa.Column('meeting_join_url', sa.String(length=500), nullable=True),
    sa.Column('meeting_start_url', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('duration_minutes IN (20, 40)', name='ck_sessions_duration'),
    sa.CheckConstraint(
        "status IN ('pending', 'scheduled', 'declined', 'completed', 'cancelled', 'expired')",
        name='ck_sessions_status'
    ),
    sa.ForeignKeyConstraint(['tutee_id'], ['users.id']),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id']),
    sa.ForeignKeyConstraint(['reading_id'], ['readings.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_sessions_tutor_date', 'sessions', ['tutor_id', 'session_date'], unique=False)
    op.create_index('idx_sessions_tutee', 'sessions', ['tutee_id'], unique=False)
    op.create_index('idx_sessions_status_expiry', 'sessions', ['status', 'request_expires_at'], unique=False)

    # Session workspace
    op.create_table('discussion_answers',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('session_id', sa.Integer(), nullable=False),
    sa.Column('reading_id', sa.Integer(), nullable=False),
    sa.Column('tutee_id', sa.Integer(), nullable=False),
    sa.Column('question_index', sa.Integer(), nullable=False),
    sa.Column('answer', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['reading_id'], ['readings.id']),
    sa.ForeignKeyConstraint(['tutee_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'reading_id', 'tutee_id', 'question_index', name='uq_discussion_answers_key')
    )
    op.create_index('idx_discussion_answers_session', 'discussion_answers', ['session_id'], unique=False)

    op.create_table('session_notes',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('session_id', sa.Integer(), nullable=False),
    sa.Column('tutor_notes', sa.Text(), nullable=True),
    sa.Column('discussion_notes', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id')
    )

    # Ratings
    op.create_table('feedback',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('session_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('rating', sa.Integer(), nullable=False),
    sa.Column('comments', sa.Text(), nullable=True),
    sa.Column('what_learned', sa.Text(), nullable=True),
    sa.Column('follow_up_resources', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_feedback_rating'),
    sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'user_id', name='uq_feedback_session_user')
    )
    op.create_index('idx_feedback_user', 'feedback', ['user_id'], unique=False)

    op.create_table('tutor_reviews',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('tutor_id', sa.Integer(), nullable=False),
    sa.Column('reviewer_id', sa.Integer(), nullable=False),
    sa.Column('session_id', sa.Integer(), nullable=True),
    sa.Column('rating', sa.Integer(), nullable=False),
    sa.Column('comment', sa.Text(), nullable=True),
    sa.Column('session_topic', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_tutor_reviews_rating'),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id']),
    sa.ForeignKeyConstraint(['reviewer_id'], ['users.id']),
    sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_tutor_reviews_tutor', 'tutor_reviews', ['tutor_id'], unique=False)

    # Public contact requests
    op.create_table('contact_requests',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('tutor_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('phone', sa.String(length=50), nullable=False),
    sa.Column('preferred_topics', sa.String(length=500), nullable=False),
    sa.Column('message', sa.Text(), nullable=False, server_default=''),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint(
        "status IN ('pending', 'contacted', 'scheduled', 'completed')",
        name='ck_contact_requests_status'
    ),
    sa.ForeignKeyConstraint(['tutor_id'], ['users.id']),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_contact_requests_tutor', 'contact_requests', ['tutor_id'], unique=False)


def downgrade() -> None:
    # Drop in reverse dependency order
    op.drop_index('idx_contact_requests_tutor', table_name='contact_requests')
    op.drop_table('contact_requests')
    op.drop_index('idx_tutor_reviews_tutor', table_name='tutor_reviews')
    op.drop_table('tutor_reviews')
    op.drop_index('idx_feedback_user', table_name='feedback')
    op.drop_table('feedback')
    op.drop_table('session_notes')
    op.drop_index('idx_discussion_answers_session', table_name='discussion_answers')
    op.drop_table('discussion_answers')
    op.drop_index('idx_sessions_status_expiry', table_name='sessions')
    op.drop_index('idx_sessions_tutee', table_name='sessions')
    op.drop_index('idx_sessions_tutor_date', table_name='sessions')
    op.drop_table('sessions')
    op.drop_index('idx_availability_tutor_date', table_name='availability_windows')
    op.drop_index('idx_availability_tutor_day', table_name='availability_windows')
    op.drop_table('availability_windows')
    op.drop_table('readings')
    op.drop_table('tutor_profiles')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
