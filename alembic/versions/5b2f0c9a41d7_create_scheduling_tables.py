"""create scheduling tables

Revision ID: 5b2f0c9a41d7
Revises:
Create Date: 2026-10-19 09:12:44.501233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5b2f0c9a41d7'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # 1. Users (provisioned by the auth service)
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2. Businesses and memberships
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('owner_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('timezone', sa.String(50), server_default='UTC'),
        sa.Column('webhook_urls', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'))
    )
    op.create_index('ix_businesses_owner_user_id', 'businesses', ['owner_user_id'])

    op.create_table(
        'user_businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.Enum('owner', 'admin', 'guest', name='businessrole'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('idx_user_businesses_user', 'user_businesses', ['user_id'])

    # 3. Calendars
    op.create_table(
        'appointment_calendars',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('owner_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('appointment_type', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location_type', sa.String(20), nullable=False, server_default='virtual'),
        sa.Column('location_details', sa.Text(), nullable=True),
        sa.Column('virtual_meeting_preference', sa.String(200), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('buffer_before_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('buffer_after_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('booking_window_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('min_schedule_notice_minutes', sa.Integer(), nullable=False, server_default='120'),
        sa.Column('requires_confirmation', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('google_calendar_sync', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('share_id', sa.String(32), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint('duration_minutes > 0', name='ck_calendar_duration_positive'),
        sa.CheckConstraint(
            'buffer_before_minutes >= 0 AND buffer_after_minutes >= 0',
            name='ck_calendar_buffers_non_negative'
        ),
        sa.CheckConstraint('booking_window_days > 0', name='ck_calendar_window_positive'),
        sa.CheckConstraint('min_schedule_notice_minutes >= 0', name='ck_calendar_notice_non_negative'),
        sa.CheckConstraint(
            "location_type IN ('in_person', 'virtual', 'phone', 'custom')",
            name='ck_calendar_location_type'
        ),
        sa.CheckConstraint("status IN ('active', 'inactive')", name='ck_calendar_status')
    )
    op.create_index('ix_appointment_calendars_business_id', 'appointment_calendars', ['business_id'])
    op.create_index('ix_appointment_calendars_share_id', 'appointment_calendars', ['share_id'], unique=True)

    # 4. Availability rules
    op.create_table(
        'appointment_availability_rules',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'calendar_id', sa.Uuid(),
            sa.ForeignKey('appointment_calendars.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('rule_type', sa.String(10), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('specific_date', sa.Date(), nullable=True),
        sa.Column('start_minutes', sa.Integer(), nullable=False),
        sa.Column('end_minutes', sa.Integer(), nullable=False),
        sa.Column('is_unavailable', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.CheckConstraint("rule_type IN ('weekly', 'date')", name='ck_rule_type'),
        sa.CheckConstraint(
            "(rule_type = 'weekly' AND day_of_week IS NOT NULL AND specific_date IS NULL) OR "
            "(rule_type = 'date' AND specific_date IS NOT NULL AND day_of_week IS NULL)",
            name='ck_rule_kind_fields'
        ),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_rule_day_of_week'),
        sa.CheckConstraint(
            'start_minutes >= 0 AND end_minutes <= 1440 AND start_minutes < end_minutes',
            name='ck_rule_minutes'
        )
    )
    op.create_index(
        'ix_appointment_availability_rules_calendar_id', 'appointment_availability_rules', ['calendar_id']
    )

    # 5. Bookings
    op.create_table(
        'appointment_bookings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'calendar_id', sa.Uuid(),
            sa.ForeignKey('appointment_calendars.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('created_by_user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('guest_name', sa.String(200), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=False),
        sa.Column('guest_timezone', sa.String(64), nullable=True),
        sa.Column('guest_notes', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('meeting_url', sa.String(500), nullable=True),
        sa.Column('meeting_location', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint('end_time > start_time', name='ck_booking_interval'),
        sa.CheckConstraint(
            "status IN ('pending', 'scheduled', 'cancelled', 'completed')",
            name='booking_status'
        )
    )
    op.create_index('ix_appointment_bookings_calendar_id', 'appointment_bookings', ['calendar_id'])
    op.create_index('idx_appointment_bookings_start', 'appointment_bookings', ['calendar_id', 'start_time'])

    # No two pending/scheduled bookings of one calendar may overlap
    op.execute(
        "ALTER TABLE appointment_bookings ADD CONSTRAINT appointment_bookings_no_overlap "
        "EXCLUDE USING gist (calendar_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status IN ('pending', 'scheduled'))"
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('appointment_bookings')
    op.drop_table('appointment_availability_rules')
    op.drop_table('appointment_calendars')
    op.drop_table('user_businesses')
    op.drop_table('businesses')
    op.drop_table('users')
    sa.Enum(name='businessrole').drop(op.get_bind(), checkfirst=True)
