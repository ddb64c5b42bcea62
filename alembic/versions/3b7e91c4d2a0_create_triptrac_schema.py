"""create triptrac schema

Revision ID: 3b7e91c4d2a0
Revises:
Create Date: 2026-10-18 09:12:44.201937

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b7e91c4d2a0'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='driver'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('contact_person', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_customers_id', 'customers', ['id'])

    op.create_table(
        'trucks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plate_number', sa.String(), nullable=False),
        sa.Column('model', sa.String(), nullable=False),
        sa.Column('capacity', sa.Float(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('assigned_driver_id', sa.Integer(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_trucks_id', 'trucks', ['id'])
    op.create_index('ix_trucks_plate_number', 'trucks', ['plate_number'], unique=True)

    # Money columns keep their upper-case names, "ROAD TOLLS" included
    op.create_table(
        'trips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('driver_id', sa.Integer(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('truck_id', sa.Integer(), sa.ForeignKey('trucks.id'), nullable=False),
        sa.Column('origin', sa.String(), nullable=False),
        sa.Column('destination', sa.String(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('distance', sa.Float(), nullable=True),
        sa.Column('duration', sa.Float(), nullable=True),
        sa.Column('RATE', sa.Float(), nullable=True),
        sa.Column('FUEL', sa.Float(), nullable=True),
        sa.Column('MILEAGE', sa.Float(), nullable=True),
        sa.Column('SALARY', sa.Float(), nullable=True),
        sa.Column('ROAD TOLLS', sa.Float(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='scheduled'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_trips_id', 'trips', ['id'])
    op.create_index('ix_trips_scheduled_date', 'trips', ['scheduled_date'])
    op.create_index('ix_trips_status', 'trips', ['status'])

    op.create_table(
        'maintenance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('truck_id', sa.Integer(), sa.ForeignKey('trucks.id'), nullable=False),
        sa.Column('trip_id', sa.Integer(), sa.ForeignKey('trips.id'), nullable=True),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('maintenance_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_maintenance_id', 'maintenance', ['id'])
    op.create_index('ix_maintenance_truck_id', 'maintenance', ['truck_id'])
    op.create_index('ix_maintenance_trip_id', 'maintenance', ['trip_id'])

    op.create_table(
        'otp_verifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('otp_code', sa.String(length=6), nullable=False),
        sa.Column('user_data', sa.JSON(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_otp_verifications_id', 'otp_verifications', ['id'])
    op.create_index('ix_otp_verifications_email', 'otp_verifications', ['email'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_table('audit_logs')
    op.drop_table('otp_verifications')
    op.drop_table('maintenance')
    op.drop_table('trips')
    op.drop_table('trucks')
    op.drop_table('customers')
    op.drop_table('profiles')
    op.drop_table('users')
