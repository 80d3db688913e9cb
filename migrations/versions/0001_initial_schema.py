"""initial schema: users, vehicles, customers, rentals, maintenances

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _common_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        *_common_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'vehicles',
        *_common_columns(),
        sa.Column('license_plate', sa.String(length=10), nullable=False),
        sa.Column('brand', sa.String(length=50), nullable=False),
        sa.Column('model', sa.String(length=50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(length=30), nullable=False),
        sa.Column('vin', sa.String(length=17), nullable=True),
        sa.Column('vehicle_type', sa.String(length=20), nullable=False),
        sa.Column('fuel_type', sa.String(length=20), nullable=False),
        sa.Column('transmission', sa.String(length=20), nullable=False),
        sa.Column('seats', sa.Integer(), nullable=False),
        sa.Column('daily_rate', sa.Numeric(10, 2), nullable=False),
        sa.Column('current_mileage', sa.Integer(), nullable=False),
        sa.Column('last_maintenance_mileage', sa.Integer(), nullable=False),
        sa.Column('next_maintenance_mileage', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('insurance_expiry', sa.Date(), nullable=True),
        sa.Column('registration_expiry', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('vin'),
    )
    op.create_index('ix_vehicles_id', 'vehicles', ['id'])
    op.create_index('ix_vehicles_license_plate', 'vehicles', ['license_plate'], unique=True)
    op.create_index('ix_vehicles_brand', 'vehicles', ['brand'])
    op.create_index('ix_vehicles_vehicle_type', 'vehicles', ['vehicle_type'])
    op.create_index('ix_vehicles_status', 'vehicles', ['status'])

    op.create_table(
        'customers',
        *_common_columns(),
        sa.Column('first_name', sa.String(length=50), nullable=False),
        sa.Column('last_name', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('document_type', sa.String(length=20), nullable=False),
        sa.Column('document_number', sa.String(length=20), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('city', sa.String(length=50), nullable=False),
        sa.Column('country', sa.String(length=50), nullable=False),
        sa.Column('driver_license_number', sa.String(length=20), nullable=False),
        sa.Column('driver_license_expiry', sa.Date(), nullable=False),
        sa.Column('emergency_contact_name', sa.String(length=100), nullable=True),
        sa.Column('emergency_contact_phone', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('driver_license_number'),
    )
    op.create_index('ix_customers_id', 'customers', ['id'])
    op.create_index('ix_customers_email', 'customers', ['email'], unique=True)
    op.create_index('ix_customers_document_number', 'customers', ['document_number'], unique=True)

    op.create_table(
        'rentals',
        *_common_columns(),
        sa.Column('rental_number', sa.String(length=30), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('actual_return_date', sa.DateTime(), nullable=True),
        sa.Column('pickup_location', sa.String(length=200), nullable=False),
        sa.Column('return_location', sa.String(length=200), nullable=False),
        sa.Column('daily_rate', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(10, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('additional_charges', sa.Numeric(10, 2), nullable=False),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('deposit_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('rental_status', sa.String(length=20), nullable=False),
        sa.Column('pickup_mileage', sa.Integer(), nullable=True),
        sa.Column('return_mileage', sa.Integer(), nullable=True),
        sa.Column('fuel_level_pickup', sa.String(length=20), nullable=False),
        sa.Column('fuel_level_return', sa.String(length=20), nullable=True),
        sa.Column('damage_notes_pickup', sa.Text(), nullable=True),
        sa.Column('damage_notes_return', sa.Text(), nullable=True),
        sa.Column('additional_notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_rentals_id', 'rentals', ['id'])
    op.create_index('ix_rentals_rental_number', 'rentals', ['rental_number'], unique=True)
    op.create_index('ix_rentals_customer_id', 'rentals', ['customer_id'])
    op.create_index('ix_rentals_vehicle_id', 'rentals', ['vehicle_id'])
    op.create_index('ix_rentals_rental_status', 'rentals', ['rental_status'])
    op.create_index('ix_rentals_vehicle_period', 'rentals', ['vehicle_id', 'start_date', 'end_date'])

    op.create_table(
        'maintenances',
        *_common_columns(),
        sa.Column('maintenance_number', sa.String(length=30), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('maintenance_type', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('completed_date', sa.DateTime(), nullable=True),
        sa.Column('mileage_at_maintenance', sa.Integer(), nullable=True),
        sa.Column('estimated_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('actual_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('labor_hours', sa.Numeric(5, 2), nullable=True),
        sa.Column('labor_cost', sa.Numeric(10, 2), nullable=True),
        sa.Column('parts_replaced', sa.JSON(), nullable=True),
        sa.Column('service_provider', sa.String(length=100), nullable=True),
        sa.Column('service_provider_contact', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('next_maintenance_mileage', sa.Integer(), nullable=True),
        sa.Column('next_maintenance_date', sa.Date(), nullable=True),
        sa.Column('warranty_expiry', sa.Date(), nullable=True),
        sa.Column('invoice_number', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_maintenances_id', 'maintenances', ['id'])
    op.create_index('ix_maintenances_maintenance_number', 'maintenances', ['maintenance_number'], unique=True)
    op.create_index('ix_maintenances_vehicle_id', 'maintenances', ['vehicle_id'])
    op.create_index('ix_maintenances_status', 'maintenances', ['status'])


def downgrade() -> None:
    op.drop_table('maintenances')
    op.drop_table('rentals')
    op.drop_table('customers')
    op.drop_table('vehicles')
    op.drop_table('users')
