"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

Creates the RentalHub tables: businesses and everything they own.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Businesses (tenant root)
    op.create_table('businesses',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(50), server_default='custom'),
        sa.Column('industry', sa.String(255)),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text()),
        sa.Column('website', sa.String(500)),
        sa.Column('description', sa.Text()),
        sa.Column('features', sa.JSON()),
        sa.Column('branding', sa.JSON()),
        sa.Column('custom_fields', sa.JSON()),
        sa.Column('settings', sa.JSON()),
        sa.Column('web_intelligence', sa.JSON()),
        sa.Column('reputation_score', sa.Integer()),
        sa.Column('confidence', sa.Integer()),
        sa.Column('status', sa.String(20), server_default='setup'),
        sa.Column('stripe_account_id', sa.String(255)),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_businesses_status', 'businesses', ['status'])

    # Staff (drivers are referenced by delivery schedules)
    op.create_table('staff',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), server_default='staff'),
        sa.Column('phone', sa.String(50)),
        sa.Column('permissions', sa.JSON()),
        sa.Column('status', sa.String(20), server_default='active'),
        sa.Column('hire_date', sa.DateTime()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_staff_business', 'staff', ['business_id'])

    # Customers
    op.create_table('customers',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('contact_name', sa.String(255)),
        sa.Column('company_name', sa.String(255)),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text()),
        sa.Column('billing_address', sa.JSON()),
        sa.Column('tax_id', sa.String(100)),
        sa.Column('driver_license', sa.String(100)),
        sa.Column('emergency_contact', sa.JSON()),
        sa.Column('payment_methods', sa.JSON()),
        sa.Column('payment_terms', sa.String(20), server_default='net_30'),
        sa.Column('credit_limit', sa.Float(), server_default='0'),
        sa.Column('status', sa.String(20), server_default='active'),
        sa.Column('notes', sa.Text()),
        sa.Column('custom_fields', sa.JSON()),
        sa.Column('stripe_customer_id', sa.String(255)),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'email', name='uq_customers_business_email')
    )
    op.create_index('ix_customers_business', 'customers', ['business_id'])
    op.create_index('ix_customers_name', 'customers', ['name'])

    # Equipment
    op.create_table('equipment',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('make', sa.String(100)),
        sa.Column('model', sa.String(100)),
        sa.Column('year', sa.Integer()),
        sa.Column('serial_number', sa.String(100)),
        sa.Column('description', sa.Text()),
        sa.Column('condition', sa.String(20), server_default='good'),
        sa.Column('status', sa.String(20), server_default='available'),
        sa.Column('location', sa.String(255)),
        sa.Column('daily_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('weekly_rate', sa.Float()),
        sa.Column('monthly_rate', sa.Float()),
        sa.Column('deposit_amount', sa.Float(), server_default='0'),
        sa.Column('images', sa.JSON()),
        sa.Column('specifications', sa.JSON()),
        sa.Column('custom_fields', sa.JSON()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_equipment_business', 'equipment', ['business_id'])
    op.create_index('ix_equipment_status', 'equipment', ['status'])
    op.create_index('ix_equipment_category', 'equipment', ['category'])

    # Maintenance records
    op.create_table('maintenance_records',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('equipment_id', sa.String(64), nullable=False),
        sa.Column('maintenance_type', sa.String(50), server_default='routine'),
        sa.Column('description', sa.Text()),
        sa.Column('maintenance_date', sa.DateTime()),
        sa.Column('cost', sa.Float(), server_default='0'),
        sa.Column('labor_hours', sa.Float(), server_default='0'),
        sa.Column('parts_used', sa.JSON()),
        sa.Column('performed_by', sa.String(255)),
        sa.Column('next_maintenance_date', sa.DateTime()),
        sa.Column('status', sa.String(20), server_default='completed'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_maintenance_equipment', 'maintenance_records', ['equipment_id'])

    # Rentals
    op.create_table('rentals',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('rental_number', sa.String(20), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('equipment_id', sa.String(64), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('actual_return_date', sa.DateTime()),
        sa.Column('daily_rate', sa.Float(), nullable=False),
        sa.Column('total_days', sa.Integer(), server_default='0'),
        sa.Column('subtotal', sa.Float(), server_default='0'),
        sa.Column('tax_amount', sa.Float(), server_default='0'),
        sa.Column('total_amount', sa.Float(), server_default='0'),
        sa.Column('deposit_amount', sa.Float(), server_default='0'),
        sa.Column('deposit_paid', sa.Boolean(), server_default=sa.false()),
        sa.Column('delivery_required', sa.Boolean(), server_default=sa.false()),
        sa.Column('delivery_address', sa.Text()),
        sa.Column('delivery_fee', sa.Float(), server_default='0'),
        sa.Column('pickup_required', sa.Boolean(), server_default=sa.false()),
        sa.Column('pickup_fee', sa.Float(), server_default='0'),
        sa.Column('status', sa.String(20), server_default='reserved'),
        sa.Column('notes', sa.Text()),
        sa.Column('terms_accepted', sa.Boolean(), server_default=sa.false()),
        sa.Column('signature_data', sa.Text()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_rentals_business', 'rentals', ['business_id'])
    op.create_index('ix_rentals_equipment_dates', 'rentals', ['equipment_id', 'start_date', 'end_date'])
    op.create_index('ix_rentals_customer', 'rentals', ['customer_id'])
    op.create_index('ix_rentals_status', 'rentals', ['status'])

    # Delivery schedules
    op.create_table('delivery_schedules',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('rental_id', sa.String(64), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('actual_date', sa.DateTime()),
        sa.Column('address', sa.Text()),
        sa.Column('contact_person', sa.String(255)),
        sa.Column('contact_phone', sa.String(50)),
        sa.Column('driver_id', sa.String(64)),
        sa.Column('signature_data', sa.Text()),
        sa.Column('photos', sa.JSON()),
        sa.Column('vehicle_info', sa.JSON()),
        sa.Column('status', sa.String(20), server_default='scheduled'),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['rental_id'], ['rentals.id']),
        sa.ForeignKeyConstraint(['driver_id'], ['staff.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_deliveries_rental', 'delivery_schedules', ['rental_id'])
    op.create_index('ix_deliveries_scheduled', 'delivery_schedules', ['scheduled_date'])

    # Invoices
    op.create_table('invoices',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('rental_id', sa.String(64)),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column('invoice_type', sa.String(20), server_default='rental'),
        sa.Column('subtotal', sa.Float(), server_default='0'),
        sa.Column('tax_amount', sa.Float(), server_default='0'),
        sa.Column('amount', sa.Float(), server_default='0'),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('status', sa.String(20), server_default='draft'),
        sa.Column('line_items', sa.JSON()),
        sa.Column('notes', sa.Text()),
        sa.Column('html', sa.Text()),
        sa.Column('paid_at', sa.DateTime()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['rental_id'], ['rentals.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'invoice_number', name='uq_invoices_business_number')
    )
    op.create_index('ix_invoices_business', 'invoices', ['business_id'])

    # Payments
    op.create_table('payments',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('business_id', sa.String(64), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('rental_id', sa.String(64)),
        sa.Column('invoice_id', sa.String(64)),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency', sa.String(3), server_default='usd'),
        sa.Column('payment_type', sa.String(20), server_default='rental'),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('stripe_payment_intent_id', sa.String(255)),
        sa.Column('application_fee', sa.Integer(), server_default='0'),
        sa.Column('failure_reason', sa.Text()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['rental_id'], ['rentals.id']),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payments_business', 'payments', ['business_id'])
    op.create_index('ix_payments_intent', 'payments', ['stripe_payment_intent_id'])


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_table('invoices')
    op.drop_table('delivery_schedules')
    op.drop_table('rentals')
    op.drop_table('maintenance_records')
    op.drop_table('equipment')
    op.drop_table('customers')
    op.drop_table('staff')
    op.drop_table('businesses')
