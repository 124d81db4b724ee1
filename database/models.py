"""
SQLAlchemy models for RentalHub.
Every record belongs to a Business (the tenant root) through business_id.
"""

import random
import time
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime,
    ForeignKey, JSON, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from database.connection import Base


def generate_id(prefix):
    """Generate a sortable string id such as rent_1717243200000_k3j9x2mpq."""
    alphabet = 'abcdefghijklmnopqrstuvwxyz0123456789'
    suffix = ''.join(random.choice(alphabet) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def _iso(value):
    return value.isoformat() if value else None


# =============================================================================
# BUSINESS (tenant root)
# =============================================================================

class Business(Base):
    """A rental company. Owns every other record."""
    __tablename__ = 'businesses'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('biz'))
    name = Column(String(255), nullable=False)
    type = Column(String(50), default='custom')  # heavy_equipment, party_rental, car_rental, tool_rental, custom
    industry = Column(String(255))
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(Text)
    website = Column(String(500))
    description = Column(Text)
    features = Column(JSON, default=list)
    branding = Column(JSON, default=dict)
    custom_fields = Column(JSON, default=list)
    settings = Column(JSON, default=dict)
    web_intelligence = Column(JSON)
    reputation_score = Column(Integer)
    confidence = Column(Integer)
    status = Column(String(20), default='setup')  # active, setup, inactive
    stripe_account_id = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customers = relationship("Customer", back_populates="business", cascade="all, delete-orphan")
    equipment = relationship("Equipment", back_populates="business", cascade="all, delete-orphan")
    rentals = relationship("Rental", back_populates="business", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="business", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="business", cascade="all, delete-orphan")
    staff = relationship("Staff", back_populates="business", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_businesses_status', 'status'),
    )

    @property
    def tax_rate(self):
        """Tenant tax override, or None when the business has not set one."""
        value = (self.settings or {}).get('tax_rate')
        return float(value) if value is not None else None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'industry': self.industry,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'website': self.website,
            'description': self.description,
            'features': self.features or [],
            'branding': self.branding or {},
            'custom_fields': self.custom_fields or [],
            'settings': self.settings or {},
            'web_intelligence': self.web_intelligence,
            'reputation_score': self.reputation_score,
            'confidence': self.confidence,
            'status': self.status,
            'stripe_account_id': self.stripe_account_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# CUSTOMERS
# =============================================================================

class Customer(Base):
    """Renting customers. Email is unique within a business."""
    __tablename__ = 'customers'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('cust'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    name = Column(String(255), nullable=False)
    contact_name = Column(String(255))
    company_name = Column(String(255))
    email = Column(String(255), nullable=False)
    phone = Column(String(50))
    address = Column(Text)
    billing_address = Column(JSON)
    tax_id = Column(String(100))
    driver_license = Column(String(100))
    emergency_contact = Column(JSON, default=dict)
    payment_methods = Column(JSON, default=list)
    payment_terms = Column(String(20), default='net_30')
    credit_limit = Column(Float, default=0)
    status = Column(String(20), default='active')
    notes = Column(Text)
    custom_fields = Column(JSON, default=dict)
    stripe_customer_id = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="customers")
    rentals = relationship("Rental", back_populates="customer", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="customer", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="customer", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('business_id', 'email', name='uq_customers_business_email'),
        Index('ix_customers_business', 'business_id'),
        Index('ix_customers_name', 'name'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'contact_name': self.contact_name,
            'company_name': self.company_name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'billing_address': self.billing_address,
            'tax_id': self.tax_id,
            'driver_license': self.driver_license,
            'emergency_contact': self.emergency_contact or {},
            'payment_methods': self.payment_methods or [],
            'payment_terms': self.payment_terms,
            'credit_limit': self.credit_limit,
            'status': self.status,
            'notes': self.notes,
            'custom_fields': self.custom_fields or {},
            'stripe_customer_id': self.stripe_customer_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# EQUIPMENT & MAINTENANCE
# =============================================================================

class Equipment(Base):
    """Rentable items with daily/weekly/monthly rate tiers."""
    __tablename__ = 'equipment'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('eq'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    make = Column(String(100))
    model = Column(String(100))
    year = Column(Integer)
    serial_number = Column(String(100))
    description = Column(Text)
    condition = Column(String(20), default='good')  # excellent, good, fair, poor
    status = Column(String(20), default='available')  # available, rented, maintenance, inactive
    location = Column(String(255))
    daily_rate = Column(Float, nullable=False, default=0)
    weekly_rate = Column(Float)
    monthly_rate = Column(Float)
    deposit_amount = Column(Float, default=0)
    images = Column(JSON, default=list)
    specifications = Column(JSON, default=dict)
    custom_fields = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="equipment")
    rentals = relationship("Rental", back_populates="equipment", cascade="all, delete-orphan")
    maintenance_records = relationship("MaintenanceRecord", back_populates="equipment",
                                       cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_equipment_business', 'business_id'),
        Index('ix_equipment_status', 'status'),
        Index('ix_equipment_category', 'category'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'category': self.category,
            'make': self.make,
            'model': self.model,
            'year': self.year,
            'serial_number': self.serial_number,
            'description': self.description,
            'condition': self.condition,
            'status': self.status,
            'location': self.location,
            'daily_rate': self.daily_rate,
            'weekly_rate': self.weekly_rate,
            'monthly_rate': self.monthly_rate,
            'deposit_amount': self.deposit_amount,
            'images': self.images or [],
            'specifications': self.specifications or {},
            'custom_fields': self.custom_fields or {},
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class MaintenanceRecord(Base):
    """Service history for a piece of equipment."""
    __tablename__ = 'maintenance_records'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('mnt'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    equipment_id = Column(String(64), ForeignKey('equipment.id'), nullable=False)
    maintenance_type = Column(String(50), default='routine')  # routine, repair, inspection
    description = Column(Text)
    maintenance_date = Column(DateTime, default=datetime.utcnow)
    cost = Column(Float, default=0)
    labor_hours = Column(Float, default=0)
    parts_used = Column(JSON, default=list)
    performed_by = Column(String(255))
    next_maintenance_date = Column(DateTime)
    status = Column(String(20), default='completed')  # scheduled, in_progress, completed
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    equipment = relationship("Equipment", back_populates="maintenance_records")

    __table_args__ = (
        Index('ix_maintenance_equipment', 'equipment_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'equipment_id': self.equipment_id,
            'maintenance_type': self.maintenance_type,
            'description': self.description,
            'maintenance_date': _iso(self.maintenance_date),
            'cost': self.cost,
            'labor_hours': self.labor_hours,
            'parts_used': self.parts_used or [],
            'performed_by': self.performed_by,
            'next_maintenance_date': _iso(self.next_maintenance_date),
            'status': self.status,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# RENTALS
# =============================================================================

class Rental(Base):
    """
    A booking of one Equipment item by one Customer for a date range.
    Status machine: reserved -> active -> completed, cancelled from either.
    """
    __tablename__ = 'rentals'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('rent'))
    rental_number = Column(String(20), nullable=False)
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    customer_id = Column(String(64), ForeignKey('customers.id'), nullable=False)
    equipment_id = Column(String(64), ForeignKey('equipment.id'), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    actual_return_date = Column(DateTime)
    daily_rate = Column(Float, nullable=False)
    total_days = Column(Integer, default=0)
    subtotal = Column(Float, default=0)
    tax_amount = Column(Float, default=0)
    total_amount = Column(Float, default=0)
    deposit_amount = Column(Float, default=0)
    deposit_paid = Column(Boolean, default=False)
    delivery_required = Column(Boolean, default=False)
    delivery_address = Column(Text)
    delivery_fee = Column(Float, default=0)
    pickup_required = Column(Boolean, default=False)
    pickup_fee = Column(Float, default=0)
    status = Column(String(20), default='reserved')
    notes = Column(Text)
    terms_accepted = Column(Boolean, default=False)
    signature_data = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="rentals")
    customer = relationship("Customer", back_populates="rentals")
    equipment = relationship("Equipment", back_populates="rentals")
    invoices = relationship("Invoice", back_populates="rental", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="rental", cascade="all, delete-orphan")
    delivery_schedules = relationship("DeliverySchedule", back_populates="rental",
                                      cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_rentals_business', 'business_id'),
        Index('ix_rentals_equipment_dates', 'equipment_id', 'start_date', 'end_date'),
        Index('ix_rentals_customer', 'customer_id'),
        Index('ix_rentals_status', 'status'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'rental_number': self.rental_number,
            'business_id': self.business_id,
            'customer_id': self.customer_id,
            'equipment_id': self.equipment_id,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'actual_return_date': _iso(self.actual_return_date),
            'daily_rate': self.daily_rate,
            'total_days': self.total_days,
            'subtotal': self.subtotal,
            'tax_amount': self.tax_amount,
            'total_amount': self.total_amount,
            'deposit_amount': self.deposit_amount,
            'deposit_paid': self.deposit_paid,
            'delivery_required': self.delivery_required,
            'delivery_address': self.delivery_address,
            'delivery_fee': self.delivery_fee,
            'pickup_required': self.pickup_required,
            'pickup_fee': self.pickup_fee,
            'status': self.status,
            'notes': self.notes,
            'terms_accepted': self.terms_accepted,
            'signature_data': self.signature_data,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class DeliverySchedule(Base):
    """A delivery or pickup run for a rental, with driver capture data."""
    __tablename__ = 'delivery_schedules'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('dlv'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    rental_id = Column(String(64), ForeignKey('rentals.id'), nullable=False)
    type = Column(String(20), nullable=False)  # delivery, pickup
    scheduled_date = Column(DateTime, nullable=False)
    actual_date = Column(DateTime)
    address = Column(Text)
    contact_person = Column(String(255))
    contact_phone = Column(String(50))
    driver_id = Column(String(64), ForeignKey('staff.id'))
    signature_data = Column(Text)
    photos = Column(JSON, default=list)
    vehicle_info = Column(JSON, default=dict)
    status = Column(String(20), default='scheduled')  # scheduled, in_transit, completed, cancelled
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    rental = relationship("Rental", back_populates="delivery_schedules")
    driver = relationship("Staff", back_populates="deliveries")

    __table_args__ = (
        Index('ix_deliveries_rental', 'rental_id'),
        Index('ix_deliveries_scheduled', 'scheduled_date'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'rental_id': self.rental_id,
            'type': self.type,
            'scheduled_date': _iso(self.scheduled_date),
            'actual_date': _iso(self.actual_date),
            'address': self.address,
            'contact_person': self.contact_person,
            'contact_phone': self.contact_phone,
            'driver_id': self.driver_id,
            'signature_data': self.signature_data,
            'photos': self.photos or [],
            'vehicle_info': self.vehicle_info or {},
            'status': self.status,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# BILLING
# =============================================================================

class Invoice(Base):
    """Invoices generated from rentals (rental, deposit or final)."""
    __tablename__ = 'invoices'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('inv'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    customer_id = Column(String(64), ForeignKey('customers.id'), nullable=False)
    rental_id = Column(String(64), ForeignKey('rentals.id'))
    invoice_number = Column(String(50), nullable=False)
    invoice_type = Column(String(20), default='rental')  # rental, deposit, final
    subtotal = Column(Float, default=0)
    tax_amount = Column(Float, default=0)
    amount = Column(Float, default=0)
    due_date = Column(DateTime)
    status = Column(String(20), default='draft')  # draft, sent, paid, void
    line_items = Column(JSON, default=list)
    notes = Column(Text)
    html = Column(Text)
    paid_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="invoices")
    customer = relationship("Customer", back_populates="invoices")
    rental = relationship("Rental", back_populates="invoices")
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint('business_id', 'invoice_number', name='uq_invoices_business_number'),
        Index('ix_invoices_business', 'business_id'),
    )

    def to_dict(self, include_html=False):
        data = {
            'id': self.id,
            'business_id': self.business_id,
            'customer_id': self.customer_id,
            'rental_id': self.rental_id,
            'invoice_number': self.invoice_number,
            'invoice_type': self.invoice_type,
            'subtotal': self.subtotal,
            'tax_amount': self.tax_amount,
            'amount': self.amount,
            'due_date': self.due_date.date().isoformat() if self.due_date else None,
            'status': self.status,
            'line_items': self.line_items or [],
            'notes': self.notes,
            'paid_at': _iso(self.paid_at),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
        if include_html:
            data['html'] = self.html
        return data


class Payment(Base):
    """Mirrors a Stripe PaymentIntent (pending, succeeded, failed)."""
    __tablename__ = 'payments'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('pay'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    customer_id = Column(String(64), ForeignKey('customers.id'), nullable=False)
    rental_id = Column(String(64), ForeignKey('rentals.id'))
    invoice_id = Column(String(64), ForeignKey('invoices.id'))
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default='usd')
    payment_type = Column(String(20), default='rental')  # deposit, rental, final, other
    status = Column(String(20), default='pending')
    stripe_payment_intent_id = Column(String(255))
    application_fee = Column(Integer, default=0)  # cents
    failure_reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="payments")
    customer = relationship("Customer", back_populates="payments")
    rental = relationship("Rental", back_populates="payments")
    invoice = relationship("Invoice", back_populates="payments")

    __table_args__ = (
        Index('ix_payments_business', 'business_id'),
        Index('ix_payments_intent', 'stripe_payment_intent_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'customer_id': self.customer_id,
            'rental_id': self.rental_id,
            'invoice_id': self.invoice_id,
            'amount': self.amount,
            'currency': self.currency,
            'payment_type': self.payment_type,
            'status': self.status,
            'stripe_payment_intent_id': self.stripe_payment_intent_id,
            'application_fee': self.application_fee,
            'failure_reason': self.failure_reason,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


# =============================================================================
# STAFF
# =============================================================================

class Staff(Base):
    """Employees, including delivery drivers."""
    __tablename__ = 'staff'

    id = Column(String(64), primary_key=True, default=lambda: generate_id('staff'))
    business_id = Column(String(64), ForeignKey('businesses.id'), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(50), default='staff')  # owner, manager, driver, staff
    phone = Column(String(50))
    permissions = Column(JSON, default=list)
    status = Column(String(20), default='active')
    hire_date = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="staff")
    deliveries = relationship("DeliverySchedule", back_populates="driver")

    __table_args__ = (
        Index('ix_staff_business', 'business_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'business_id': self.business_id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'phone': self.phone,
            'permissions': self.permissions or [],
            'status': self.status,
            'hire_date': _iso(self.hire_date),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
