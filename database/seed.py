"""
Sample data for new businesses.
Creates starter equipment, two customers and one reserved rental so the
dashboard has something to show right after onboarding.
"""

import logging
from datetime import datetime, timedelta

from database.connection import get_db_session, init_db, init_engine
from database.models import Business, Customer, Equipment, Rental
from services import pricing
from services.business_types import SAMPLE_CUSTOMERS, sample_equipment_for
from services.rental_repository import generate_rental_number

logger = logging.getLogger(__name__)

DEMO_BUSINESS_NAME = "Demo Equipment Rentals"
SAMPLE_RENTAL_DAYS = 5


def seed_sample_equipment(session, business_id, business_type):
    """Create the starter inventory for a business type."""
    items = []
    for name, category, model, daily, weekly, monthly, status in sample_equipment_for(business_type):
        equipment = Equipment(
            business_id=business_id,
            name=name,
            category=category,
            model=model,
            daily_rate=daily,
            weekly_rate=weekly,
            monthly_rate=monthly,
            deposit_amount=round(daily * 2, 2),
            condition='excellent',
            status=status,
        )
        session.add(equipment)
        items.append(equipment)
    session.flush()
    return items


def seed_sample_customers(session, business_id):
    customers = []
    for data in SAMPLE_CUSTOMERS:
        customer = Customer(business_id=business_id, status='active', **data)
        session.add(customer)
        customers.append(customer)
    session.flush()
    return customers


def seed_sample_rental(session, business, customer, equipment):
    """One reserved rental starting tomorrow, priced like any other booking."""
    start = datetime.utcnow().replace(hour=9, minute=0, second=0, microsecond=0) + timedelta(days=1)
    end = start + timedelta(days=SAMPLE_RENTAL_DAYS)
    tax_rate = business.tax_rate if business.tax_rate is not None else 0.08
    totals = pricing.calculate_rental_totals(start, end, equipment.daily_rate, tax_rate)

    rental = Rental(
        business_id=business.id,
        customer_id=customer.id,
        equipment_id=equipment.id,
        rental_number=generate_rental_number(),
        start_date=start,
        end_date=end,
        daily_rate=equipment.daily_rate,
        deposit_amount=equipment.deposit_amount,
        status='reserved',
        notes='Sample booking',
        **totals
    )
    session.add(rental)
    equipment.status = 'rented'
    session.flush()
    return rental


def create_sample_data(session, business_id, business_type):
    """Seed equipment, customers and a reserved rental for one business."""
    business = session.get(Business, business_id)
    if business is None:
        raise ValueError(f"Business {business_id} does not exist")

    equipment = seed_sample_equipment(session, business_id, business_type)
    customers = seed_sample_customers(session, business_id)
    rental = seed_sample_rental(session, business, customers[0], equipment[0])

    logger.info(
        f"Seeded sample data for {business_id}: {len(equipment)} equipment, "
        f"{len(customers)} customers, rental {rental.rental_number}"
    )
    return {'equipment': len(equipment), 'customers': len(customers), 'rentals': 1}


def seed_demo_business(business_type='heavy_equipment'):
    """
    Create a demo business with sample data.
    Intended for local development; call after init_engine().
    """
    try:
        with get_db_session() as session:
            existing = session.query(Business).filter_by(name=DEMO_BUSINESS_NAME).first()
            if existing:
                logger.info(f"Demo business already exists: {existing.id}")
                return existing.id
            business = Business(name=DEMO_BUSINESS_NAME, type=business_type, status='active')
            session.add(business)
            session.flush()
            create_sample_data(session, business.id, business_type)
            return business.id
    except Exception as e:
        logger.error(f"Demo seeding failed: {e}")
        raise


if __name__ == '__main__':
    from config import get_config

    logging.basicConfig(level=logging.INFO)
    init_engine(get_config().DATABASE_URL)
    init_db()
    seed_demo_business()
