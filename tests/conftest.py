"""
Pytest configuration and shared fixtures
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def app_config(tmp_path):
    """Testing configuration with a per-test fallback folder"""
    from config import TestingConfig

    class Config(TestingConfig):
        FALLBACK_DATA_FOLDER = str(tmp_path / 'fallback')

    return Config


@pytest.fixture
def app(app_config, tmp_path, monkeypatch):
    """Flask app over in-memory SQLite with fresh tables"""
    from app_init import create_app
    from database.connection import drop_db

    monkeypatch.chdir(tmp_path)
    flask_app = create_app(app_config)
    yield flask_app
    drop_db()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Session bound to the app's engine; rolled back after the test"""
    from database.connection import get_session_factory

    session = get_session_factory()()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def business(db_session):
    from database.models import Business

    record = Business(
        name='Test Rentals',
        type='heavy_equipment',
        email='owner@testrentals.com',
        status='active',
        branding={'primary_color': '#FF6600'},
        settings={},
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture
def other_business(db_session):
    """A second tenant"""
    from database.models import Business

    record = Business(name='Other Rentals', type='tool_rental', status='active', settings={})
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture
def customer(db_session, business):
    from database.models import Customer

    record = Customer(
        business_id=business.id,
        name='ABC Construction',
        company_name='ABC Construction',
        contact_name='John Smith',
        email='john@abc.com',
        phone='5551234567',
        payment_terms='net_30',
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture
def equipment(db_session, business):
    from database.models import Equipment

    record = Equipment(
        business_id=business.id,
        name='CAT 320 Excavator',
        category='Excavators',
        daily_rate=100.0,
        weekly_rate=600.0,
        monthly_rate=2400.0,
        deposit_amount=200.0,
        status='available',
    )
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture
def rental_payload(business, customer, equipment):
    """Valid booking body for POST /api/rentals"""
    return {
        'business_id': business.id,
        'customer_id': customer.id,
        'equipment_id': equipment.id,
        'start_date': '2024-06-01',
        'end_date': '2024-06-04',
        'daily_rate': 100,
    }


@pytest.fixture
def reserved_rental(db_session, business, customer, equipment):
    """A reserved rental created through the repository"""
    from services.rental_repository import RentalRepository

    start = datetime(2024, 6, 1, 9, 0)
    rental = RentalRepository(db_session).create_rental({
        'business_id': business.id,
        'customer_id': customer.id,
        'equipment_id': equipment.id,
        'start_date': start.isoformat(),
        'end_date': (start + timedelta(days=3)).isoformat(),
        'daily_rate': 100,
        'delivery_address': '1 Site Rd',
    })
    db_session.commit()
    return rental


@pytest.fixture
def mock_ai_response():
    """Messages API response carrying one text block"""
    class MockResponse:
        def __init__(self, text='{"name": "Big Iron Rentals", "type": "heavy_equipment"}'):
            self.stop_reason = 'end_turn'
            self.content = [
                type('Content', (), {'type': 'text', 'text': text})()
            ]

    return MockResponse
