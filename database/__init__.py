"""
Database package for RentalHub.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    init_engine,
    get_engine,
    get_db_session,
    init_db,
    check_db_connection,
    is_db_configured
)

from database.models import (
    generate_id,
    Business,
    Customer,
    Equipment,
    MaintenanceRecord,
    Rental,
    DeliverySchedule,
    Invoice,
    Payment,
    Staff
)

__all__ = [
    # Connection
    'Base',
    'init_engine',
    'get_engine',
    'get_db_session',
    'init_db',
    'check_db_connection',
    'is_db_configured',
    # Models
    'generate_id',
    'Business',
    'Customer',
    'Equipment',
    'MaintenanceRecord',
    'Rental',
    'DeliverySchedule',
    'Invoice',
    'Payment',
    'Staff'
]
