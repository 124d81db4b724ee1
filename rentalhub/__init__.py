"""
RentalHub - Application Package

- api/: HTTP route handlers (Flask Blueprints)
- utils/: request and response helpers shared by the blueprints

Business logic lives in the top-level services/ package and persistence in
database/. The app factory is in app_init.py at the project root.
"""

import logging

from rentalhub.api.analysis import analysis_bp
from rentalhub.api.businesses import businesses_bp
from rentalhub.api.customers import customers_bp
from rentalhub.api.deliveries import deliveries_bp
from rentalhub.api.equipment import equipment_bp
from rentalhub.api.import_data import import_data_bp
from rentalhub.api.invoices import invoices_bp
from rentalhub.api.notifications import notifications_bp
from rentalhub.api.payments import payments_bp
from rentalhub.api.rentals import rentals_bp
from rentalhub.api.staff import staff_bp

logger = logging.getLogger(__name__)

BLUEPRINTS = [
    businesses_bp,
    customers_bp,
    equipment_bp,
    rentals_bp,
    invoices_bp,
    payments_bp,
    import_data_bp,
    analysis_bp,
    deliveries_bp,
    notifications_bp,
    staff_bp,
]


def register_blueprints(app):
    """Register all API blueprints with the Flask app."""
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
    logger.info(f"Registered {len(BLUEPRINTS)} API blueprints")


__all__ = ['register_blueprints', 'BLUEPRINTS']
