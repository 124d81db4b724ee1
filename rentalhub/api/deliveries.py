"""
Delivery API Routes Blueprint

- /api/deliveries - schedule list (per business, filters) and create
- /api/deliveries/<id> - driver updates and delete
"""

import logging
from flask import Blueprint, request

from database.connection import get_db_session
from services.delivery_repository import DeliveryRepository
from services.errors import RentalHubError
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

deliveries_bp = Blueprint('deliveries_bp', __name__)


@deliveries_bp.route('/api/deliveries', methods=['GET', 'POST'])
def handle_deliveries():
    try:
        if request.method == 'GET':
            business_id = require_business_id()
            with get_db_session() as session:
                deliveries = DeliveryRepository(session, business_id).list_deliveries(
                    rental_id=request.args.get('rental_id'),
                    status=request.args.get('status'),
                    driver_id=request.args.get('driver_id'),
                    date=request.args.get('date')
                )
            return success(deliveries)

        with get_db_session() as session:
            delivery = DeliveryRepository(session).create_delivery(get_json_body())
        return success(delivery, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling deliveries ({request.method}): {e}")
        return server_error('Failed to process delivery request')


@deliveries_bp.route('/api/deliveries/<delivery_id>', methods=['PUT', 'DELETE'])
def handle_delivery(delivery_id):
    try:
        with get_db_session() as session:
            repo = DeliveryRepository(session, request.args.get('business_id'))
            if request.method == 'PUT':
                return success(repo.update_delivery(delivery_id, get_json_body()))
            repo.delete_delivery(delivery_id)
        return success({'id': delivery_id}, message='Delivery deleted successfully')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling delivery {delivery_id}: {e}")
        return server_error('Failed to process delivery request')
