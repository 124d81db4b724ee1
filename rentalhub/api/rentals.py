"""
Rental API Routes Blueprint

- /api/rentals - list (per business, filters, paginated) and book
- /api/rentals/quote - price a prospective booking without writing
- /api/rentals/availability - overlap check for one item and date range
- /api/rentals/<id> - read with related records, update (status machine), delete
"""

import logging
from flask import Blueprint, current_app, request

from database.connection import get_db_session
from services.errors import RentalHubError, ValidationError
from services.rental_repository import RentalRepository
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

rentals_bp = Blueprint('rentals_bp', __name__)


def _repository(session, business_id=None):
    return RentalRepository(
        session, business_id, default_tax_rate=current_app.config.get('DEFAULT_RENTAL_TAX_RATE', 0.08)
    )


@rentals_bp.route('/api/rentals', methods=['GET'])
def list_rentals():
    try:
        business_id = require_business_id()
        with get_db_session() as session:
            rentals, pagination = _repository(session, business_id).list_rentals(
                customer_id=request.args.get('customer_id'),
                equipment_id=request.args.get('equipment_id'),
                status=request.args.get('status'),
                start_date=request.args.get('start_date'),
                end_date=request.args.get('end_date'),
                page=request.args.get('page', 1),
                limit=request.args.get('limit', 50)
            )
        return success(rentals, pagination=pagination)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing rentals: {e}")
        return server_error('Failed to fetch rentals')


@rentals_bp.route('/api/rentals', methods=['POST'])
def create_rental():
    try:
        data = get_json_body()
        with get_db_session() as session:
            rental = _repository(session).create_rental(data)
        return success(rental, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating rental: {e}")
        return server_error('Failed to create rental')


@rentals_bp.route('/api/rentals/quote', methods=['POST'])
def quote_rental():
    try:
        with get_db_session() as session:
            quote = _repository(session).quote(get_json_body())
        return success(quote)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error quoting rental: {e}")
        return server_error('Failed to quote rental')


@rentals_bp.route('/api/rentals/availability', methods=['GET'])
def check_availability():
    try:
        equipment_id = request.args.get('equipment_id')
        if not equipment_id:
            raise ValidationError('Equipment ID is required', field='equipment_id')
        with get_db_session() as session:
            result = _repository(session, request.args.get('business_id')).check_availability(
                equipment_id, request.args.get('start_date'), request.args.get('end_date')
            )
        return success(result)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error checking availability: {e}")
        return server_error('Failed to check availability')


@rentals_bp.route('/api/rentals/<rental_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_rental(rental_id):
    try:
        with get_db_session() as session:
            repo = _repository(session, request.args.get('business_id'))
            if request.method == 'GET':
                return success(repo.get_rental(rental_id))
            if request.method == 'PUT':
                return success(repo.update_rental(rental_id, get_json_body()))
            repo.delete_rental(rental_id)
        return success({'id': rental_id}, message='Rental deleted successfully')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling rental {rental_id}: {e}")
        return server_error('Failed to process rental request')
