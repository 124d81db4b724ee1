"""
Customer API Routes Blueprint

- /api/customers - list (per business, paginated) and create
- /api/customers/<id> - read with rentals, update, delete
"""

import logging
from flask import Blueprint, request

from database.connection import get_db_session
from services.customer_repository import CustomerRepository
from services.errors import RentalHubError
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

customers_bp = Blueprint('customers_bp', __name__)


@customers_bp.route('/api/customers', methods=['GET'])
def list_customers():
    try:
        business_id = require_business_id()
        with get_db_session() as session:
            customers, pagination = CustomerRepository(session, business_id).list_customers(
                status=request.args.get('status'),
                search=request.args.get('search'),
                page=request.args.get('page', 1),
                limit=request.args.get('limit', 50)
            )
        return success(customers, pagination=pagination)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing customers: {e}")
        return server_error('Failed to fetch customers')


@customers_bp.route('/api/customers', methods=['POST'])
def create_customer():
    try:
        data = get_json_body()
        with get_db_session() as session:
            customer = CustomerRepository(session).create_customer(data)
        return success(customer, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating customer: {e}")
        return server_error('Failed to create customer')


@customers_bp.route('/api/customers/<customer_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_customer(customer_id):
    """Single customer: read with rentals, partial update, or guarded delete"""
    try:
        with get_db_session() as session:
            repo = CustomerRepository(session, request.args.get('business_id'))
            if request.method == 'GET':
                return success(repo.get_customer(customer_id))
            if request.method == 'PUT':
                return success(repo.update_customer(customer_id, get_json_body()))
            repo.delete_customer(customer_id)
        return success({'id': customer_id}, message='Customer deleted successfully')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling customer {customer_id}: {e}")
        return server_error('Failed to process customer request')
