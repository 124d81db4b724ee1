"""
Business API Routes Blueprint

- /api/businesses - list with stats, create (database first, file store on failure)
- /api/businesses/stats - platform-wide aggregates
- /api/businesses/<id> - read with stats, update, delete
"""

import logging
from flask import Blueprint, request

from database.connection import get_db_session
from services.business_repository import (
    BusinessRepository, list_businesses, load_business, store_business
)
from services.errors import RentalHubError
from rentalhub.utils.helpers import error_response, fallback_store, get_json_body, server_error, success

logger = logging.getLogger(__name__)

businesses_bp = Blueprint('businesses_bp', __name__)


@businesses_bp.route('/api/businesses', methods=['GET'])
def get_businesses():
    try:
        businesses, storage = list_businesses(fallback_store())
        return success(businesses, storage=storage)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing businesses: {e}")
        return server_error('Failed to fetch businesses')


@businesses_bp.route('/api/businesses', methods=['POST'])
def create_business():
    try:
        data = get_json_body()
        sample = data.pop('create_sample_data', data.pop('createSampleData', False))
        business, storage = store_business(data, fallback_store(), create_sample_data=bool(sample))
        return success(business, 201, storage=storage)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error creating business: {e}")
        return server_error('Failed to create business')


@businesses_bp.route('/api/businesses/stats', methods=['GET'])
def platform_stats():
    try:
        with get_db_session() as session:
            stats = BusinessRepository(session).platform_stats()
        return success(stats)
    except Exception as e:
        logger.error(f"Error getting platform stats: {e}")
        return server_error('Failed to fetch platform stats')


@businesses_bp.route('/api/businesses/<business_id>', methods=['GET'])
def get_business(business_id):
    try:
        business, storage = load_business(business_id, fallback_store())
        return success(business, storage=storage)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error getting business {business_id}: {e}")
        return server_error('Failed to fetch business')


@businesses_bp.route('/api/businesses/<business_id>', methods=['PUT', 'DELETE'])
def modify_business(business_id):
    try:
        with get_db_session() as session:
            repo = BusinessRepository(session)
            if request.method == 'PUT':
                return success(repo.update_business(business_id, get_json_body()))
            repo.delete_business(business_id)
        return success({'id': business_id}, message='Business deleted successfully')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling business {business_id}: {e}")
        return server_error('Failed to process business request')
