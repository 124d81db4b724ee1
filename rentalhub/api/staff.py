"""
Staff API Routes Blueprint

- /api/staff - list per business (optional role filter) and create
- /api/staff/<id> - update and delete
"""

import logging
from flask import Blueprint, request

from database.connection import get_db_session
from services.errors import RentalHubError
from services.staff_repository import StaffRepository
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

staff_bp = Blueprint('staff_bp', __name__)


@staff_bp.route('/api/staff', methods=['GET', 'POST'])
def handle_staff_collection():
    try:
        if request.method == 'GET':
            business_id = require_business_id()
            with get_db_session() as session:
                staff = StaffRepository(session, business_id).list_staff(role=request.args.get('role'))
            return success(staff)

        with get_db_session() as session:
            member = StaffRepository(session).create_staff(get_json_body())
        return success(member, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling staff ({request.method}): {e}")
        return server_error('Failed to process staff request')


@staff_bp.route('/api/staff/<staff_id>', methods=['PUT', 'DELETE'])
def handle_staff_member(staff_id):
    try:
        with get_db_session() as session:
            repo = StaffRepository(session, request.args.get('business_id'))
            if request.method == 'PUT':
                return success(repo.update_staff(staff_id, get_json_body()))
            repo.delete_staff(staff_id)
        return success({'id': staff_id}, message='Staff member deleted successfully')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling staff member {staff_id}: {e}")
        return server_error('Failed to process staff request')
