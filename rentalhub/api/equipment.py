"""
Equipment API Routes Blueprint

- /api/equipment - list (per business, filters, paginated) and create
- /api/equipment/<id> - read with live rentals and maintenance, update, delete
- /api/equipment/<id>/maintenance - maintenance history and new records
- /api/maintenance/<record_id> - update a maintenance record
"""

import logging
from flask import Blueprint, request

from database.connection import get_db_session
from services.equipment_repository import EquipmentRepository
from services.errors import RentalHubError
from rentalhub.utils.helpers import (
    error_response, get_json_body, require_business_id, server_error, success
)

logger = logging.getLogger(__name__)

equipment_bp = Blueprint('equipment_bp', __name__)


@equipment_bp.route('/api/equipment', methods=['GET', 'POST'])
def handle_equipment_collection():
    try:
        if request.method == 'GET':
            business_id = require_business_id()
            with get_db_session() as session:
                items, pagination = EquipmentRepository(session, business_id).list_equipment(
                    category=request.args.get('category'),
                    status=request.args.get('status'),
                    search=request.args.get('search'),
                    page=request.args.get('page', 1),
                    limit=request.args.get('limit', 50)
                )
            return success(items, pagination=pagination)

        with get_db_session() as session:
            equipment = EquipmentRepository(session).create_equipment(get_json_body())
        return success(equipment, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling equipment ({request.method}): {e}")
        return server_error('Failed to process equipment request')


@equipment_bp.route('/api/equipment/<equipment_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_equipment(equipment_id):
    try:
        with get_db_session() as session:
            repo = EquipmentRepository(session, request.args.get('business_id'))
            if request.method == 'GET':
                return success(repo.get_equipment(equipment_id))
            if request.method == 'PUT':
                return success(repo.update_equipment(equipment_id, get_json_body()))
            repo.delete_equipment(equipment_id)
        return success({'id': equipment_id}, message='Equipment deleted successfully')
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling equipment {equipment_id}: {e}")
        return server_error('Failed to process equipment request')


@equipment_bp.route('/api/equipment/<equipment_id>/maintenance', methods=['GET', 'POST'])
def handle_maintenance(equipment_id):
    """Maintenance history, or log a record (in_progress takes the item out of service)"""
    try:
        with get_db_session() as session:
            repo = EquipmentRepository(session, request.args.get('business_id'))
            if request.method == 'GET':
                return success(repo.list_maintenance(equipment_id))
            record = repo.log_maintenance(equipment_id, get_json_body())
        return success(record, 201)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error handling maintenance for {equipment_id}: {e}")
        return server_error('Failed to process maintenance request')


@equipment_bp.route('/api/maintenance/<record_id>', methods=['PUT'])
def update_maintenance(record_id):
    try:
        with get_db_session() as session:
            record = EquipmentRepository(session, request.args.get('business_id')).update_maintenance(
                record_id, get_json_body()
            )
        return success(record)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error updating maintenance record {record_id}: {e}")
        return server_error('Failed to update maintenance record')
