"""
Data Import API Routes Blueprint

- POST /api/import-data - analyze a CSV source or import its rows
  Sources: mappedData (already keyed by field), an uploaded file,
  csvText, or a URL / Google Sheets link
- GET /api/import-data?type= - CSV template for an import type
"""

import json
import logging
from flask import Blueprint, current_app, request

from database.connection import get_db_session
from services.errors import RentalHubError, ValidationError
from services.import_service import (
    IMPORT_ACTIONS, IMPORT_TYPES, TEMPLATES, ImportService,
    analyze_csv, apply_mapping, basic_mapping, check_csv_content, fetch_csv, parse_csv
)
from validators import validate_import_upload
from rentalhub.utils.helpers import error_response, get_json_body, server_error, success

logger = logging.getLogger(__name__)

import_data_bp = Blueprint('import_data_bp', __name__)

# The template endpoint and older clients call inventory "equipment"
TYPE_ALIASES = {'equipment': 'inventory'}


def _request_payload():
    if request.files or request.form:
        return request.form.to_dict()
    return get_json_body()


def _form_json(payload, key, expected_type, message):
    """Multipart uploads carry structured fields as JSON strings."""
    value = payload.get(key)
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValidationError(message, field=key)
    if value is not None and not isinstance(value, expected_type):
        raise ValidationError(message, field=key)
    return value


def _import_type(payload):
    import_type = payload.get('importType') or payload.get('dataType') or payload.get('type') or 'inventory'
    import_type = TYPE_ALIASES.get(import_type, import_type)
    if import_type not in IMPORT_TYPES:
        raise ValidationError(f"Unsupported import type: {import_type}", field='importType')
    return import_type


def _source_text(payload):
    """CSV text from an uploaded file, inline text or a URL."""
    upload = request.files.get('file')
    if upload is not None:
        is_valid, error, filename = validate_import_upload(upload)
        if not is_valid:
            raise ValidationError(error, field='file')
        text = upload.read().decode('utf-8', errors='replace')
        check_csv_content(text)
        return text
    if payload.get('csvText'):
        check_csv_content(payload['csvText'])
        return payload['csvText']
    url = payload.get('sheetUrl') or payload.get('url')
    if not url:
        raise ValidationError('A sheet URL, CSV text or file is required')
    return fetch_csv(url, timeout=current_app.config.get('HTTP_TIMEOUT', 30))


@import_data_bp.route('/api/import-data', methods=['POST'])
def import_data():
    try:
        payload = _request_payload()
        action = payload.get('action') or 'analyze'
        if action not in IMPORT_ACTIONS:
            raise ValidationError(f"Invalid action: {action}", field='action')
        import_type = _import_type(payload)

        if action == 'analyze':
            return success(analyze_csv(_source_text(payload), import_type))

        business_id = payload.get('businessId') or payload.get('business_id')
        if not business_id:
            raise ValidationError('Business ID is required', field='businessId')

        records = _form_json(payload, 'mappedData', list, 'mappedData must be a list of records')
        if records is None:
            headers, rows = parse_csv(_source_text(payload))
            mapping = _form_json(payload, 'mapping', dict, 'Mapping must be a JSON object') or basic_mapping(headers, import_type)
            records = apply_mapping(rows, mapping)

        with get_db_session() as session:
            result = ImportService(
                session, business_id,
                default_tax_rate=current_app.config.get('DEFAULT_RENTAL_TAX_RATE', 0.08)
            ).import_records(import_type, records)
        return success(result)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Import error: {e}")
        return server_error('Import failed')


@import_data_bp.route('/api/import-data', methods=['GET'])
def import_template():
    template_type = request.args.get('type', 'equipment')
    template = TEMPLATES.get(template_type)
    if template is None:
        return error_response(ValidationError(f"Unknown template type: {template_type}", field='type'))
    return success({
        'type': template_type,
        'headers': template['columns'],
        'example': template['example'],
    })
