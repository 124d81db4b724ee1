"""
Helpers shared by the API blueprints: request bodies, error envelopes and
access to app-level services.
"""

import logging

from flask import current_app, jsonify, request

from services.errors import RentalHubError, ValidationError
from services.fallback_store import FallbackStore
from validators import format_error_response, format_success_response

logger = logging.getLogger(__name__)


def get_json_body():
    """Request JSON as a dict. Missing or non-object bodies count as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_business_id(value=None):
    """business_id from the argument or the query string, else 400."""
    business_id = value or request.args.get('business_id')
    if not business_id:
        raise ValidationError('Business ID is required', field='business_id')
    return business_id


def success(data, status=200, **extra):
    return jsonify(format_success_response(data, **extra)), status


def error_response(error: RentalHubError):
    """Envelope for a domain error, answered with its status code."""
    extra = {}
    if getattr(error, 'code', None):
        extra['code'] = error.code
    return jsonify(format_error_response(error.message, **extra)), error.status_code


def server_error(message='Internal server error'):
    return jsonify(format_error_response(message)), 500


def fallback_store() -> FallbackStore:
    return current_app.extensions['fallback_store']
