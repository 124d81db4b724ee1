"""
Notification API Routes Blueprint (SMS)

- POST /api/notifications/sms - one message, raw or from a template
- PUT /api/notifications/sms - same message to many recipients
"""

import logging
from flask import Blueprint, current_app

from services.errors import RentalHubError
from services.notification_service import NotificationService, render_template
from rentalhub.utils.helpers import error_response, get_json_body, server_error, success

logger = logging.getLogger(__name__)

notifications_bp = Blueprint('notifications_bp', __name__)


@notifications_bp.route('/api/notifications/sms', methods=['POST'])
def send_sms():
    try:
        data = get_json_body()
        message = data.get('message')
        if not message and data.get('template'):
            message = render_template(data['template'], data.get('businessName', ''), *(data.get('args') or []))
        result = NotificationService(current_app.config).send_sms(data.get('to'), message)
        return success(result)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"SMS error: {e}")
        return server_error('Failed to send SMS')


@notifications_bp.route('/api/notifications/sms', methods=['PUT'])
def send_bulk_sms():
    try:
        data = get_json_body()
        result = NotificationService(current_app.config).send_bulk(data.get('recipients') or [], data.get('message'))
        return success(result)
    except RentalHubError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Bulk SMS error: {e}")
        return server_error('Failed to send bulk SMS')
