"""
Notification Service - SMS messages to customers through Twilio.

This service handles:
- Rendering the standard rental message templates
- Normalizing phone numbers to E.164
- Sending single and bulk messages over the Twilio REST API
"""

import logging
import re
from typing import Any, Dict, List

import requests

from services.errors import IntegrationNotConfigured, RentalHubError, ValidationError

logger = logging.getLogger(__name__)

TWILIO_API_URL = 'https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json'

TEMPLATES = {
    'rental_confirmation': "{business}: Your rental #{0} is confirmed for {1}. Total: ${2}. Reply STOP to opt out.",
    'delivery_reminder': "{business}: Your equipment will be delivered tomorrow between {0}. Please ensure someone is available.",
    'pickup_reminder': "{business}: We'll pick up your rental equipment tomorrow at {0}. Please have it ready.",
    'payment_due': "{business}: Payment of ${0} is due for rental #{1}. Pay online: {2}",
}


class SMSDeliveryError(RentalHubError):
    status_code = 500


def render_template(template_type: str, business_name: str, *args) -> str:
    """Fill a named template. Unknown templates render as an empty string."""
    template = TEMPLATES.get(template_type)
    if template is None:
        return ''
    try:
        return template.format(*args, business=business_name)
    except IndexError:
        raise ValidationError(f"Template {template_type} expects more arguments", field='args')


def normalize_phone(phone: str) -> str:
    """'(555) 123-4567' -> '+15551234567'; '15551234567' -> '+15551234567'"""
    digits = re.sub(r'\D', '', phone or '')
    if digits.startswith('1'):
        return f"+{digits}"
    return f"+1{digits}"


class NotificationService:
    """Service for sending SMS notifications."""

    def __init__(self, config, timeout: int = None):
        self.account_sid = config.get('TWILIO_ACCOUNT_SID')
        self.auth_token = config.get('TWILIO_AUTH_TOKEN')
        self.from_number = config.get('TWILIO_PHONE_NUMBER')
        self.timeout = timeout or config.get('HTTP_TIMEOUT', 30)

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def send_sms(self, to: str, message: str) -> Dict[str, Any]:
        """
        Send one message.

        Returns:
            {'sid', 'status', 'to'} from the Twilio response

        Raises:
            ValidationError: missing recipient or body
            IntegrationNotConfigured: Twilio credentials are not set
            SMSDeliveryError: Twilio rejected the message or was unreachable
        """
        if not to or not message:
            raise ValidationError('Phone number and message are required')
        if not self.configured:
            raise IntegrationNotConfigured('SMS service not configured')

        to_number = normalize_phone(to)
        try:
            response = requests.post(
                TWILIO_API_URL.format(sid=self.account_sid),
                data={'To': to_number, 'From': self.from_number, 'Body': message},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"SMS to {to_number} failed: {e}")
            raise SMSDeliveryError('Failed to send SMS')

        logger.info(f"SMS sent to {to_number}: {payload.get('sid')}")
        return {'sid': payload.get('sid'), 'status': payload.get('status'), 'to': to_number}

    def send_bulk(self, recipients: List[str], message: str) -> Dict[str, Any]:
        """Send the same message to every recipient and report each outcome."""
        if not recipients or not message:
            raise ValidationError('Recipients and message are required')
        if not self.configured:
            raise IntegrationNotConfigured('SMS service not configured')

        results = []
        for recipient in recipients:
            try:
                sent = self.send_sms(recipient, message)
                results.append({'to': recipient, 'success': True, 'sid': sent['sid']})
            except RentalHubError as e:
                results.append({'to': recipient, 'success': False, 'error': e.message})

        successful = sum(1 for r in results if r['success'])
        return {
            'total': len(recipients),
            'successful': successful,
            'failed': len(recipients) - successful,
            'results': results,
        }
