"""
Input Validation & Sanitization Utilities
Validation for API payloads, CSV uploads, and user input
"""
import re
import os
from typing import Dict, Any, List, Optional, Tuple
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename
import logging

from services.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMPORT_EXTENSIONS = {'csv', 'txt'}
MAX_IMPORT_SIZE = 10 * 1024 * 1024  # 10MB

BUSINESS_STATUSES = ('active', 'setup', 'inactive')
EQUIPMENT_STATUSES = ('available', 'rented', 'maintenance', 'inactive')
EQUIPMENT_CONDITIONS = ('excellent', 'good', 'fair', 'poor')
CUSTOMER_STATUSES = ('active', 'inactive', 'blocked')
PAYMENT_TERMS = ('prepaid', 'net_15', 'net_30', 'net_60')

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(r'^\+?1?\d{9,15}$')
URL_PATTERN = re.compile(r'^https?://[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}.*$')


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """
    Validate phone number format

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    # Remove common separators
    cleaned_phone = re.sub(r'[\s\-\(\)\.]', '', phone)

    if not PHONE_PATTERN.match(cleaned_phone):
        return False, "Invalid phone number format"

    return True, None


def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate URL format

    Args:
        url: URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL must be a non-empty string"

    if not URL_PATTERN.match(url):
        return False, "Invalid URL format"

    if len(url) > 2048:
        return False, "URL too long"

    return True, None


def validate_choice(value: Any, choices: tuple, field: str) -> Tuple[bool, Optional[str]]:
    """Validate value is one of the allowed choices"""
    if value not in choices:
        return False, f"Invalid {field}: {value}. Allowed: {', '.join(choices)}"
    return True, None


def validate_number_range(value: float, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes and surrounding whitespace

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    sanitized = value.replace('\x00', '').strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def validate_import_upload(file: FileStorage) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate a CSV file uploaded for import

    Args:
        file: FileStorage object from request.files

    Returns:
        Tuple of (is_valid, error_message, sanitized_filename)
    """
    if not file or not file.filename:
        return False, "No file provided", None

    safe_filename = secure_filename(file.filename) or 'import.csv'

    if '.' not in safe_filename or safe_filename.rsplit('.', 1)[1].lower() not in ALLOWED_IMPORT_EXTENSIONS:
        return False, f"File type not allowed. Allowed types: {', '.join(sorted(ALLOWED_IMPORT_EXTENSIONS))}", None

    file.seek(0, os.SEEK_END)
    file_size = file.tell()
    file.seek(0)

    if file_size > MAX_IMPORT_SIZE:
        return False, f"File too large (maximum {MAX_IMPORT_SIZE / (1024 * 1024):.1f}MB)", None

    if file_size == 0:
        return False, "File is empty", None

    logger.info(f"Import file accepted: {safe_filename} ({file_size} bytes)")
    return True, None, safe_filename


def require(result: Tuple[bool, Optional[str]], field: Optional[str] = None):
    """Raise ValidationError when a validator returned a failure"""
    is_valid, error = result
    if not is_valid:
        raise ValidationError(error, field=field)


def validate_customer_payload(data: Dict[str, Any], partial: bool = False):
    """
    Validate a customer create/update body. Raises ValidationError.
    """
    if not partial:
        require(validate_required_fields(data, ['business_id', 'name', 'email']))
    if data.get('email') is not None or not partial:
        require(validate_email(data.get('email')), 'email')
    if data.get('phone'):
        require(validate_phone(data['phone']), 'phone')
    if 'status' in data and data['status'] is not None:
        require(validate_choice(data['status'], CUSTOMER_STATUSES, 'status'), 'status')
    if data.get('payment_terms'):
        require(validate_choice(data['payment_terms'], PAYMENT_TERMS, 'payment_terms'), 'payment_terms')


def validate_equipment_payload(data: Dict[str, Any], partial: bool = False):
    """
    Validate an equipment create/update body. Raises ValidationError.
    """
    if not partial:
        require(validate_required_fields(data, ['business_id', 'name', 'category', 'daily_rate']))
    for field in ('daily_rate', 'weekly_rate', 'monthly_rate', 'deposit_amount'):
        if data.get(field) is not None:
            try:
                value = float(data[field])
            except (TypeError, ValueError):
                raise ValidationError(f"{field} must be a number", field=field)
            require(validate_number_range(value, min_value=0), field)
    if data.get('status') is not None:
        require(validate_choice(data['status'], EQUIPMENT_STATUSES, 'status'), 'status')
    if data.get('condition') is not None:
        require(validate_choice(data['condition'], EQUIPMENT_CONDITIONS, 'condition'), 'condition')


def format_success_response(data: Any, **extra) -> Dict[str, Any]:
    """
    Success envelope for API responses

    Args:
        data: Response data
        **extra: Additional top-level keys (pagination, storage, ...)

    Returns:
        Success response dictionary
    """
    response = {'success': True, 'data': data}
    response.update(extra)
    return response


def format_error_response(message: str, **extra) -> Dict[str, Any]:
    """
    Error envelope for API responses

    Args:
        message: Error message shown to the client
        **extra: Additional top-level keys (code, field, ...)

    Returns:
        Error response dictionary
    """
    response = {'success': False, 'error': message}
    response.update(extra)
    return response
