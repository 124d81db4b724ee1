"""
CSV / Google Sheets import for inventory, customers and rentals.

Fetching and parsing are plain functions; ImportService writes the mapped
rows through the regular repositories so imported data obeys the same rules
as data created through the API.
"""

import csv
import io
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import requests
from sqlalchemy.exc import SQLAlchemyError

from database.models import Business
from services.customer_repository import CustomerRepository
from services.equipment_repository import EquipmentRepository
from services.errors import NotFoundError, RentalHubError, ValidationError
from services.rental_repository import RentalRepository

logger = logging.getLogger(__name__)

IMPORT_TYPES = ('inventory', 'customers', 'rentals')
IMPORT_ACTIONS = ('analyze', 'import')

USER_AGENT = 'Mozilla/5.0 (compatible; DataImportBot/1.0)'

EXPECTED_FIELDS = {
    'inventory': ['name', 'description', 'category', 'daily_rate', 'weekly_rate',
                  'monthly_rate', 'serial_number', 'status', 'specifications'],
    'customers': ['company_name', 'contact_name', 'email', 'phone', 'address',
                  'tax_id', 'credit_limit', 'payment_terms'],
    'rentals': ['customer_id', 'equipment_id', 'start_date', 'end_date',
                'daily_rate', 'total_amount', 'status', 'delivery_address'],
}

BASIC_MAPPING_CONFIDENCE = 60
PREVIEW_ROWS = 5
DEFAULT_CATEGORY = 'General'

# Status changes applied after an imported rental is created as reserved
IMPORT_STATUS_PATHS = {
    'reserved': [],
    'active': ['active'],
    'completed': ['active', 'completed'],
    'cancelled': ['cancelled'],
}

TEMPLATES = {
    'equipment': {
        'columns': EXPECTED_FIELDS['inventory'],
        'example': {
            'name': 'CAT 320 Excavator',
            'description': '20-ton hydraulic excavator',
            'category': 'Excavators',
            'daily_rate': '850.00',
            'weekly_rate': '4250.00',
            'monthly_rate': '15300.00',
            'serial_number': 'CAT320-2023-001',
            'status': 'available',
            'specifications': '{"make":"Caterpillar","model":"320","year":2023,"weight":"20000 lbs"}',
        },
    },
    'customers': {
        'columns': EXPECTED_FIELDS['customers'],
        'example': {
            'company_name': 'ABC Construction LLC',
            'contact_name': 'John Smith',
            'email': 'john@abcconstruction.com',
            'phone': '555-123-4567',
            'address': '123 Construction Ave, City, ST 12345',
            'tax_id': '12-3456789',
            'credit_limit': '25000.00',
            'payment_terms': 'net_30',
        },
    },
    'rentals': {
        'columns': EXPECTED_FIELDS['rentals'],
        'example': {
            'customer_id': 'cust_1717243200000_abc123def',
            'equipment_id': 'eq_1717243200000_xyz789ghi',
            'start_date': '2024-06-01',
            'end_date': '2024-06-04',
            'daily_rate': '450.00',
            'total_amount': '',
            'status': 'reserved',
            'delivery_address': '789 Site Rd, Construction City, ST 12345',
        },
    },
}

_SHEET_ID = re.compile(r'/spreadsheets/d/([a-zA-Z0-9-_]+)')
_SHEET_GID = re.compile(r'[#&?]gid=([0-9]+)')
_NON_ALNUM = re.compile(r'[^a-z0-9]+')


class ImportFetchError(RentalHubError):
    """Source could not be fetched or is not CSV. code is machine-readable."""
    status_code = 400

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


# =============================================================================
# FETCHING
# =============================================================================

def to_export_url(url: str) -> str:
    """Turn any Google Sheets link into its CSV export URL; other URLs pass through."""
    if 'docs.google.com/spreadsheets' not in url:
        return url
    if '/export?format=csv' in url:
        return url
    match = _SHEET_ID.search(url)
    if not match:
        raise ImportFetchError('INVALID_URL', 'Could not extract sheet ID from Google Sheets URL')
    gid_match = _SHEET_GID.search(url)
    gid = gid_match.group(1) if gid_match else '0'
    return f"https://docs.google.com/spreadsheets/d/{match.group(1)}/export?format=csv&gid={gid}"


def check_csv_content(text: str):
    """Reject HTML error pages and bodies that cannot be CSV."""
    if '<html' in text or '<!DOCTYPE' in text:
        lowered = text.lower()
        if 'sign in' in lowered or 'signin' in lowered or 'accounts.google.com' in lowered:
            raise ImportFetchError(
                'PERMISSION_ERROR',
                'The sheet is private. Share it with "Anyone with the link" or publish it to the web as CSV.'
            )
        raise ImportFetchError('INVALID_FORMAT', 'The URL returned HTML content instead of CSV data')
    if ',' not in text and '\n' not in text:
        raise ImportFetchError('INVALID_DATA', 'The URL did not return valid CSV data')


def fetch_csv(url: str, timeout: int = 30) -> str:
    """Download CSV text from a URL or Google Sheet. Raises ImportFetchError."""
    export_url = to_export_url(url)
    logger.info(f"Fetching import data from {export_url}")
    try:
        response = requests.get(export_url, headers={'User-Agent': USER_AGENT}, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Import fetch failed for {export_url}: {e}")
        raise ImportFetchError('FETCH_ERROR', f"Failed to fetch data: {e}")

    if response.status_code in (401, 403):
        raise ImportFetchError('PERMISSION_ERROR', 'The sheet is private and cannot be accessed')
    if response.status_code == 404:
        raise ImportFetchError('SHEET_NOT_FOUND', 'The sheet could not be found')
    if response.status_code == 429:
        raise ImportFetchError('RATE_LIMITED', 'Too many requests. Please wait a moment and try again')
    if not response.ok:
        raise ImportFetchError('FETCH_ERROR', f"Failed to fetch data (HTTP {response.status_code})")

    text = response.text
    check_csv_content(text)
    logger.info(f"Fetched {len(text)} characters of import data")
    return text


# =============================================================================
# PARSING & MAPPING
# =============================================================================

def parse_csv(text: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Parse CSV text into (headers, records).

    The first row is the header. Blank lines are skipped, values are trimmed
    and short rows are padded with empty strings.
    """
    rows = [row for row in csv.reader(io.StringIO(text.lstrip('\ufeff'))) if any(cell.strip() for cell in row)]
    if not rows:
        return [], []
    headers = [h.strip() for h in rows[0]]
    records = []
    for row in rows[1:]:
        values = [cell.strip() for cell in row] + [''] * (len(headers) - len(row))
        records.append(dict(zip(headers, values)))
    return headers, records


def normalize_header(header: str) -> str:
    return _NON_ALNUM.sub('_', header.lower()).strip('_')


def basic_mapping(headers: List[str], import_type: str) -> Dict[str, str]:
    """Map each header to the first expected field that contains it or is contained by it."""
    mapping = {}
    expected = EXPECTED_FIELDS.get(import_type, [])
    for header in headers:
        normalized = normalize_header(header)
        if not normalized:
            continue
        for field in expected:
            if normalized in field or field in normalized:
                mapping[header] = field
                break
    return mapping


def apply_mapping(records: List[Dict[str, str]], mapping: Dict[str, str]) -> List[Dict[str, str]]:
    mapped = []
    for record in records:
        row = {}
        for column, field in mapping.items():
            if column in record:
                row[field] = record[column]
        mapped.append(row)
    return mapped


def analyze_csv(text: str, import_type: str) -> Dict[str, Any]:
    """Headers, preview rows and a suggested column mapping."""
    headers, records = parse_csv(text)
    if not records:
        raise ValidationError('No data found in the source')
    mapping = basic_mapping(headers, import_type)
    mapped_fields = set(mapping.values())
    suggestions = [f"No column found for '{field}'" for field in EXPECTED_FIELDS[import_type]
                   if field not in mapped_fields]
    logger.info(f"Analyzed {len(records)} {import_type} records with columns {headers}")
    return {
        'totalRecords': len(records),
        'headers': headers,
        'preview': records[:PREVIEW_ROWS],
        'mapping': mapping,
        'confidence': BASIC_MAPPING_CONFIDENCE,
        'suggestions': suggestions,
        'dataType': import_type,
    }


def _blank_to_none(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in row.items()}


# =============================================================================
# IMPORT
# =============================================================================

class ImportService:
    """Writes mapped rows for one business, one SAVEPOINT per row."""

    def __init__(self, session, business_id: str, default_tax_rate: float = 0.08):
        self.session = session
        self.business_id = business_id
        self.default_tax_rate = default_tax_rate

    def import_records(self, import_type: str, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        if import_type not in IMPORT_TYPES:
            raise ValidationError('Unsupported import type', field='importType')
        if self.session.get(Business, self.business_id) is None:
            raise NotFoundError('Business not found')

        handler = {
            'inventory': self._import_equipment,
            'customers': self._import_customer,
            'rentals': self._import_rental,
        }[import_type]

        result = {'imported': 0, 'skipped': 0, 'errors': []}
        for index, raw in enumerate(records, start=1):
            row = _blank_to_none(dict(raw or {}))
            try:
                with self.session.begin_nested():
                    skip_reason = handler(row)
            except RentalHubError as e:
                skip_reason = f"Row {index}: {e.message}"
            except SQLAlchemyError as e:
                logger.warning(f"Import row {index} rejected by database: {e}")
                skip_reason = f"Row {index}: Could not be saved"

            if skip_reason:
                result['skipped'] += 1
                result['errors'].append(skip_reason)
            else:
                result['imported'] += 1

        logger.info(
            f"{import_type} import for {self.business_id}: "
            f"{result['imported']} imported, {result['skipped']} skipped"
        )
        return result

    def _import_equipment(self, row: Dict) -> Optional[str]:
        name = row.get('name') or row.get('equipment_name') or row.get('description')
        if not name:
            return 'Skipping item: Missing name or description'

        specifications = row.get('specifications')
        if isinstance(specifications, str):
            try:
                specifications = json.loads(specifications)
            except ValueError:
                specifications = {'notes': specifications}

        payload = {
            'business_id': self.business_id,
            'name': name,
            'description': row.get('description'),
            'category': row.get('category') or DEFAULT_CATEGORY,
            'daily_rate': row.get('daily_rate'),
            'weekly_rate': row.get('weekly_rate'),
            'monthly_rate': row.get('monthly_rate'),
            'serial_number': row.get('serial_number'),
            'status': row.get('status') or 'available',
            'specifications': specifications if isinstance(specifications, dict) else {},
        }
        EquipmentRepository(self.session, self.business_id).create_equipment(payload)
        return None

    def _import_customer(self, row: Dict) -> Optional[str]:
        if not (row.get('contact_name') or row.get('company_name') or row.get('email')):
            return 'Skipping customer: Missing contact info'

        payload = {k: v for k, v in row.items() if k in EXPECTED_FIELDS['customers'] and v is not None}
        payload['business_id'] = self.business_id
        payload['name'] = row.get('company_name') or row.get('contact_name') or row.get('email')
        if payload.get('credit_limit') is not None:
            try:
                payload['credit_limit'] = float(payload['credit_limit'])
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid credit_limit: {payload['credit_limit']}")
        CustomerRepository(self.session, self.business_id).create_customer(payload)
        return None

    def _import_rental(self, row: Dict) -> Optional[str]:
        target_status = row.get('status') or 'reserved'
        if target_status not in IMPORT_STATUS_PATHS:
            raise ValidationError(f"Invalid rental status: {target_status}")

        payload = {
            'business_id': self.business_id,
            'customer_id': row.get('customer_id'),
            'equipment_id': row.get('equipment_id'),
            'start_date': row.get('start_date'),
            'end_date': row.get('end_date'),
            'daily_rate': row.get('daily_rate'),
            'delivery_address': row.get('delivery_address'),
            'delivery_required': bool(row.get('delivery_address')),
        }
        repo = RentalRepository(self.session, self.business_id, self.default_tax_rate)
        created = repo.create_rental(payload)
        if IMPORT_STATUS_PATHS[target_status]:
            rental = repo.get_model(created['id'])
            for status in IMPORT_STATUS_PATHS[target_status]:
                repo.change_status(rental, status)
            self.session.flush()
        return None
