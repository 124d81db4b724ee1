"""
Business Repository - tenant records, dashboard stats and fallback storage.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError

from database.connection import get_db_session
from database.models import Business, Customer, Equipment, Rental, generate_id
from services.base_repository import BaseRepository
from services.business_types import BUSINESS_TYPES, get_preset
from services.errors import ConflictError, DeleteGuardError, NotFoundError, ValidationError
from services.fallback_store import FallbackStore
from services.pricing import BLOCKING_STATUSES
from validators import BUSINESS_STATUSES, require, sanitize_string, validate_choice, validate_required_fields

logger = logging.getLogger(__name__)

COLLECTION = 'businesses'

UPDATABLE_FIELDS = [
    'name', 'type', 'industry', 'email', 'phone', 'address', 'website',
    'description', 'features', 'branding', 'custom_fields', 'settings',
    'web_intelligence', 'reputation_score', 'confidence', 'status',
    'stripe_account_id',
]


def _normalize_branding(branding: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Accept both primaryColor and primary_color style keys."""
    branding = dict(branding or {})
    for camel, snake in (('primaryColor', 'primary_color'),
                         ('secondaryColor', 'secondary_color'),
                         ('logoUrl', 'logo_url')):
        if camel in branding:
            branding.setdefault(snake, branding.pop(camel))
    return branding


def business_fields_from_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Column values for a business from an API or analysis payload.

    Analysis results use camelCase keys (customFields, webIntelligence);
    both spellings are accepted. Missing presentation fields fall back to the
    preset for the business type.
    """
    business_type = data.get('type') or 'custom'
    if business_type not in BUSINESS_TYPES:
        business_type = 'custom'
    preset = get_preset(business_type)

    branding = _normalize_branding(data.get('branding'))
    for key, value in preset['branding'].items():
        branding.setdefault(key, value)

    web_intelligence = data.get('web_intelligence', data.get('webIntelligence'))
    reputation = data.get('reputation_score')
    if reputation is None and isinstance(web_intelligence, dict):
        reputation = web_intelligence.get('reputationScore')

    confidence = data.get('confidence')
    try:
        confidence = int(confidence) if confidence is not None else None
    except (TypeError, ValueError):
        confidence = None

    return {
        'name': sanitize_string(data['name'], 255),
        'type': business_type,
        'industry': data.get('industry') or preset['industry'],
        'email': data.get('email'),
        'phone': data.get('phone'),
        'address': data.get('address'),
        'website': data.get('website'),
        'description': data.get('description'),
        'features': data.get('features') or list(preset['features']),
        'branding': branding,
        'custom_fields': data.get('custom_fields', data.get('customFields')) or list(preset['custom_fields']),
        'settings': data.get('settings') or {},
        'web_intelligence': web_intelligence,
        'reputation_score': reputation,
        'confidence': confidence,
        'status': data.get('status') or 'setup',
        'stripe_account_id': data.get('stripe_account_id'),
    }


class BusinessRepository(BaseRepository):
    """Repository for businesses (not tenant-scoped: a business is the tenant)."""

    def list_businesses(self) -> List[Dict]:
        businesses = self.session.query(Business).order_by(Business.created_at.desc()).all()
        result = []
        for business in businesses:
            data = business.to_dict()
            data['stats'] = self.get_stats(business.id)
            result.append(data)
        return result

    def get_model(self, business_id: str) -> Business:
        business = self.session.get(Business, business_id)
        if not business:
            raise NotFoundError('Business not found')
        return business

    def get_business(self, business_id: str) -> Dict:
        business = self.get_model(business_id)
        data = business.to_dict()
        data['stats'] = self.get_stats(business_id)
        return data

    def create_business(self, data: Dict, business_id: str = None) -> Dict:
        require(validate_required_fields(data, ['name']))
        if data.get('status'):
            require(validate_choice(data['status'], BUSINESS_STATUSES, 'status'), 'status')
        business = Business(id=business_id or data.get('id') or generate_id('biz'),
                            **business_fields_from_payload(data))
        self.session.add(business)
        self.session.flush()
        logger.info(f"Created business: {business.id} ({business.name})")
        return business.to_dict()

    def update_business(self, business_id: str, data: Dict) -> Dict:
        business = self.get_model(business_id)
        if 'status' in data:
            require(validate_choice(data['status'], BUSINESS_STATUSES, 'status'), 'status')
        if 'type' in data and data['type'] not in BUSINESS_TYPES:
            raise ValidationError(f"Invalid business type: {data['type']}", field='type')
        if 'name' in data and not data['name']:
            raise ValidationError('Business name cannot be empty', field='name')

        patch = dict(data)
        if 'branding' in patch:
            # Merge so a color change does not wipe the logo
            patch['branding'] = {**(business.branding or {}), **_normalize_branding(patch['branding'])}
        if 'settings' in patch:
            patch['settings'] = {**(business.settings or {}), **(patch['settings'] or {})}

        changes = self._apply_fields(business, patch, UPDATABLE_FIELDS)
        self.session.flush()
        logger.info(f"Updated business: {business_id} ({', '.join(changes) or 'no changes'})")
        return business.to_dict()

    def delete_business(self, business_id: str) -> bool:
        business = self.get_model(business_id)
        blocking = self.session.query(Rental.id).filter(
            Rental.business_id == business_id,
            Rental.status.in_(BLOCKING_STATUSES)
        ).first()
        if blocking:
            raise DeleteGuardError('Cannot delete business with active rentals')
        self.session.delete(business)
        self.session.flush()
        logger.info(f"Deleted business: {business_id}")
        return True

    def get_stats(self, business_id: str) -> Dict[str, Any]:
        """Dashboard counters for one business."""
        equipment_by_status = dict(
            self.session.query(Equipment.status, func.count(Equipment.id))
            .filter(Equipment.business_id == business_id)
            .group_by(Equipment.status)
            .all()
        )
        total_customers = self.session.query(func.count(Customer.id)).filter(
            Customer.business_id == business_id
        ).scalar() or 0
        active_rentals, revenue = self.session.query(
            func.count(Rental.id), func.coalesce(func.sum(Rental.total_amount), 0)
        ).filter(
            Rental.business_id == business_id,
            Rental.status.in_(BLOCKING_STATUSES)
        ).one()

        return {
            'totalEquipment': sum(equipment_by_status.values()),
            'totalCustomers': total_customers,
            'activeRentals': active_rentals or 0,
            'totalRevenue': round(float(revenue or 0), 2),
            'availableEquipment': equipment_by_status.get('available', 0),
            'maintenanceEquipment': equipment_by_status.get('maintenance', 0),
        }

    def platform_stats(self) -> Dict[str, Any]:
        """Cross-tenant aggregates for the master admin view."""
        by_status = dict(
            self.session.query(Business.status, func.count(Business.id))
            .group_by(Business.status)
            .all()
        )
        avg_reputation = self.session.query(func.avg(Business.reputation_score)).filter(
            Business.reputation_score.isnot(None)
        ).scalar()
        return {
            'total': sum(by_status.values()),
            'active': by_status.get('active', 0),
            'setup': by_status.get('setup', 0),
            'inactive': by_status.get('inactive', 0),
            'avgReputation': round(float(avg_reputation)) if avg_reputation is not None else 0,
        }


# =============================================================================
# FALLBACK-AWARE STORAGE
# =============================================================================

def store_business(data: Dict, store: FallbackStore, create_sample_data: bool = False) -> Tuple[Dict, str]:
    """
    Persist a business, falling back to the file store if the database is unreachable.

    Returns (business dict, storage) where storage is 'database' or 'fallback'.
    Validation errors are raised before either store is touched. A duplicate id
    raises ConflictError.
    """
    require(validate_required_fields(data, ['name']))
    business_id = data.get('id') or generate_id('biz')
    try:
        with get_db_session() as session:
            business = BusinessRepository(session).create_business(data, business_id=business_id)
            if create_sample_data:
                from database.seed import create_sample_data as seed_sample_data
                seed_sample_data(session, business['id'], business['type'])
        return business, 'database'
    except IntegrityError as e:
        logger.warning(f"Business {business_id} conflicts with an existing record: {e.orig}")
        raise ConflictError('Business with this id already exists', field='id')
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Database error storing business, using fallback store: {e}")
        record = business_fields_from_payload(data)
        record['id'] = business_id
        return store.save(COLLECTION, record), 'fallback'


def load_business(business_id: str, store: FallbackStore) -> Tuple[Dict, str]:
    """Read a business with stats, from the database or else the file store."""
    try:
        with get_db_session() as session:
            return BusinessRepository(session).get_business(business_id), 'database'
    except NotFoundError:
        record = store.get(COLLECTION, business_id)
        if record is None:
            raise
    except SQLAlchemyError as e:
        logger.error(f"Database error loading business {business_id}, using fallback store: {e}")
        record = store.get(COLLECTION, business_id)
        if record is None:
            raise NotFoundError('Business not found')
    record = dict(record)
    record['stats'] = {
        'totalEquipment': 0, 'totalCustomers': 0, 'activeRentals': 0,
        'totalRevenue': 0, 'availableEquipment': 0, 'maintenanceEquipment': 0,
    }
    return record, 'fallback'


def list_businesses(store: FallbackStore) -> Tuple[List[Dict], str]:
    """All businesses; file-store records are appended when not in the database."""
    try:
        with get_db_session() as session:
            businesses = BusinessRepository(session).list_businesses()
        storage = 'database'
    except SQLAlchemyError as e:
        logger.error(f"Database error listing businesses, using fallback store: {e}")
        businesses, storage = [], 'fallback'
    known = {b['id'] for b in businesses}
    businesses.extend(r for r in store.all(COLLECTION) if r.get('id') not in known)
    return businesses, storage
