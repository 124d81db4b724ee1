"""
Staff Repository - employees and delivery drivers of a business.
"""

import logging
from typing import Dict, List

from database.models import Business, DeliverySchedule, Staff
from services.base_repository import BaseRepository
from services.errors import NotFoundError
from services.pricing import parse_datetime
from validators import require, sanitize_string, validate_choice, validate_email, validate_required_fields

logger = logging.getLogger(__name__)

STAFF_ROLES = ('owner', 'manager', 'driver', 'staff')
STAFF_STATUSES = ('active', 'inactive')
UPDATABLE_FIELDS = ['name', 'email', 'role', 'phone', 'permissions', 'status']


def _validate(data: Dict, partial: bool = False):
    if not partial:
        require(validate_required_fields(data, ['business_id', 'name', 'email']))
    if data.get('email') is not None:
        require(validate_email(data['email']), 'email')
    if data.get('role') is not None:
        require(validate_choice(data['role'], STAFF_ROLES, 'role'), 'role')
    if data.get('status') is not None:
        require(validate_choice(data['status'], STAFF_STATUSES, 'status'), 'status')


class StaffRepository(BaseRepository):

    def list_staff(self, role: str = None) -> List[Dict]:
        query = self._scoped(Staff)
        if role:
            query = query.filter(Staff.role == role)
        return [s.to_dict() for s in query.order_by(Staff.name.asc()).all()]

    def get_model(self, staff_id: str) -> Staff:
        member = self._scoped(Staff).filter(Staff.id == staff_id).first()
        if not member:
            raise NotFoundError('Staff member not found')
        return member

    def create_staff(self, data: Dict) -> Dict:
        _validate(data)
        if not self.session.get(Business, data['business_id']):
            raise NotFoundError('Business not found')

        member = Staff(
            business_id=data['business_id'],
            name=sanitize_string(data['name'], 255),
            email=data['email'].strip().lower(),
            role=data.get('role') or 'staff',
            phone=data.get('phone'),
            permissions=data.get('permissions') or [],
            status=data.get('status') or 'active',
            hire_date=parse_datetime(data['hire_date'], 'hire_date') if data.get('hire_date') else None
        )
        self.session.add(member)
        self.session.flush()
        logger.info(f"Created staff member: {member.id} ({member.role})")
        return member.to_dict()

    def update_staff(self, staff_id: str, data: Dict) -> Dict:
        member = self.get_model(staff_id)
        _validate(data, partial=True)
        patch = dict(data)
        if patch.get('email'):
            patch['email'] = patch['email'].strip().lower()
        if patch.get('hire_date'):
            member.hire_date = parse_datetime(patch['hire_date'], 'hire_date')
        self._apply_fields(member, patch, UPDATABLE_FIELDS)
        self.session.flush()
        logger.info(f"Updated staff member: {staff_id}")
        return member.to_dict()

    def delete_staff(self, staff_id: str) -> bool:
        """Delete a staff member. Their scheduled runs become unassigned."""
        member = self.get_model(staff_id)
        self.session.query(DeliverySchedule).filter(
            DeliverySchedule.driver_id == staff_id
        ).update({DeliverySchedule.driver_id: None}, synchronize_session=False)
        self.session.delete(member)
        self.session.flush()
        logger.info(f"Deleted staff member: {staff_id}")
        return True
