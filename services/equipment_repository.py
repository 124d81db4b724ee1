"""
Equipment Repository - inventory and maintenance records.
"""

import logging
from datetime import datetime
from typing import Dict, List, Tuple

from sqlalchemy import or_

from database.models import Equipment, MaintenanceRecord, Rental
from services.base_repository import BaseRepository
from services.errors import DeleteGuardError, NotFoundError, ValidationError
from services.pricing import BLOCKING_STATUSES, parse_datetime, to_money
from validators import sanitize_string, validate_equipment_payload

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = [
    'name', 'category', 'make', 'model', 'year', 'serial_number',
    'description', 'condition', 'status', 'location', 'daily_rate',
    'weekly_rate', 'monthly_rate', 'deposit_amount', 'images',
    'specifications', 'custom_fields',
]

MAINTENANCE_FIELDS = [
    'maintenance_type', 'description', 'maintenance_date', 'cost',
    'labor_hours', 'parts_used', 'performed_by', 'next_maintenance_date',
    'status',
]

MAINTENANCE_STATUSES = ('scheduled', 'in_progress', 'completed')


def _optional_money(value):
    return to_money(value) if value not in (None, '') else None


class EquipmentRepository(BaseRepository):
    """Repository for one business's equipment."""

    def list_equipment(self, category: str = None, status: str = None,
                       search: str = None, page=1, limit=50) -> Tuple[List[Dict], Dict]:
        query = self._scoped(Equipment)
        if category:
            query = query.filter(Equipment.category == category)
        if status:
            query = query.filter(Equipment.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Equipment.name.ilike(pattern),
                Equipment.description.ilike(pattern),
                Equipment.make.ilike(pattern),
                Equipment.model.ilike(pattern)
            ))
        query = query.order_by(Equipment.created_at.desc())
        items, pagination = self._paginate(query, page, limit)
        return [e.to_dict() for e in items], pagination

    def get_model(self, equipment_id: str, lock: bool = False) -> Equipment:
        query = self._scoped(Equipment).filter(Equipment.id == equipment_id)
        if lock:
            # Serializes bookings of the same item (no-op on SQLite)
            query = query.with_for_update()
        equipment = query.first()
        if not equipment:
            raise NotFoundError('Equipment not found')
        return equipment

    def get_equipment(self, equipment_id: str) -> Dict:
        """Equipment with live rentals and its maintenance history."""
        equipment = self.get_model(equipment_id)
        data = equipment.to_dict()
        live = [r for r in equipment.rentals if r.status in BLOCKING_STATUSES]
        data['rentals'] = [r.to_dict() for r in sorted(live, key=lambda r: r.start_date)]
        records = sorted(equipment.maintenance_records,
                         key=lambda m: m.maintenance_date or m.created_at, reverse=True)
        data['maintenance_records'] = [m.to_dict() for m in records]
        return data

    def create_equipment(self, data: Dict) -> Dict:
        validate_equipment_payload(data)
        year = data.get('year')
        equipment = Equipment(
            business_id=data['business_id'],
            name=sanitize_string(data['name'], 255),
            category=sanitize_string(data['category'], 100),
            make=data.get('make'),
            model=data.get('model'),
            year=int(year) if year not in (None, '') else None,
            serial_number=data.get('serial_number'),
            description=data.get('description'),
            condition=data.get('condition') or 'good',
            status=data.get('status') or 'available',
            location=data.get('location'),
            daily_rate=to_money(data['daily_rate']),
            weekly_rate=_optional_money(data.get('weekly_rate')),
            monthly_rate=_optional_money(data.get('monthly_rate')),
            deposit_amount=to_money(data.get('deposit_amount')),
            images=data.get('images') or [],
            specifications=data.get('specifications') or {},
            custom_fields=data.get('custom_fields') or {}
        )
        self.session.add(equipment)
        self.session.flush()
        logger.info(f"Created equipment: {equipment.id} ({equipment.name})")
        return equipment.to_dict()

    def update_equipment(self, equipment_id: str, data: Dict) -> Dict:
        equipment = self.get_model(equipment_id)
        validate_equipment_payload(data, partial=True)

        data = dict(data)
        for field in ('daily_rate', 'weekly_rate', 'monthly_rate', 'deposit_amount'):
            if field in data:
                data[field] = _optional_money(data[field])
        if data.get('daily_rate', 0) is None:
            raise ValidationError('daily_rate cannot be empty', field='daily_rate')

        changes = self._apply_fields(equipment, data, UPDATABLE_FIELDS)
        self.session.flush()
        logger.info(f"Updated equipment: {equipment_id} ({', '.join(changes) or 'no changes'})")
        return equipment.to_dict()

    def has_blocking_rentals(self, equipment_id: str) -> bool:
        return self.session.query(Rental.id).filter(
            Rental.equipment_id == equipment_id,
            Rental.status.in_(BLOCKING_STATUSES)
        ).first() is not None

    def delete_equipment(self, equipment_id: str) -> bool:
        equipment = self.get_model(equipment_id)
        if self.has_blocking_rentals(equipment_id):
            raise DeleteGuardError('Cannot delete equipment with active rentals')

        self.session.delete(equipment)
        self.session.flush()
        logger.info(f"Deleted equipment: {equipment_id}")
        return True

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def list_maintenance(self, equipment_id: str) -> List[Dict]:
        equipment = self.get_model(equipment_id)
        records = self.session.query(MaintenanceRecord).filter(
            MaintenanceRecord.equipment_id == equipment.id
        ).order_by(MaintenanceRecord.maintenance_date.desc()).all()
        return [r.to_dict() for r in records]

    def _sync_maintenance_status(self, equipment: Equipment, record_status: str):
        if record_status == 'in_progress':
            equipment.status = 'maintenance'
        elif record_status == 'completed' and equipment.status == 'maintenance':
            equipment.status = 'rented' if self.has_blocking_rentals(equipment.id) else 'available'

    def _maintenance_values(self, data: Dict) -> Dict:
        values = {k: data[k] for k in MAINTENANCE_FIELDS if k in data}
        for field in ('maintenance_date', 'next_maintenance_date'):
            if values.get(field):
                values[field] = parse_datetime(values[field], field)
        for field in ('cost', 'labor_hours'):
            if field in values:
                values[field] = to_money(values[field])
        if 'status' in values and values['status'] not in MAINTENANCE_STATUSES:
            raise ValidationError(f"Invalid maintenance status: {values['status']}", field='status')
        return values

    def log_maintenance(self, equipment_id: str, data: Dict) -> Dict:
        equipment = self.get_model(equipment_id)
        values = self._maintenance_values(data)
        values.setdefault('maintenance_date', datetime.utcnow())
        values.setdefault('status', 'completed')

        record = MaintenanceRecord(
            business_id=equipment.business_id,
            equipment_id=equipment.id,
            **values
        )
        self.session.add(record)
        self._sync_maintenance_status(equipment, record.status)
        self.session.flush()
        logger.info(f"Logged maintenance {record.id} for equipment {equipment.id}")
        return record.to_dict()

    def update_maintenance(self, record_id: str, data: Dict) -> Dict:
        record = self._scoped(MaintenanceRecord).filter(MaintenanceRecord.id == record_id).first()
        if not record:
            raise NotFoundError('Maintenance record not found')
        values = self._maintenance_values(data)
        self._apply_fields(record, values, MAINTENANCE_FIELDS)
        self._sync_maintenance_status(record.equipment, record.status)
        self.session.flush()
        logger.info(f"Updated maintenance record: {record_id}")
        return record.to_dict()
