"""
Shared plumbing for tenant-scoped repositories.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy.orm import Query, Session

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def parse_pagination(page: Any, limit: Any) -> Tuple[int, int]:
    """Coerce page/limit query args into sane positive ints."""
    try:
        page = int(page or 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit or DEFAULT_PAGE_SIZE)
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


class BaseRepository:
    """Repository bound to one session and, optionally, one business."""

    # Map API field names to column names where they differ
    FIELD_MAPPING: Dict[str, str] = {}

    def __init__(self, session: Session, business_id: str = None):
        self.session = session
        self.business_id = business_id

    def _map_field(self, key: str) -> str:
        return self.FIELD_MAPPING.get(key, key)

    def _scoped(self, model) -> Query:
        """Query filtered to this repository's business when one is set."""
        query = self.session.query(model)
        if self.business_id:
            query = query.filter(model.business_id == self.business_id)
        return query

    def _paginate(self, query: Query, page: Any, limit: Any) -> Tuple[List[Any], Dict[str, int]]:
        page, limit = parse_pagination(page, limit)
        total = query.order_by(None).count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        pagination = {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': math.ceil(total / limit) if total else 0,
        }
        return items, pagination

    def _apply_fields(self, entity, data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
        """Copy the allowed keys present in data onto entity. Returns the changes."""
        changes = {}
        for key in fields:
            if key in data:
                column = self._map_field(key)
                old_value = getattr(entity, column)
                if old_value != data[key]:
                    changes[key] = {'old': old_value, 'new': data[key]}
                setattr(entity, column, data[key])
        if changes:
            entity.updated_at = datetime.utcnow()
        return changes
