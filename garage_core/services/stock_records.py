# garage_core/services/stock_records.py
import logging

from garage_core import db
from garage_core.errors import NotFoundError, ServiceError
from garage_core.models import InventoryItem, Part
from garage_core.services.base import RecordService
from garage_core.stock import adjusted_quantity, derive_stock_status
from garage_core.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


class StockRecordService(RecordService):
    """Inventory items and parts: quantity changes always re-derive the status."""

    label = 'Record'

    def prepare_create(self, values):
        values['quantity'] = values.get('quantity') or 0
        values['status'] = derive_stock_status(
            values['quantity'], values.get('min_stock_level'), values.get('status')
        )
        return values

    def prepare_update(self, record, values):
        if 'quantity' in values:
            values['quantity'] = values['quantity'] or 0
            minimum = values['min_stock_level'] if 'min_stock_level' in values else record.min_stock_level
            status = values.get('status') or record.status
            values['status'] = derive_stock_status(values['quantity'], minimum, status)
        return values

    def list_by_category(self, service_id, category):
        return self.query(self.model.service_id == service_id, self.model.category == category)

    def list_by_status(self, service_id, status):
        return self.query(self.model.service_id == service_id, self.model.status == status)

    def _locked(self, record_id):
        record = db.session.execute(
            db.select(self.model).where(self.id_column == record_id).with_for_update()
        ).scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"{self.label} not found")
        return record

    def adjust_quantity(self, record_id, delta):
        """Add ``delta`` (clamped at zero) under a row lock; returns the new quantity."""
        with self.guard('update'):
            record = self._locked(record_id)

            quantity = adjusted_quantity(record.quantity, delta)
            record.quantity = quantity
            record.status = derive_stock_status(quantity, record.min_stock_level, record.status)
            record.updated_at = utcnow()
            db.session.commit()

        logger.info("%s %s adjusted by %+d to %d", self.label, record_id, delta, quantity)
        return quantity

    def remove_stock(self, record_id, quantity):
        """Take ``quantity`` out of stock under a row lock; returns the amount removed.

        Unlike adjust_quantity() this never clamps: when less is on hand the
        row is left untouched and ServiceError is raised.
        """
        with self.guard('update'):
            record = self._locked(record_id)
            available = record.quantity or 0
            if available < quantity:
                raise ServiceError(f"Insufficient stock. Available: {available} {record.unit or 'units'}.")

            left = available - quantity
            record.quantity = left
            record.status = derive_stock_status(left, record.min_stock_level, record.status)
            record.updated_at = utcnow()
            db.session.commit()

        logger.info("%s %s: %d removed, %d left", self.label, record_id, available - left, left)
        return available - left


class InventoryService(StockRecordService):
    model = InventoryItem
    entity = 'inventory item'
    label = 'Inventory item'


class PartService(StockRecordService):
    model = Part
    entity = 'part'
    label = 'Part'

    def list_by_make(self, service_id, make):
        return self.query(Part.service_id == service_id, Part.make == make)


inventory = InventoryService()
parts = PartService()
