# garage_core/services/base.py
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from garage_core import db
from garage_core.errors import NotFoundError, ServiceError
from garage_core.utils.timestamps import sort_key, utcnow

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = ('service_id', 'created_at', 'updated_at')


def blank_to_none(values):
    """Optional strings submitted empty are stored as None."""
    return {
        key: (None if isinstance(value, str) and not value.strip() else value)
        for key, value in values.items()
    }


class RecordService:
    """CRUD for one table, with the same error policy for every entity.

    Subclasses set ``model`` and ``entity`` and add their list_by_* queries.
    ``owner_fields`` are fixed at creation and ignored by update().
    """

    model = None
    entity = 'record'
    owner_fields = ()

    @property
    def id_column(self):
        return getattr(self.model, self.model.ID_FIELD)

    @contextmanager
    def guard(self, verb):
        """Roll back, log and re-raise database failures as ServiceError."""
        try:
            yield
        except ServiceError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Error trying to %s %s: %s", verb, self.entity, e)
            message = str(getattr(e, 'orig', None) or '') or f"Failed to {verb} {self.entity}"
            raise ServiceError(message) from e

    def _protected(self, updating=False):
        protected = {self.model.ID_FIELD, *IDENTITY_FIELDS}
        if updating:
            protected.update(self.owner_fields)
        return protected

    def _column_values(self, data, protected=()):
        columns = set(self.model.__table__.columns.keys())
        return {
            key: value for key, value in blank_to_none(data).items()
            if key in columns and key not in protected
        }

    def prepare_create(self, values):
        """Hook for derived fields on create."""
        return values

    def prepare_update(self, record, values):
        """Hook for derived fields on update."""
        return values

    def create(self, data, **keys):
        values = self._column_values(data, protected=self._protected())
        values.update(keys)
        values = self.prepare_create(values)
        record = self.model(**values)
        with self.guard('create'):
            db.session.add(record)
            db.session.commit()
        logger.info("%s %s created", self.entity.capitalize(), record.record_id)
        return record.record_id

    def get(self, record_id):
        if not record_id:
            return None
        with self.guard('fetch'):
            return db.session.get(self.model, record_id)

    def get_in_service(self, record_id, service_id):
        """The record when it belongs to ``service_id``; None otherwise."""
        record = self.get(record_id)
        if record is None or getattr(record, 'service_id', None) != service_id:
            return None
        return record

    def require(self, record_id, service_id=None):
        record = self.get(record_id) if service_id is None else self.get_in_service(record_id, service_id)
        if record is None:
            raise NotFoundError(f"{self.entity.capitalize()} not found")
        return record

    def update(self, record_id, data):
        record = self.require(record_id)
        values = self._column_values(data, protected=self._protected(updating=True))
        with self.guard('update'):
            values = self.prepare_update(record, values)
            for key, value in values.items():
                setattr(record, key, value)
            record.updated_at = utcnow()
            db.session.commit()
        logger.info("%s %s updated (%s)", self.entity.capitalize(), record_id, ', '.join(sorted(values)))
        return record

    def delete(self, record_id):
        with self.guard('delete'):
            record = db.session.get(self.model, record_id)
            if record is not None:
                db.session.delete(record)
                db.session.commit()
        logger.info("%s %s deleted", self.entity.capitalize(), record_id)

    def query(self, *criteria, order_by=None):
        """Equality-filtered rows, newest first unless ``order_by`` is given."""
        order = order_by if order_by is not None else (self.model.created_at.desc(),)
        with self.guard('fetch'):
            return db.session.execute(
                db.select(self.model).where(*criteria).order_by(*order)
            ).scalars().all()

    def list_by_service(self, service_id):
        return self.query(self.model.service_id == service_id)


def newest_first(records, field):
    return sorted(records, key=lambda r: sort_key(getattr(r, field)), reverse=True)
