# garage_core/services/jobs.py
import json
import logging

from garage_core.models import Job
from garage_core.services.base import RecordService

logger = logging.getLogger(__name__)


def parse_work_items(job_list):
    """Work items of a job as ``{title, price}`` dicts.

    ``job_list`` is the stored JSON text; entries may be plain strings (older
    jobs) or objects. Unreadable text yields an empty list.
    """
    if not job_list:
        return []
    if isinstance(job_list, str):
        try:
            entries = json.loads(job_list)
        except ValueError:
            logger.warning("Ignoring unreadable job list: %r", job_list[:80])
            return []
    else:
        entries = job_list
    if not isinstance(entries, list):
        return []

    items = []
    for entry in entries:
        if isinstance(entry, str):
            items.append({'title': entry, 'price': 0})
        elif isinstance(entry, dict):
            items.append({'title': str(entry.get('title') or ''), 'price': float(entry.get('price') or 0)})
    return items


def encode_work_list(work_list):
    """JSON text for the ``job_list`` column; None for an empty list."""
    if work_list is None:
        return None
    if isinstance(work_list, str):
        work_list = parse_work_items(work_list)
    items = [
        item if isinstance(item, str) else {'title': item.get('title'), 'price': float(item.get('price') or 0)}
        for item in work_list
    ]
    return json.dumps(items) if items else None


class JobService(RecordService):
    model = Job
    entity = 'job'
    owner_fields = ('customer_id', 'vehicle_id')

    def list_by_customer(self, customer_id):
        return self.query(Job.customer_id == customer_id)

    def list_by_vehicle(self, vehicle_id):
        return self.query(Job.vehicle_id == vehicle_id)


jobs = JobService()
