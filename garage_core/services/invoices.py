# garage_core/services/invoices.py
import logging

from garage_core import db
from garage_core.models import Invoice
from garage_core.services.base import RecordService
from garage_core.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def next_invoice_number(service_id, today=None):
    """Next number in the service's daily sequence, e.g. INV-20250114-0003."""
    today = today or utcnow()
    prefix = f"INV-{today.strftime('%Y%m%d')}-"
    numbers = db.session.execute(
        db.select(Invoice.invoice_number).where(
            Invoice.service_id == service_id,
            Invoice.invoice_number.like(f"{prefix}%"),
        )
    ).scalars().all()

    highest = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:04d}"


class InvoiceService(RecordService):
    model = Invoice
    entity = 'invoice'
    owner_fields = ('invoice_number', 'job_id', 'customer_id', 'vehicle_id')

    def create(self, data, **keys):
        if not keys.get('invoice_number'):
            with self.guard('create'):
                keys['invoice_number'] = next_invoice_number(keys['service_id'])
        return super().create(data, **keys)

    def list_by_job(self, job_id):
        return self.query(Invoice.job_id == job_id)

    def list_by_customer(self, customer_id):
        return self.query(Invoice.customer_id == customer_id)

    def set_pdf_url(self, invoice_id, pdf_url):
        return self.update(invoice_id, {'pdf_url': pdf_url})


invoices = InvoiceService()
