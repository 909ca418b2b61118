# garage_core/services/sales.py
from garage_core.models import Sale
from garage_core.services.base import RecordService
from garage_core.utils.timestamps import sort_key


def by_sale_date(records):
    """Newest sale first; a sale without a date sorts by when it was created."""
    return sorted(records, key=lambda s: sort_key(s.sale_date or s.created_at), reverse=True)


class SaleService(RecordService):
    model = Sale
    entity = 'sale'
    owner_fields = ('customer_id',)

    def list_by_service(self, service_id):
        return by_sale_date(self.query(Sale.service_id == service_id))

    def list_by_customer(self, service_id, customer_id):
        return by_sale_date(self.query(Sale.service_id == service_id, Sale.customer_id == customer_id))

    def list_by_status(self, service_id, status):
        return by_sale_date(self.query(Sale.service_id == service_id, Sale.status == status))


sales = SaleService()
