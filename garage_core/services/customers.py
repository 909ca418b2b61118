# garage_core/services/customers.py
from garage_core.models import Customer, Vehicle
from garage_core.services.base import RecordService


class CustomerService(RecordService):
    model = Customer
    entity = 'customer'

    def prepare_create(self, values):
        if values.get('job_count') is None:
            values['job_count'] = 0
        return values


class VehicleService(RecordService):
    model = Vehicle
    entity = 'vehicle'
    owner_fields = ('customer_id',)

    def list_by_customer(self, customer_id):
        return self.query(Vehicle.customer_id == customer_id)


customers = CustomerService()
vehicles = VehicleService()
