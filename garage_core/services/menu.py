# garage_core/services/menu.py
from garage_core.models import MenuItem
from garage_core.services.base import RecordService


class MenuService(RecordService):
    model = MenuItem
    entity = 'menu item'

    def prepare_create(self, values):
        if not values.get('inventory_item_id'):
            values['quantity'] = None
        return values

    def prepare_update(self, record, values):
        if 'inventory_item_id' in values and not values['inventory_item_id']:
            values['quantity'] = None
        return values

    def list_active_by_service(self, service_id):
        return self.query(MenuItem.service_id == service_id, MenuItem.status == 'active')

    def list_by_category(self, service_id, category):
        return self.query(MenuItem.service_id == service_id, MenuItem.category == category)


menu = MenuService()
