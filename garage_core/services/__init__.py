# garage_core/services/__init__.py
from .accounts import tenants, users
from .checkout import JobInvoicing, SaleCheckout
from .customers import customers, vehicles
from .invoices import invoices
from .jobs import jobs
from .menu import menu
from .sales import sales
from .stock_records import inventory, parts
