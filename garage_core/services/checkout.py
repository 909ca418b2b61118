# garage_core/services/checkout.py
"""Multi-record workflows: selling stock and invoicing a job.

Both run as a saga. Each completed step registers how to undo itself; when a
later step fails the undo actions run newest first and a CheckoutError naming
the failed step is raised.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app

from garage_core.errors import CheckoutError, ServiceError
from garage_core.pricing import line_totals, money, sale_totals, to_decimal
from garage_core.services.accounts import tenants
from garage_core.services.customers import customers, vehicles
from garage_core.services.invoices import invoices
from garage_core.services.jobs import jobs, parse_work_items
from garage_core.services.sales import sales
from garage_core.services.stock_records import inventory
from garage_core.utils.pdf_generator import generate_invoice_pdf
from garage_core.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

WALK_IN = 'walk-in'
SALE_VEHICLE = 'N/A'


def invoice_storage():
    return current_app.extensions['invoice_storage']


def format_number(value):
    """5 -> '5', 12.50 -> '12.5' (no exponent, no trailing zeros)."""
    return format(to_decimal(value).normalize(), "f")


def vehicle_description(vehicle):
    return vehicle.describe() if vehicle is not None else 'Unknown Vehicle'


class Saga:
    def __init__(self, label):
        self.label = label
        self.completed = []
        self._undo = []

    def step(self, name, action, undo=None):
        try:
            result = action()
        except Exception as e:
            message = e.message if isinstance(e, ServiceError) else (str(e) or f"{name} failed")
            logger.error("%s failed at step '%s': %s", self.label, name, message)
            self.compensate()
            raise CheckoutError(name, message) from e
        self.completed.append(name)
        if undo is not None:
            self.add_undo(name, undo)
        return result

    def add_undo(self, name, undo):
        self._undo.append((name, undo))

    def compensate(self):
        while self._undo:
            name, undo = self._undo.pop()
            try:
                undo()
                logger.info("%s: undid step '%s'", self.label, name)
            except Exception as e:
                logger.error("%s: could not undo step '%s': %s", self.label, name, e)


def build_pdf_data(invoice, service=None, customer=None, customer_name=None, vehicle_info=None):
    """Everything the PDF renderer needs for one invoice."""
    return {
        'invoice_number': invoice.invoice_number,
        'issue_date': invoice.issue_date,
        'due_date': invoice.due_date,
        'status': invoice.status,
        'customer_name': customer_name or (customer.customer_name if customer else None) or 'Unknown Customer',
        'customer_email': customer.customer_email if customer else None,
        'customer_phone': customer.customer_phone if customer else None,
        'customer_address': customer.customer_address if customer else None,
        'customer_gst_number': customer.customer_gst_number if customer else None,
        'vehicle_info': vehicle_info,
        'work_items': invoice.work_items or [],
        'subtotal': invoice.subtotal,
        'tax': invoice.tax,
        'discount': invoice.discount,
        'total': invoice.total,
        'service_name': (service.service_name if service else None)
        or current_app.config.get('DEFAULT_SERVICE_NAME'),
        'service_phone': service.phone_number if service else None,
        'service_address': service.address if service else None,
        'service_gst_number': service.service_gst_number if service else None,
        'notes': invoice.notes,
    }


def render_invoice(invoice):
    """Render a stored invoice, looking up its customer, vehicle and service."""
    service = tenants.get(invoice.service_id)
    customer = None
    if invoice.customer_id and invoice.customer_id != WALK_IN:
        customer = customers.get_in_service(invoice.customer_id, invoice.service_id)

    if invoice.vehicle_id == SALE_VEHICLE:
        vehicle_info = 'Product Sale'
    else:
        vehicle_info = vehicle_description(vehicles.get_in_service(invoice.vehicle_id, invoice.service_id))

    customer_name = None
    if invoice.customer_id == WALK_IN:
        customer_name = _walk_in_name(invoice.notes) or 'Walk-in Customer'

    data = build_pdf_data(invoice, service, customer, customer_name, vehicle_info)
    return generate_invoice_pdf(data, preview=invoice.status == 'draft')


def _walk_in_name(notes):
    for line in (notes or '').splitlines():
        if line.startswith('Walk-in Customer: '):
            return line[len('Walk-in Customer: '):].strip()
    return None


@dataclass
class CheckoutResult:
    sale_id: str
    invoice_id: str
    invoice_number: str
    pdf_url: str
    pdf_bytes: bytes = field(repr=False)
    totals: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'sale_id': self.sale_id,
            'invoice_id': self.invoice_id,
            'invoice_number': self.invoice_number,
            'pdf_url': self.pdf_url,
            **self.totals,
        }


class SaleCheckout:
    """Sell inventory items: sale -> stock decrement -> invoice -> PDF -> upload -> URL."""

    def __init__(self, storage=None):
        self.storage = storage

    def run(self, service_id, request):
        storage = self.storage or invoice_storage()
        saga = Saga('Checkout')

        lines, stock = saga.step('validate', lambda: self.validate(service_id, request))
        walk_in = bool(request.get('walk_in'))
        customer = None if walk_in else customers.get_in_service(request.get('customer_id'), service_id)

        sale_items = [self.sale_item(stock[line['inventory_item_id']], line) for line in lines]
        totals = sale_totals(
            [line_totals(item['quantity'], item['unit_price'], item['tax_rate']) for item in sale_items],
            request.get('discount_rate') or 0,
        )
        notes = self.merge_notes(request)
        now = utcnow()

        sale_id = saga.step(
            'create_sale',
            lambda: sales.create({
                'sale_date': now,
                'sale_items': sale_items,
                'payment_method': request.get('payment_method') or 'cash',
                'status': 'completed',
                'notes': notes,
                **totals.as_floats(),
            }, service_id=service_id, customer_id=None if walk_in else customer.customer_id),
            undo=lambda: sales.update(sale_id, {'status': 'cancelled'}),
        )

        for item in sale_items:
            item_id, quantity = item['inventory_item_id'], item['quantity']
            removed = saga.step('decrement_stock', lambda: inventory.remove_stock(item_id, quantity))
            saga.add_undo(
                'decrement_stock',
                lambda item_id=item_id, removed=removed: inventory.adjust_quantity(item_id, removed),
            )

        work_items = [
            {'title': self.work_item_title(item), 'price': item['total_price']}
            for item in sale_items
        ]
        invoice_id = saga.step(
            'create_invoice',
            lambda: invoices.create({
                'work_items': work_items,
                'subtotal': float(totals.subtotal),
                'tax': float(totals.tax),
                'discount': float(totals.discount),
                'total': float(totals.total),
                'status': 'paid',
                'issue_date': now,
                'due_date': now,
                'paid_date': now,
                'notes': notes,
            }, service_id=service_id, job_id=f"sale-{sale_id}",
                customer_id=WALK_IN if walk_in else customer.customer_id, vehicle_id=SALE_VEHICLE),
            undo=lambda: invoices.delete(invoice_id),
        )
        invoice = saga.step('load_invoice', lambda: invoices.require(invoice_id))

        def render():
            data = build_pdf_data(
                invoice,
                service=tenants.get(service_id),
                customer=customer,
                customer_name=(request.get('walk_in_customer_name') or '').strip() if walk_in else None,
                vehicle_info='Product Sale',
            )
            data['tax_rate'] = totals.effective_tax_rate
            return generate_invoice_pdf(data)

        pdf_bytes = saga.step('render_pdf', render)
        pdf_url = saga.step(
            'upload_pdf',
            lambda: storage.upload(invoice_id, pdf_bytes),
            undo=lambda: storage.delete(invoice_id),
        )
        saga.step('attach_pdf', lambda: invoices.set_pdf_url(invoice_id, pdf_url))

        logger.info("Sale %s checked out with invoice %s (%s)", sale_id, invoice.invoice_number, pdf_url)
        return CheckoutResult(
            sale_id=sale_id,
            invoice_id=invoice_id,
            invoice_number=invoice.invoice_number,
            pdf_url=pdf_url,
            pdf_bytes=pdf_bytes,
            totals=totals.as_floats(),
        )

    def validate(self, service_id, request):
        """Check the request against current stock; returns (lines, {item_id: item})."""
        lines = request.get('items') or []
        if not lines:
            raise ServiceError("Add at least one item to the sale.")

        if request.get('walk_in'):
            if not (request.get('walk_in_customer_name') or '').strip():
                raise ServiceError("Please enter walk-in customer name.")
        elif customers.get_in_service(request.get('customer_id'), service_id) is None:
            raise ServiceError("Customer not found.")

        stock = {}
        requested = {}
        for line in lines:
            item_id = line.get('inventory_item_id')
            item = stock.get(item_id) or inventory.get_in_service(item_id, service_id)
            if item is None:
                raise ServiceError("Inventory item not found.")
            if item.status == 'inactive':
                raise ServiceError(f"{item.item_name or 'This product'} is inactive and cannot be sold.")
            stock[item_id] = item

            quantity = line.get('quantity')
            if quantity is None or quantity <= 0:
                raise ServiceError("Quantity must be greater than 0.")
            unit_price = line.get('unit_price')
            if unit_price is not None and to_decimal(unit_price) < 0:
                raise ServiceError("Unit price must be a valid non-negative number.")
            if to_decimal(line.get('tax_rate')) < 0:
                raise ServiceError("Tax rate must be a valid non-negative number.")

            requested[item_id] = requested.get(item_id, 0) + quantity
            if requested[item_id] > (item.quantity or 0):
                raise ServiceError(f"Insufficient stock. Available: {item.quantity or 0} {item.unit or 'units'}.")
        return lines, stock

    @staticmethod
    def sale_item(item, line):
        unit_price = line.get('unit_price')
        if unit_price is None:
            unit_price = item.selling_price or 0
        tax_rate = line.get('tax_rate') or 0
        totals = line_totals(line['quantity'], unit_price, tax_rate)
        return {
            'inventory_item_id': item.item_id,
            'item_name': item.item_name or 'Unnamed Product',
            'item_code': item.item_code,
            'quantity': line['quantity'],
            'unit': item.unit,
            'unit_price': float(money(unit_price)),
            'total_price': float(totals.total_price),
            'tax_rate': float(to_decimal(tax_rate)),
            'tax_amount': float(totals.tax_amount),
        }

    @staticmethod
    def work_item_title(item):
        title = f"{item['item_name']} x {format_number(item['quantity'])}"
        if to_decimal(item['tax_rate']) > Decimal(0):
            title += f" (Tax {format_number(item['tax_rate'])}%)"
        return title

    @staticmethod
    def merge_notes(request):
        notes = [(request.get('notes') or '').strip()]
        if request.get('walk_in'):
            name = (request.get('walk_in_customer_name') or '').strip()
            gst = (request.get('walk_in_customer_gst') or '').strip()
            if name:
                notes.append(f"Walk-in Customer: {name}")
            if gst:
                notes.append(f"GSTIN: {gst}")
        return '\n'.join(n for n in notes if n) or None


class JobInvoicing:
    """Invoice a job's work list: invoice -> PDF -> upload -> URL."""

    def __init__(self, storage=None):
        self.storage = storage

    def run(self, service_id, job_id, paid_date=None):
        storage = self.storage or invoice_storage()
        saga = Saga('Job invoicing')

        job, customer, work_items = saga.step('validate', lambda: self.validate(service_id, job_id))
        vehicle = vehicles.get_in_service(job.vehicle_id, service_id)
        subtotal = sum((to_decimal(item['price']) for item in work_items), Decimal(0))
        now = utcnow()

        invoice_id = saga.step(
            'create_invoice',
            lambda: invoices.create({
                'work_items': work_items,
                'subtotal': float(money(subtotal)),
                'tax': 0.0,
                'discount': 0.0,
                'total': float(money(subtotal)),
                'status': 'paid' if paid_date else 'draft',
                'issue_date': now,
                'due_date': job.job_end_date,
                'paid_date': paid_date,
                'notes': job.job_notes,
            }, service_id=service_id, job_id=job.job_id, customer_id=job.customer_id, vehicle_id=job.vehicle_id),
            undo=lambda: invoices.delete(invoice_id),
        )
        invoice = saga.step('load_invoice', lambda: invoices.require(invoice_id))

        pdf_bytes = saga.step('render_pdf', lambda: generate_invoice_pdf(
            build_pdf_data(invoice, tenants.get(service_id), customer, vehicle_info=vehicle_description(vehicle)),
            preview=invoice.status == 'draft',
        ))
        pdf_url = saga.step(
            'upload_pdf',
            lambda: storage.upload(invoice_id, pdf_bytes),
            undo=lambda: storage.delete(invoice_id),
        )
        saga.step('attach_pdf', lambda: invoices.set_pdf_url(invoice_id, pdf_url))

        logger.info("Job %s invoiced as %s", job_id, invoice.invoice_number)
        return CheckoutResult(
            sale_id=None,
            invoice_id=invoice_id,
            invoice_number=invoice.invoice_number,
            pdf_url=pdf_url,
            pdf_bytes=pdf_bytes,
            totals={'subtotal': float(money(subtotal)), 'total': float(money(subtotal))},
        )

    @staticmethod
    def validate(service_id, job_id):
        job = jobs.get_in_service(job_id, service_id)
        if job is None:
            raise ServiceError("Job not found.")
        work_items = parse_work_items(job.job_list)
        if not work_items:
            raise ServiceError("No work items found. Please add work items with prices to generate an invoice.")
        customer = customers.get_in_service(job.customer_id, service_id)
        if customer is None:
            raise ServiceError("Customer not found.")
        return job, customer, work_items
