# garage_core/views/invoices.py
import logging
from io import BytesIO

from flask import Blueprint, abort, current_app, jsonify, send_file

from garage_core.context import tenant_context, tenant_required
from garage_core.forms import InvoiceForm, load_form
from garage_core.listing import count_by, filter_records, sum_of
from garage_core.pricing import invoice_totals
from garage_core.services.checkout import WALK_IN, render_invoice
from garage_core.services.customers import customers
from garage_core.services.invoices import invoices
from garage_core.services.jobs import jobs
from garage_core.utils.timestamps import utcnow
from garage_core.views import json_body, list_response, owned, query_args

logger = logging.getLogger(__name__)

bp = Blueprint('invoices', __name__, url_prefix='/invoices')

INVOICE_STATUSES = ('draft', 'sent', 'paid', 'overdue', 'cancelled')
TOTAL_FIELDS = ('work_items', 'tax', 'discount')


def check_links(values):
    if values.get('job_id') and not values['job_id'].startswith('sale-'):
        owned(jobs, values['job_id'])
    if values.get('customer_id') and values['customer_id'] != WALK_IN:
        owned(customers, values['customer_id'])


def with_totals(values, invoice=None):
    """Recompute the money fields when the items, tax or discount change."""
    if not any(name in values for name in TOTAL_FIELDS):
        return values

    def current(name, default):
        if name in values:
            return values[name]
        return getattr(invoice, name) if invoice is not None else default

    work_items = current('work_items', [])
    values.update(invoice_totals(work_items, current('tax', 0) or 0, current('discount', 0) or 0))
    return values


def with_paid_date(values, invoice=None):
    if values.get('status') == 'paid' and not values.get('paid_date'):
        if invoice is None or invoice.paid_date is None:
            values['paid_date'] = utcnow()
    return values


@bp.route('')
@tenant_required
def list_invoices():
    args = query_args('q', 'status', 'customer_id', 'job_id')
    records = filter_records(
        invoices.list_by_service(tenant_context().service_id),
        args['q'], ('invoice_number', 'notes'),
        status=args['status'], customer_id=args['customer_id'], job_id=args['job_id'],
    )
    paid = [invoice for invoice in records if invoice.status == 'paid']
    stats = {
        'total': len(records),
        'by_status': count_by(records, 'status', INVOICE_STATUSES),
        'total_amount': round(sum_of(records, 'total'), 2),
        'paid_amount': round(sum_of(paid, 'total'), 2),
    }
    return list_response(records, stats)


@bp.route('', methods=['POST'])
@tenant_required
def create_invoice():
    values = load_form(InvoiceForm, json_body())
    check_links(values)
    values = with_paid_date(with_totals(values))
    values['issue_date'] = values.get('issue_date') or utcnow()
    invoice_id = invoices.create(values, service_id=tenant_context().service_id)
    return jsonify(invoices.get(invoice_id).to_dict()), 201


@bp.route('/<invoice_id>')
@tenant_required
def get_invoice(invoice_id):
    return jsonify(owned(invoices, invoice_id).to_dict())


@bp.route('/<invoice_id>', methods=['PATCH'])
@tenant_required
def update_invoice(invoice_id):
    invoice = owned(invoices, invoice_id)
    values = load_form(InvoiceForm, json_body(), partial=True)
    values = with_paid_date(with_totals(values, invoice), invoice)
    return jsonify(invoices.update(invoice.invoice_id, values).to_dict())


@bp.route('/<invoice_id>', methods=['DELETE'])
@tenant_required
def delete_invoice(invoice_id):
    invoice = owned(invoices, invoice_id)
    if invoice.pdf_url:
        current_app.extensions['invoice_storage'].delete(invoice.invoice_id)
    invoices.delete(invoice.invoice_id)
    return '', 204


@bp.route('/<invoice_id>/pdf')
@tenant_required
def download_pdf(invoice_id):
    invoice = owned(invoices, invoice_id)
    pdf_bytes = current_app.extensions['invoice_storage'].download(invoice.invoice_id)
    if pdf_bytes is None:
        logger.info("No stored PDF for invoice %s, rendering it", invoice.invoice_id)
        pdf_bytes = render_invoice(invoice)
    if not pdf_bytes:
        abort(404, description="PDF not available")
    return send_file(
        BytesIO(pdf_bytes),
        as_attachment=True,
        download_name=f"{invoice.invoice_number}.pdf",
        mimetype='application/pdf'
    )
