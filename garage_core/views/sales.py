# garage_core/views/sales.py
from flask import Blueprint, jsonify, url_for

from garage_core.context import tenant_context, tenant_required
from garage_core.forms import CheckoutForm, SaleUpdateForm, load_form
from garage_core.listing import count_by, filter_records, sum_of
from garage_core.services.checkout import SaleCheckout
from garage_core.services.sales import sales
from garage_core.views import json_body, list_response, owned, query_args

bp = Blueprint('sales', __name__, url_prefix='/sales')

SALE_STATUSES = ('pending', 'completed', 'cancelled', 'refunded')


@bp.route('')
@tenant_required
def list_sales():
    args = query_args('q', 'status', 'payment_method', 'customer_id')
    records = filter_records(
        sales.list_by_service(tenant_context().service_id),
        args['q'], ('notes', 'payment_method', 'customer_id'),
        status=args['status'], payment_method=args['payment_method'], customer_id=args['customer_id'],
    )
    completed = [sale for sale in records if sale.status == 'completed']
    stats = {
        'total': len(records),
        'by_status': count_by(records, 'status', SALE_STATUSES),
        'revenue': round(sum_of(completed, 'total_amount'), 2),
        'tax': round(sum_of(completed, 'tax'), 2),
    }
    return list_response(records, stats)


@bp.route('', methods=['POST'])
@tenant_required
def checkout():
    values = load_form(CheckoutForm, json_body())
    result = SaleCheckout().run(tenant_context().service_id, values)
    body = result.to_dict()
    body['download_url'] = url_for('invoices.download_pdf', invoice_id=result.invoice_id)
    return jsonify(body), 201


@bp.route('/<sale_id>')
@tenant_required
def get_sale(sale_id):
    return jsonify(owned(sales, sale_id).to_dict())


@bp.route('/<sale_id>', methods=['PATCH'])
@tenant_required
def update_sale(sale_id):
    sale = owned(sales, sale_id)
    values = load_form(SaleUpdateForm, json_body(), partial=True)
    return jsonify(sales.update(sale.sale_id, values).to_dict())


@bp.route('/<sale_id>', methods=['DELETE'])
@tenant_required
def delete_sale(sale_id):
    sales.delete(owned(sales, sale_id).sale_id)
    return '', 204
