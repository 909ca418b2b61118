# garage_core/views/stock.py
from flask import Blueprint, jsonify

from garage_core.context import tenant_context, tenant_required
from garage_core.forms import AdjustQuantityForm, InventoryItemForm, PartForm, load_form
from garage_core.listing import count_by, filter_records
from garage_core.models import STOCK_STATUSES
from garage_core.services.stock_records import inventory, parts
from garage_core.views import json_body, list_response, owned, query_args


def stock_stats(records):
    return {
        'total': len(records),
        'by_status': count_by(records, 'status', STOCK_STATUSES),
        'total_quantity': sum(record.quantity or 0 for record in records),
        'total_value': round(sum(record.total_value() for record in records), 2),
    }


def stock_blueprint(name, service, form_class, search_fields, extra_filters=()):
    """CRUD + adjust endpoints for one stock table (inventory items or parts)."""
    bp = Blueprint(name, __name__, url_prefix=f'/{name}')

    @bp.route('')
    @tenant_required
    def list_records():
        args = query_args('q', 'status', 'category', *extra_filters)
        choices = {'status': args.pop('status'), 'category': args.pop('category')}
        query = args.pop('q')
        choices.update(args)
        records = filter_records(
            service.list_by_service(tenant_context().service_id), query, search_fields, **choices
        )
        return list_response(records, stock_stats(records))

    @bp.route('', methods=['POST'])
    @tenant_required
    def create_record():
        values = load_form(form_class, json_body())
        record_id = service.create(values, service_id=tenant_context().service_id)
        return jsonify(service.get(record_id).to_dict()), 201

    @bp.route('/<record_id>')
    @tenant_required
    def get_record(record_id):
        return jsonify(owned(service, record_id).to_dict())

    @bp.route('/<record_id>', methods=['PATCH'])
    @tenant_required
    def update_record(record_id):
        record = owned(service, record_id)
        values = load_form(form_class, json_body(), partial=True)
        return jsonify(service.update(record.record_id, values).to_dict())

    @bp.route('/<record_id>', methods=['DELETE'])
    @tenant_required
    def delete_record(record_id):
        service.delete(owned(service, record_id).record_id)
        return '', 204

    @bp.route('/<record_id>/adjust', methods=['POST'])
    @tenant_required
    def adjust_record(record_id):
        record = owned(service, record_id)
        values = load_form(AdjustQuantityForm, json_body())
        service.adjust_quantity(record.record_id, values['delta'])
        return jsonify(service.get(record.record_id).to_dict())

    return bp


inventory_bp = stock_blueprint(
    'inventory', inventory, InventoryItemForm,
    ('item_name', 'item_code', 'category', 'supplier', 'location'),
)
parts_bp = stock_blueprint(
    'parts', parts, PartForm,
    ('part_name', 'part_number', 'make', 'model', 'category'),
    extra_filters=('make', 'vehicle_type'),
)
