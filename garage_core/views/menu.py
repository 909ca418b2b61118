# garage_core/views/menu.py
from flask import Blueprint, jsonify, request

from garage_core.context import tenant_context, tenant_required
from garage_core.forms import MenuItemForm, load_form
from garage_core.listing import count_by, filter_records, sum_of
from garage_core.services.menu import menu
from garage_core.services.stock_records import inventory
from garage_core.views import json_body, list_response, owned, query_args

bp = Blueprint('menu', __name__, url_prefix='/menu')


def check_inventory_link(values):
    if values.get('inventory_item_id'):
        owned(inventory, values['inventory_item_id'])
    return values


@bp.route('')
@tenant_required
def list_menu():
    service_id = tenant_context().service_id
    if request.args.get('active') in ('1', 'true', 'yes'):
        records = menu.list_active_by_service(service_id)
    else:
        records = menu.list_by_service(service_id)

    args = query_args('q', 'status', 'category')
    records = filter_records(
        records, args['q'], ('title', 'category', 'description'),
        status=args['status'], category=args['category'],
    )
    stats = {
        'total': len(records),
        'by_status': count_by(records, 'status', ('active', 'inactive')),
        'total_price': sum_of(records, 'price'),
    }
    return list_response(records, stats)


@bp.route('', methods=['POST'])
@tenant_required
def create_menu_item():
    values = check_inventory_link(load_form(MenuItemForm, json_body()))
    menu_id = menu.create(values, service_id=tenant_context().service_id)
    return jsonify(menu.get(menu_id).to_dict()), 201


@bp.route('/<menu_id>')
@tenant_required
def get_menu_item(menu_id):
    return jsonify(owned(menu, menu_id).to_dict())


@bp.route('/<menu_id>', methods=['PATCH'])
@tenant_required
def update_menu_item(menu_id):
    item = owned(menu, menu_id)
    values = check_inventory_link(load_form(MenuItemForm, json_body(), partial=True))
    return jsonify(menu.update(item.menu_id, values).to_dict())


@bp.route('/<menu_id>', methods=['DELETE'])
@tenant_required
def delete_menu_item(menu_id):
    menu.delete(owned(menu, menu_id).menu_id)
    return '', 204
