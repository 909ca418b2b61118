# garage_core/views/customers.py
from flask import Blueprint, jsonify

from garage_core.context import tenant_context, tenant_required
from garage_core.forms import CustomerForm, VehicleForm, load_form
from garage_core.listing import count_by, filter_records, sum_of
from garage_core.services.customers import customers, vehicles
from garage_core.services.invoices import invoices
from garage_core.services.jobs import jobs
from garage_core.services.sales import sales
from garage_core.views import json_body, list_response, owned, query_args

customers_bp = Blueprint('customers', __name__, url_prefix='/customers')
vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/vehicles')

CUSTOMER_SEARCH = ('customer_name', 'customer_email', 'customer_phone', 'customer_gst_number')
VEHICLE_SEARCH = ('vehicle_name', 'vehicle_number', 'vehicle_company', 'vehicle_model')


# ========================
# Customers
# ========================

@customers_bp.route('')
@tenant_required
def list_customers():
    args = query_args('q', 'status', 'type')
    records = filter_records(
        customers.list_by_service(tenant_context().service_id),
        args['q'], CUSTOMER_SEARCH,
        customer_status=args['status'], customer_type=args['type'],
    )
    stats = {
        'total': len(records),
        'by_status': count_by(records, 'customer_status', ('active', 'inactive', 'blocked')),
        'total_jobs': sum_of(records, 'job_count'),
    }
    return list_response(records, stats)


@customers_bp.route('', methods=['POST'])
@tenant_required
def create_customer():
    values = load_form(CustomerForm, json_body())
    customer_id = customers.create(values, service_id=tenant_context().service_id)
    return jsonify(customers.get(customer_id).to_dict()), 201


@customers_bp.route('/<customer_id>')
@tenant_required
def get_customer(customer_id):
    return jsonify(owned(customers, customer_id).to_dict())


@customers_bp.route('/<customer_id>', methods=['PATCH'])
@tenant_required
def update_customer(customer_id):
    customer = owned(customers, customer_id)
    values = load_form(CustomerForm, json_body(), partial=True)
    return jsonify(customers.update(customer.customer_id, values).to_dict())


@customers_bp.route('/<customer_id>', methods=['DELETE'])
@tenant_required
def delete_customer(customer_id):
    customers.delete(owned(customers, customer_id).customer_id)
    return '', 204


@customers_bp.route('/<customer_id>/vehicles')
@tenant_required
def customer_vehicles(customer_id):
    customer = owned(customers, customer_id)
    return list_response(vehicles.list_by_customer(customer.customer_id))


@customers_bp.route('/<customer_id>/jobs')
@tenant_required
def customer_jobs(customer_id):
    customer = owned(customers, customer_id)
    return list_response(jobs.list_by_customer(customer.customer_id))


@customers_bp.route('/<customer_id>/sales')
@tenant_required
def customer_sales(customer_id):
    customer = owned(customers, customer_id)
    records = sales.list_by_customer(tenant_context().service_id, customer.customer_id)
    return list_response(records, {'total_amount': sum_of(records, 'total_amount')})


@customers_bp.route('/<customer_id>/invoices')
@tenant_required
def customer_invoices(customer_id):
    customer = owned(customers, customer_id)
    records = invoices.list_by_customer(customer.customer_id)
    return list_response(records, {'total': sum_of(records, 'total')})


# ========================
# Vehicles
# ========================

@vehicles_bp.route('')
@tenant_required
def list_vehicles():
    args = query_args('q', 'type', 'customer_id')
    records = filter_records(
        vehicles.list_by_service(tenant_context().service_id),
        args['q'], VEHICLE_SEARCH,
        vehicle_type=args['type'], customer_id=args['customer_id'],
    )
    stats = {'total': len(records), 'by_type': count_by(records, 'vehicle_type', ('car', 'bike', 'other'))}
    return list_response(records, stats)


@vehicles_bp.route('', methods=['POST'])
@tenant_required
def create_vehicle():
    values = load_form(VehicleForm, json_body())
    customer = owned(customers, values['customer_id'])
    vehicle_id = vehicles.create(
        values, service_id=tenant_context().service_id, customer_id=customer.customer_id
    )
    return jsonify(vehicles.get(vehicle_id).to_dict()), 201


@vehicles_bp.route('/<vehicle_id>')
@tenant_required
def get_vehicle(vehicle_id):
    return jsonify(owned(vehicles, vehicle_id).to_dict())


@vehicles_bp.route('/<vehicle_id>', methods=['PATCH'])
@tenant_required
def update_vehicle(vehicle_id):
    vehicle = owned(vehicles, vehicle_id)
    values = load_form(VehicleForm, json_body(), partial=True)
    return jsonify(vehicles.update(vehicle.vehicle_id, values).to_dict())


@vehicles_bp.route('/<vehicle_id>', methods=['DELETE'])
@tenant_required
def delete_vehicle(vehicle_id):
    vehicles.delete(owned(vehicles, vehicle_id).vehicle_id)
    return '', 204


@vehicles_bp.route('/<vehicle_id>/jobs')
@tenant_required
def vehicle_jobs(vehicle_id):
    vehicle = owned(vehicles, vehicle_id)
    return list_response(jobs.list_by_vehicle(vehicle.vehicle_id))
