# garage_core/views/jobs.py
from flask import Blueprint, abort, jsonify, url_for

from garage_core.context import tenant_context, tenant_required
from garage_core.forms import JobForm, JobInvoiceForm, load_form
from garage_core.listing import count_by, filter_records, sum_of
from garage_core.services.checkout import JobInvoicing
from garage_core.services.customers import customers, vehicles
from garage_core.services.invoices import invoices
from garage_core.services.jobs import encode_work_list, jobs, parse_work_items
from garage_core.views import json_body, list_response, owned, query_args

bp = Blueprint('jobs', __name__, url_prefix='/jobs')

JOB_STATUSES = ('pending', 'in-progress', 'completed', 'cancelled')


def job_dict(job):
    data = job.to_dict()
    data['work_items'] = parse_work_items(job.job_list)
    return data


def with_work_list(values, payload):
    if 'job_list' in payload:
        values['job_list'] = encode_work_list(payload['job_list'])
    return values


@bp.route('')
@tenant_required
def list_jobs():
    args = query_args('q', 'status', 'type', 'customer_id', 'vehicle_id')
    records = filter_records(
        jobs.list_by_service(tenant_context().service_id),
        args['q'], ('job_title', 'job_description', 'job_notes'),
        job_status=args['status'], job_type=args['type'],
        customer_id=args['customer_id'], vehicle_id=args['vehicle_id'],
    )
    stats = {
        'total': len(records),
        'by_status': count_by(records, 'job_status', JOB_STATUSES),
        'total_amount': sum_of(records, 'job_amount'),
    }
    return jsonify({'items': [job_dict(job) for job in records], 'stats': stats})


@bp.route('', methods=['POST'])
@tenant_required
def create_job():
    payload = json_body()
    values = with_work_list(load_form(JobForm, payload), payload)
    customer = owned(customers, values['customer_id'])
    vehicle = owned(vehicles, values['vehicle_id'])
    if vehicle.customer_id != customer.customer_id:
        abort(400, description="The vehicle does not belong to this customer.")
    job_id = jobs.create(
        values,
        service_id=tenant_context().service_id,
        customer_id=customer.customer_id,
        vehicle_id=vehicle.vehicle_id,
    )
    return jsonify(job_dict(jobs.get(job_id))), 201


@bp.route('/<job_id>')
@tenant_required
def get_job(job_id):
    return jsonify(job_dict(owned(jobs, job_id)))


@bp.route('/<job_id>', methods=['PATCH'])
@tenant_required
def update_job(job_id):
    job = owned(jobs, job_id)
    payload = json_body()
    values = with_work_list(load_form(JobForm, payload, partial=True), payload)
    return jsonify(job_dict(jobs.update(job.job_id, values)))


@bp.route('/<job_id>', methods=['DELETE'])
@tenant_required
def delete_job(job_id):
    jobs.delete(owned(jobs, job_id).job_id)
    return '', 204


@bp.route('/<job_id>/invoices')
@tenant_required
def job_invoices(job_id):
    job = owned(jobs, job_id)
    return list_response(invoices.list_by_job(job.job_id))


@bp.route('/<job_id>/invoice', methods=['POST'])
@tenant_required
def invoice_job(job_id):
    job = owned(jobs, job_id)
    values = load_form(JobInvoiceForm, json_body())
    result = JobInvoicing().run(tenant_context().service_id, job.job_id, paid_date=values.get('paid_date'))
    body = result.to_dict()
    body['download_url'] = url_for('invoices.download_pdf', invoice_id=result.invoice_id)
    return jsonify(body), 201
