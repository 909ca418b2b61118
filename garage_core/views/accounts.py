# garage_core/views/accounts.py
from flask import Blueprint, abort, jsonify
from flask_babel import gettext as _

from garage_core.context import role_required, tenant_context, tenant_required
from garage_core.errors import ServiceError
from garage_core.forms import MemberForm, MemberUpdateForm, ServiceForm, load_form
from garage_core.listing import count_by, filter_records
from garage_core.services.accounts import tenants, users
from garage_core.views import json_body, list_response, query_args

bp = Blueprint('accounts', __name__)


# ========================
# Service (tenant)
# ========================

def current_service():
    service = tenants.get(tenant_context().service_id)
    if service is None:
        abort(404, description="Service not found")
    return service


@bp.route('/service')
@tenant_required
def get_service():
    return jsonify(current_service().to_dict())


@bp.route('/service', methods=['PATCH'])
@role_required(['owner'])
def update_service():
    service = current_service()
    values = load_form(ServiceForm, json_body(), partial=True)
    return jsonify(tenants.update(service.service_id, values).to_dict())


@bp.route('/service', methods=['DELETE'])
@role_required(['owner'])
def delete_service():
    tenants.delete(current_service().service_id)
    return '', 204


# ========================
# Members
# ========================

def member_or_404(uid):
    user = users.get_in_service(uid, tenant_context().service_id)
    if user is None:
        abort(404, description="User not found")
    return user


@bp.route('/users')
@role_required(['owner'])
def list_users():
    args = query_args('q', 'role')
    records = filter_records(
        users.list_by_service(tenant_context().service_id),
        args['q'], ('display_name', 'email'), user_role=args['role'],
    )
    return list_response(records, {'total': len(records), 'by_role': count_by(records, 'user_role', ('owner', 'member'))})


@bp.route('/users', methods=['POST'])
@role_required(['owner'])
def create_user():
    values = load_form(MemberForm, json_body())
    uid = users.add_member(tenant_context().service_id, values)
    return jsonify(users.get(uid).to_dict()), 201


@bp.route('/users/<uid>')
@role_required(['owner'])
def get_user(uid):
    return jsonify(member_or_404(uid).to_dict())


@bp.route('/users/<uid>', methods=['PATCH'])
@role_required(['owner'])
def update_user(uid):
    user = member_or_404(uid)
    values = load_form(MemberUpdateForm, json_body(), partial=True)
    if user.uid == tenant_context().uid and values.get('user_role', 'owner') != 'owner':
        raise ServiceError(_("You cannot remove your own owner role."))
    return jsonify(users.update(user.uid, values).to_dict())


@bp.route('/users/<uid>', methods=['DELETE'])
@role_required(['owner'])
def delete_user(uid):
    user = member_or_404(uid)
    if user.uid == tenant_context().uid:
        raise ServiceError(_("You cannot remove your own account."))
    users.remove_member(tenant_context().service_id, user.uid)
    return '', 204
