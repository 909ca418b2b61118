# garage_core/views/__init__.py
import logging

from flask import abort, jsonify, request
from flask_wtf.csrf import CSRFError
from werkzeug.exceptions import HTTPException

from garage_core.context import tenant_context
from garage_core.errors import FormValidationError, ServiceError

logger = logging.getLogger(__name__)


def json_body():
    payload = request.get_json(silent=True)
    return {} if payload is None else payload


def owned(service, record_id):
    """The tenant's record or a 404; other tenants' records are reported as missing."""
    record = service.get_in_service(record_id, tenant_context().service_id)
    if record is None:
        abort(404, description=f"{service.entity.capitalize()} not found")
    return record


def list_response(records, stats=None):
    return jsonify({'items': [record.to_dict() for record in records], 'stats': stats or {}})


def query_args(*names):
    """Filter arguments from the query string; missing ones come back as None."""
    return {name: request.args.get(name) for name in names}


def _stringify(errors):
    if isinstance(errors, dict):
        return {key: _stringify(value) for key, value in errors.items()}
    if isinstance(errors, (list, tuple)):
        return [_stringify(value) for value in errors]
    return str(errors)


def register_error_handlers(app):
    @app.errorhandler(FormValidationError)
    def handle_form_error(e):
        return jsonify({'error': e.message, 'fields': _stringify(e.errors)}), 400

    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        body = {'error': e.message}
        step = getattr(e, 'step', None)
        if step:
            body['step'] = step
        return jsonify(body), e.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        return jsonify({'error': e.description}), 400

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.description}), e.code


def register_views(app):
    from .accounts import bp as accounts_bp
    from .auth import bp as auth_bp
    from .customers import customers_bp, vehicles_bp
    from .invoices import bp as invoices_bp
    from .jobs import bp as jobs_bp
    from .menu import bp as menu_bp
    from .sales import bp as sales_bp
    from .stock import inventory_bp, parts_bp

    for blueprint in (auth_bp, accounts_bp, customers_bp, vehicles_bp, jobs_bp,
                      inventory_bp, parts_bp, menu_bp, sales_bp, invoices_bp):
        app.register_blueprint(blueprint)

    register_error_handlers(app)
