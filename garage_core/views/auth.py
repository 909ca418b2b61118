# garage_core/views/auth.py
import logging

from flask import Blueprint, jsonify
from flask_babel import gettext as _
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from garage_core.forms import (
    LoginForm, PasswordResetForm, PasswordResetRequestForm, RegisterForm, load_form,
)
from garage_core.services.accounts import tenants, users
from garage_core.utils.email import send_password_reset_email
from garage_core.views import json_body

logger = logging.getLogger(__name__)

bp = Blueprint('auth', __name__, url_prefix='/auth')


def session_payload(user):
    service = tenants.get(user.service_id) if user.service_id else None
    return {'user': user.to_dict(), 'service': service.to_dict() if service else None}


@bp.route('/register', methods=['POST'])
def register():
    values = load_form(RegisterForm, json_body())
    user = users.register_owner(values)
    login_user(user)
    return jsonify(session_payload(user)), 201


@bp.route('/login', methods=['POST'])
def login():
    payload = json_body()
    values = load_form(LoginForm, payload)
    user = users.authenticate(values['email'], values['password'])
    if user is None:
        logger.warning("Failed login for %s", values['email'])
        return jsonify({'error': _("Invalid email or password.")}), 401
    login_user(user, remember=bool(payload.get('remember')))
    logger.info("User %s logged in", user.uid)
    return jsonify(session_payload(user))


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': _("You have been logged out.")})


@bp.route('/me')
@login_required
def me():
    return jsonify(session_payload(current_user))


@bp.route('/csrf-token')
def csrf_token():
    return jsonify({'csrf_token': generate_csrf()})


@bp.route('/password-reset', methods=['POST'])
def request_password_reset():
    values = load_form(PasswordResetRequestForm, json_body())
    user = users.get_by_email(values['email'])
    if user is not None:
        send_password_reset_email(user, users.make_reset_token(user))
    # Same answer whether or not the email is registered
    return jsonify({'message': _("If that email is registered, a reset link has been sent.")})


@bp.route('/password-reset/<token>', methods=['POST'])
def reset_password(token):
    values = load_form(PasswordResetForm, json_body())
    users.reset_password(token, values['password'])
    return jsonify({'message': _("Your password has been updated.")})
