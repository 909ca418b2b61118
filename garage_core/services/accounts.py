# garage_core/services/accounts.py
import logging

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from garage_core import bcrypt, db
from garage_core.errors import ServiceError
from garage_core.models import Service, User, generate_id
from garage_core.services.base import RecordService, blank_to_none

logger = logging.getLogger(__name__)

RESET_SALT = 'password-reset'


def hash_password(password):
    return bcrypt.generate_password_hash(password).decode('utf-8')


class UserService(RecordService):
    model = User
    entity = 'user'

    def prepare_create(self, values):
        if values.get('email'):
            values['email'] = values['email'].strip().lower()
        if values.get('password'):
            values['password'] = hash_password(values['password'])
        return values

    def prepare_update(self, record, values):
        values.pop('email', None)
        password = values.pop('password', None)
        if password:
            values['password'] = hash_password(password)
        return values

    def get_by_email(self, email):
        if not email:
            return None
        rows = self.query(User.email == email.strip().lower())
        return rows[0] if rows else None

    def authenticate(self, email, password):
        user = self.get_by_email(email)
        if user is None or not user.password:
            return None
        if not bcrypt.check_password_hash(user.password, password):
            return None
        return user

    def register_owner(self, values):
        """Create an owner account together with the service it owns.

        The service ID is the owner's uid, so both rows are written in one commit.
        """
        values = blank_to_none(values)
        if self.get_by_email(values['email']):
            raise ServiceError("An account with this email already exists.")

        uid = generate_id()
        user = User(
            uid=uid,
            email=values['email'].strip().lower(),
            password=hash_password(values['password']),
            display_name=values.get('display_name'),
            owner_name=values.get('owner_name') or values.get('display_name'),
            service_id=uid,
            user_role='owner',
        )
        service = Service(
            service_id=uid,
            owner_id=uid,
            service_type=values.get('service_type') or 'garage',
            service_name=values.get('service_name'),
            member_count=1,
            phone_number=values.get('phone_number'),
            address=values.get('address'),
            service_gst_number=values.get('service_gst_number'),
        )
        with self.guard('create'):
            db.session.add_all([user, service])
            db.session.commit()
        logger.info("Registered owner %s with service %s", user.email, service.service_id)
        return user

    def add_member(self, service_id, values):
        if self.get_by_email(values.get('email')):
            raise ServiceError("An account with this email already exists.")
        uid = self.create(values, service_id=service_id)
        tenants.refresh_member_count(service_id)
        return uid

    def remove_member(self, service_id, uid):
        self.delete(uid)
        tenants.refresh_member_count(service_id)

    # -------------------
    # Password reset
    # -------------------

    def _serializer(self):
        return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=RESET_SALT)

    def make_reset_token(self, user):
        # Token stops validating once the password hash changes
        return self._serializer().dumps({'uid': user.uid, 'pw': (user.password or '')[-12:]})

    def reset_password(self, token, new_password):
        max_age = current_app.config.get('PASSWORD_RESET_MAX_AGE', 3600)
        try:
            payload = self._serializer().loads(token, max_age=max_age)
        except (SignatureExpired, BadSignature):
            raise ServiceError("The reset link is invalid or has expired.")

        user = self.get(payload.get('uid'))
        if user is None or (user.password or '')[-12:] != payload.get('pw'):
            raise ServiceError("The reset link is invalid or has expired.")
        self.update(user.uid, {'password': new_password})
        return user


class TenantService(RecordService):
    model = Service
    entity = 'service'
    owner_fields = ('owner_id',)

    def get_by_owner(self, owner_id):
        # Service IDs equal the owner's uid
        return self.get(owner_id)

    def refresh_member_count(self, service_id):
        service = self.get(service_id)
        if service is None:
            return
        with self.guard('update'):
            service.member_count = db.session.execute(
                db.select(db.func.count()).select_from(User).where(User.service_id == service_id)
            ).scalar_one()
            db.session.commit()


users = UserService()
tenants = TenantService()
