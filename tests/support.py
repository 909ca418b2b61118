import shutil
import tempfile
import unittest

from garage_core import create_app, db
from garage_core.services.accounts import users


def owner_values(email='owner@example.com', service_name='Main Street Garage'):
    return {
        'email': email,
        'password': 'secret123',
        'display_name': 'Owner',
        'service_name': service_name,
        'service_type': 'garage',
        'phone_number': '555-0100',
        'address': '1 Main Street',
    }


class AppTestCase(unittest.TestCase):
    """Fresh in-memory database and a temporary invoice folder per test."""

    push_context = True

    def setUp(self):
        self.storage_dir = tempfile.mkdtemp()
        self.flask_app = create_app('testing', config_overrides={'LOCAL_STORAGE_FOLDER': self.storage_dir})
        with self.flask_app.app_context():
            db.create_all()
        self.app_context = None
        if self.push_context:
            self.app_context = self.flask_app.app_context()
            self.app_context.push()
        self.app = self.flask_app.test_client()

    def tearDown(self):
        if self.app_context is not None:
            db.session.remove()
            self.app_context.pop()
        with self.flask_app.app_context():
            db.drop_all()
        shutil.rmtree(self.storage_dir, ignore_errors=True)

    def make_owner(self, email='owner@example.com', service_name='Main Street Garage'):
        return users.register_owner(owner_values(email, service_name))


class ApiTestCase(AppTestCase):
    """Requests only; each request gets its own app context (and its own ``g``)."""

    push_context = False

    def register(self, email='owner@example.com', service_name='Main Street Garage'):
        return self.app.post('/auth/register', json=owner_values(email, service_name))

    def login(self, email='owner@example.com', password='secret123'):
        return self.app.post('/auth/login', json={'email': email, 'password': password})

    def logout(self):
        return self.app.post('/auth/logout')

    def post_ok(self, url, payload, status=201):
        rv = self.app.post(url, json=payload)
        self.assertEqual(rv.status_code, status, rv.get_json())
        return rv.get_json()
