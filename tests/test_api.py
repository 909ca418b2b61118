import unittest
from unittest import mock

from garage_core import create_app, get_locale
from garage_core.services.accounts import users
from tests.support import ApiTestCase


class AuthApiTestCase(ApiTestCase):
    def test_register_logs_the_owner_in(self):
        rv = self.register()
        self.assertEqual(rv.status_code, 201)
        data = rv.get_json()
        self.assertEqual(data['user']['email'], 'owner@example.com')
        self.assertEqual(data['user']['user_role'], 'owner')
        self.assertNotIn('password', data['user'])
        self.assertEqual(data['service']['service_id'], data['user']['uid'])

        rv = self.app.get('/auth/me')
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.get_json()['service']['service_name'], 'Main Street Garage')

    def test_register_rejects_bad_input(self):
        rv = self.app.post('/auth/register', json={'email': 'not-an-email', 'password': '123'})
        self.assertEqual(rv.status_code, 400)
        fields = rv.get_json()['fields']
        self.assertIn('email', fields)
        self.assertIn('password', fields)
        self.assertIn('service_name', fields)

    def test_duplicate_registration(self):
        self.register()
        self.logout()
        rv = self.register()
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(rv.get_json()['error'], 'An account with this email already exists.')

    def test_login_and_logout(self):
        self.register()
        self.logout()
        self.assertEqual(self.app.get('/auth/me').status_code, 401)

        rv = self.login(password='wrong-password')
        self.assertEqual(rv.status_code, 401)
        self.assertEqual(rv.get_json()['error'], 'Invalid email or password.')

        rv = self.login()
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(self.app.get('/auth/me').status_code, 200)

    def test_password_reset(self):
        self.register()
        self.logout()

        with mock.patch('garage_core.views.auth.send_password_reset_email') as send:
            rv = self.app.post('/auth/password-reset', json={'email': 'owner@example.com'})
            self.assertEqual(rv.status_code, 200)
            rv = self.app.post('/auth/password-reset', json={'email': 'nobody@example.com'})
            self.assertEqual(rv.status_code, 200)
        self.assertEqual(send.call_count, 1)
        token = send.call_args[0][1]

        rv = self.app.post(f'/auth/password-reset/{token}', json={'password': 'brand-new'})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(self.login(password='brand-new').status_code, 200)

        rv = self.app.post(f'/auth/password-reset/{token}', json={'password': 'again-new'})
        self.assertEqual(rv.status_code, 400)

    def test_csrf_token_endpoint(self):
        rv = self.app.get('/auth/csrf-token')
        self.assertEqual(rv.status_code, 200)
        self.assertTrue(rv.get_json()['csrf_token'])


class TenantApiTestCase(ApiTestCase):
    def test_requires_login(self):
        rv = self.app.get('/customers')
        self.assertEqual(rv.status_code, 401)
        self.assertEqual(rv.get_json()['error'], 'Authentication required.')

    def test_records_of_other_services_are_invisible(self):
        self.register()
        customer = self.post_ok('/customers', {'customer_name': 'Jane Doe'})
        self.logout()

        self.register(email='other@example.com', service_name='Other Garage')
        rv = self.app.get(f"/customers/{customer['customer_id']}")
        self.assertEqual(rv.status_code, 404)
        self.assertEqual(rv.get_json()['error'], 'Customer not found')
        self.assertEqual(self.app.get('/customers').get_json()['items'], [])

        rv = self.app.patch(f"/customers/{customer['customer_id']}", json={'customer_name': 'Mine now'})
        self.assertEqual(rv.status_code, 404)
        rv = self.app.post('/vehicles', json={'customer_id': customer['customer_id'], 'vehicle_number': 'X'})
        self.assertEqual(rv.status_code, 404)

    def test_members_cannot_manage_users(self):
        self.register()
        self.post_ok('/users', {'email': 'tech@example.com', 'password': 'secret123', 'user_role': 'member'})
        self.assertEqual(self.app.get('/service').get_json()['member_count'], 2)
        self.logout()

        self.login(email='tech@example.com')
        self.assertEqual(self.app.get('/users').status_code, 403)
        self.assertEqual(self.app.patch('/service', json={'service_name': 'Hijacked'}).status_code, 403)
        self.assertEqual(self.app.get('/customers').status_code, 200)
        self.assertEqual(self.app.get('/service').get_json()['service_name'], 'Main Street Garage')

    def test_owner_cannot_remove_themselves(self):
        data = self.register().get_json()
        uid = data['user']['uid']
        self.assertEqual(self.app.delete(f'/users/{uid}').status_code, 400)
        self.assertEqual(self.app.patch(f'/users/{uid}', json={'user_role': 'member'}).status_code, 400)

    def test_service_update(self):
        self.register()
        rv = self.app.patch('/service', json={'phone_number': '555-0199'})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.get_json()['phone_number'], '555-0199')
        self.assertEqual(rv.get_json()['service_name'], 'Main Street Garage')


class RecordsApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()

    def test_customer_crud(self):
        customer = self.post_ok('/customers', {
            'customer_name': 'Jane Doe', 'customer_email': '', 'customer_phone': '555-0101',
        })
        self.assertIsNone(customer['customer_email'])
        self.assertEqual(customer['customer_status'], 'active')
        self.assertEqual(customer['job_count'], 0)
        url = f"/customers/{customer['customer_id']}"

        rv = self.app.patch(url, json={'customer_notes': 'VIP'})
        self.assertEqual(rv.get_json()['customer_notes'], 'VIP')
        self.assertEqual(rv.get_json()['customer_phone'], '555-0101')

        rv = self.app.patch(url, json={'customer_email': 'broken'})
        self.assertEqual(rv.status_code, 400)
        self.assertIn('customer_email', rv.get_json()['fields'])

        listing = self.app.get('/customers?q=jane').get_json()
        self.assertEqual(listing['stats']['total'], 1)
        self.assertEqual(listing['stats']['by_status']['active'], 1)

        self.assertEqual(self.app.delete(url).status_code, 204)
        self.assertEqual(self.app.get(url).status_code, 404)

    def test_customer_requires_a_name(self):
        rv = self.app.post('/customers', json={'customer_phone': '555'})
        self.assertEqual(rv.status_code, 400)
        self.assertIn('customer_name', rv.get_json()['fields'])

    def test_inventory_adjust(self):
        item = self.post_ok('/inventory', {'item_name': 'Oil filter', 'quantity': 5, 'min_stock_level': 5,
                                           'cost_price': 4})
        self.assertEqual(item['status'], 'low-stock')
        url = f"/inventory/{item['item_id']}/adjust"

        rv = self.app.post(url, json={'delta': 10})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.get_json()['quantity'], 15)
        self.assertEqual(rv.get_json()['status'], 'active')

        rv = self.app.post(url, json={'delta': -100})
        self.assertEqual(rv.get_json()['quantity'], 0)
        self.assertEqual(rv.get_json()['status'], 'out-of-stock')

        self.assertEqual(self.app.post(url, json={}).status_code, 400)
        stats = self.app.get('/inventory').get_json()['stats']
        self.assertEqual(stats['by_status']['out-of-stock'], 1)

    def test_parts_filters(self):
        self.post_ok('/parts', {'part_name': 'Brake pad', 'make': 'Honda', 'quantity': 4, 'cost_price': 2.5})
        self.post_ok('/parts', {'part_name': 'Spark plug', 'make': 'Bosch', 'quantity': 0})

        listing = self.app.get('/parts?make=Honda').get_json()
        self.assertEqual([p['part_name'] for p in listing['items']], ['Brake pad'])
        self.assertEqual(listing['stats']['total_value'], 10.0)

    def test_menu_links_to_own_inventory_only(self):
        item = self.post_ok('/inventory', {'item_name': 'Coolant', 'quantity': 3})
        entry = self.post_ok('/menu', {'title': 'Coolant top-up', 'price': 25,
                                       'inventory_item_id': item['item_id'], 'quantity': 0.5})
        self.assertEqual(entry['quantity'], 0.5)
        rv = self.app.post('/menu', json={'title': 'Bad link', 'price': 5, 'inventory_item_id': 'missing'})
        self.assertEqual(rv.status_code, 404)
        self.post_ok('/menu', {'title': 'Old', 'price': 5, 'status': 'inactive'})
        self.assertEqual(len(self.app.get('/menu?active=1').get_json()['items']), 1)


class SalesApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()
        self.customer = self.post_ok('/customers', {'customer_name': 'Jane Doe'})
        self.oil = self.post_ok('/inventory', {'item_name': 'Engine oil', 'quantity': 10, 'selling_price': 10})
        self.filter = self.post_ok('/inventory', {'item_name': 'Oil filter', 'quantity': 3, 'selling_price': 20})

    def checkout_payload(self, **changes):
        payload = {
            'customer_id': self.customer['customer_id'],
            'payment_method': 'cash',
            'discount_rate': 10,
            'items': [
                {'inventory_item_id': self.oil['item_id'], 'quantity': 2, 'unit_price': 10, 'tax_rate': 5},
                {'inventory_item_id': self.filter['item_id'], 'quantity': 1, 'unit_price': 20},
            ],
        }
        payload.update(changes)
        return payload

    def test_checkout_and_download(self):
        result = self.post_ok('/sales', self.checkout_payload())
        self.assertEqual(result['total_amount'], 36.9)
        self.assertEqual(result['discount'], 4.1)
        self.assertRegex(result['invoice_number'], r'^INV-\d{8}-0001$')
        self.assertEqual(result['download_url'], f"/invoices/{result['invoice_id']}/pdf")

        rv = self.app.get(result['download_url'])
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.mimetype, 'application/pdf')
        self.assertTrue(rv.data.startswith(b'%PDF'))

        self.assertEqual(self.app.get(f"/inventory/{self.oil['item_id']}").get_json()['quantity'], 8)
        sale = self.app.get(f"/sales/{result['sale_id']}").get_json()
        self.assertEqual(sale['status'], 'completed')

        listing = self.app.get('/sales').get_json()
        self.assertEqual(listing['stats']['revenue'], 36.9)
        customer_sales = self.app.get(f"/customers/{self.customer['customer_id']}/sales").get_json()
        self.assertEqual(len(customer_sales['items']), 1)

    def test_checkout_validation_step_is_reported(self):
        rv = self.app.post('/sales', json=self.checkout_payload(
            items=[{'inventory_item_id': self.filter['item_id'], 'quantity': 4}],
        ))
        self.assertEqual(rv.status_code, 400)
        body = rv.get_json()
        self.assertEqual(body['step'], 'validate')
        self.assertEqual(body['error'], 'Insufficient stock. Available: 3 units.')

    def test_checkout_requires_customer_or_walk_in(self):
        rv = self.app.post('/sales', json=self.checkout_payload(customer_id=None))
        self.assertEqual(rv.status_code, 400)
        self.assertIn('customer_id', rv.get_json()['fields'])

        result = self.post_ok('/sales', self.checkout_payload(
            customer_id=None, walk_in=True, walk_in_customer_name='Sam'))
        invoice = self.app.get(f"/invoices/{result['invoice_id']}").get_json()
        self.assertEqual(invoice['customer_id'], 'walk-in')

    def test_checkout_line_errors_are_per_field(self):
        rv = self.app.post('/sales', json=self.checkout_payload(
            items=[{'inventory_item_id': self.oil['item_id'], 'quantity': 'two'}],
        ))
        self.assertEqual(rv.status_code, 400)
        self.assertIn('items', rv.get_json()['fields'])

    def test_manual_invoice_totals_are_computed(self):
        invoice = self.post_ok('/invoices', {
            'customer_id': self.customer['customer_id'],
            'work_items': [{'title': 'Labour', 'price': 50}, {'title': 'Parts', 'price': 12.5}],
            'tax': 5, 'discount': 2.5, 'status': 'paid', 'total': 1,
        })
        self.assertEqual(invoice['subtotal'], 62.5)
        self.assertEqual(invoice['total'], 65.0)
        self.assertIsNotNone(invoice['paid_date'])
        self.assertRegex(invoice['invoice_number'], r'^INV-\d{8}-\d{4}$')

        url = f"/invoices/{invoice['invoice_id']}"
        rv = self.app.patch(url, json={'discount': 0})
        self.assertEqual(rv.get_json()['total'], 67.5)

        # no stored PDF yet: rendered on demand
        rv = self.app.get(f'{url}/pdf')
        self.assertTrue(rv.data.startswith(b'%PDF'))

        self.assertEqual(self.app.delete(url).status_code, 204)
        self.assertEqual(self.app.get(url).status_code, 404)

    def test_invoice_patch_cannot_empty_work_items(self):
        invoice = self.post_ok('/invoices', {'work_items': [{'title': 'Labour', 'price': 50}]})
        rv = self.app.patch(f"/invoices/{invoice['invoice_id']}", json={'work_items': []})
        self.assertEqual(rv.status_code, 400)
        self.assertIn('work_items', rv.get_json()['fields'])

    def test_manual_invoice_needs_work_items(self):
        rv = self.app.post('/invoices', json={'work_items': []})
        self.assertEqual(rv.status_code, 400)
        self.assertIn('work_items', rv.get_json()['fields'])


class JobsApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.register()
        self.customer = self.post_ok('/customers', {'customer_name': 'Jane Doe'})
        self.vehicle = self.post_ok('/vehicles', {
            'customer_id': self.customer['customer_id'], 'vehicle_company': 'Honda', 'vehicle_number': 'KA01',
        })

    def create_job(self, **changes):
        payload = {
            'customer_id': self.customer['customer_id'],
            'vehicle_id': self.vehicle['vehicle_id'],
            'job_title': 'Full service',
            'job_start_date': '2025-01-10T09:00:00Z',
            'job_list': [{'title': 'Oil change', 'price': 40}, 'Wash'],
        }
        payload.update(changes)
        return self.post_ok('/jobs', payload)

    def test_job_work_items(self):
        job = self.create_job()
        self.assertEqual(job['work_items'], [{'title': 'Oil change', 'price': 40.0}, {'title': 'Wash', 'price': 0}])
        self.assertEqual(job['job_status'], 'pending')
        self.assertEqual(job['job_start_date'], '2025-01-10T09:00:00+00:00')

        vehicle_jobs = self.app.get(f"/vehicles/{self.vehicle['vehicle_id']}/jobs").get_json()
        self.assertEqual(len(vehicle_jobs['items']), 1)

    def test_end_date_before_start(self):
        rv = self.app.post('/jobs', json={
            'customer_id': self.customer['customer_id'], 'vehicle_id': self.vehicle['vehicle_id'],
            'job_title': 'Backwards', 'job_start_date': '2025-01-10T09:00:00Z',
            'job_end_date': '2025-01-09T09:00:00Z',
        })
        self.assertEqual(rv.status_code, 400)
        self.assertIn('job_end_date', rv.get_json()['fields'])

    def test_vehicle_must_belong_to_customer(self):
        other = self.post_ok('/customers', {'customer_name': 'John'})
        rv = self.app.post('/jobs', json={
            'customer_id': other['customer_id'], 'vehicle_id': self.vehicle['vehicle_id'], 'job_title': 'x',
        })
        self.assertEqual(rv.status_code, 400)

    def test_invoice_job(self):
        job = self.create_job()
        result = self.post_ok(f"/jobs/{job['job_id']}/invoice", {})
        self.assertEqual(result['total'], 40.0)
        self.assertEqual(result['download_url'], f"/invoices/{result['invoice_id']}/pdf")

        invoice = self.app.get(f"/invoices/{result['invoice_id']}").get_json()
        self.assertEqual(invoice['status'], 'draft')
        self.assertEqual(invoice['job_id'], job['job_id'])

        rv = self.app.get(result['download_url'])
        self.assertTrue(rv.data.startswith(b'%PDF'))

        paid = self.post_ok(f"/jobs/{job['job_id']}/invoice", {'paid_date': '2025-01-12T10:00:00Z'})
        self.assertEqual(self.app.get(f"/invoices/{paid['invoice_id']}").get_json()['status'], 'paid')
        self.assertEqual(len(self.app.get(f"/jobs/{job['job_id']}/invoices").get_json()['items']), 2)

    def test_invoice_job_without_items(self):
        job = self.create_job(job_list=[])
        rv = self.app.post(f"/jobs/{job['job_id']}/invoice", json={})
        self.assertEqual(rv.status_code, 400)
        self.assertEqual(rv.get_json()['step'], 'validate')

    def test_partial_update_runs_inline_validators(self):
        job = self.create_job()
        rv = self.app.patch(f"/jobs/{job['job_id']}", json={
            'job_start_date': '2025-01-10T09:00:00Z', 'job_end_date': '2025-01-01T09:00:00Z',
        })
        self.assertEqual(rv.status_code, 400)
        self.assertIn('job_end_date', rv.get_json()['fields'])

        rv = self.app.patch(f"/jobs/{job['job_id']}", json={'job_status': 'parked'})
        self.assertEqual(rv.status_code, 400)
        self.assertIn('job_status', rv.get_json()['fields'])
        self.assertEqual(self.app.get(f"/jobs/{job['job_id']}").get_json()['job_status'], 'pending')

    def test_job_update_keeps_links(self):
        job = self.create_job()
        rv = self.app.patch(f"/jobs/{job['job_id']}", json={'job_status': 'completed', 'vehicle_id': 'other'})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(rv.get_json()['job_status'], 'completed')
        self.assertEqual(rv.get_json()['vehicle_id'], self.vehicle['vehicle_id'])


class ResetTokenTestCase(ApiTestCase):
    def test_token_from_service_layer_works_over_http(self):
        self.register()
        self.logout()
        with self.flask_app.app_context():
            token = users.make_reset_token(users.get_by_email('owner@example.com'))
        rv = self.app.post(f'/auth/password-reset/{token}', json={'password': 'changed1'})
        self.assertEqual(rv.status_code, 200)
        self.assertEqual(self.login(password='changed1').status_code, 200)


class LocaleTestCase(unittest.TestCase):
    def test_supported_locales_come_from_app_config(self):
        app = create_app('testing', config_overrides={'BABEL_SUPPORTED_LOCALES': ['en', 'fr']})
        with app.test_request_context('/', headers={'Accept-Language': 'fr-FR,fr;q=0.9'}):
            self.assertEqual(get_locale(), 'fr')
        with app.test_request_context('/?lang=de', headers={'Accept-Language': 'en'}):
            self.assertEqual(get_locale(), 'en')
