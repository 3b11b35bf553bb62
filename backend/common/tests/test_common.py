from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from common.exceptions import BusinessValidationError, UnauthorizedActionError
from common.health import _check_payout_config
from common.permissions import authorize, is_admin
from common.utils import to_bool, parse_decimal, parse_money, quantize_money
from users.models import User


class HealthCheckTests(TestCase):
    def test_healthy(self):
        resp = APIClient().get('/healthz')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['data']['status'], 'healthy')
        self.assertEqual(resp.data['data']['services']['payout_rail']['mode'], 'mock')

    @patch('common.health._ping_cache', side_effect=RuntimeError('cache down'))
    def test_cache_failure_is_unhealthy(self, mock_ping):
        resp = APIClient().get('/healthz')
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.data['data']['services']['cache']['error'], 'cache down')

    @override_settings(PAYOUT_USE_MOCK=False, PAYOUT_RAIL_URL='', PAYOUT_RAIL_API_KEY='k')
    def test_payout_config_missing(self):
        result = _check_payout_config()
        self.assertEqual(result['status'], 'misconfigured')
        self.assertEqual(result['missing'], ['PAYOUT_RAIL_URL'])
        with self.assertRaises(RuntimeError):
            _check_payout_config(strict=True)


class ErrorEnvelopeTests(TestCase):
    def test_unauthenticated_request(self):
        resp = APIClient().get('/api/v1/violations/')
        self.assertEqual(resp.status_code, 401)
        self.assertFalse(resp.data['success'])
        self.assertEqual(resp.data['code'], 401)

    def test_field_errors_are_listed(self):
        user = User.objects.create_user(username='provider', password='pass', role='provider')
        client = APIClient()
        client.force_authenticate(user=user)
        resp = client.post('/api/v1/violations/', {'order_item_id': 'abc'}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['error_code'], 'VALIDATION_ERROR')
        self.assertIn('order_item_id', resp.data['errors'])
        self.assertIn('violation_type', resp.data['errors'])


class PermissionTests(TestCase):
    def setUp(self):
        self.customer = User.objects.create_user(username='c', password='pass', role='customer')
        self.admin = User.objects.create_user(username='a', password='pass', role='admin')
        self.staff = User.objects.create_user(username='s', password='pass', is_staff=True)

    def test_is_admin(self):
        self.assertTrue(is_admin(self.admin))
        self.assertTrue(is_admin(self.staff))
        self.assertFalse(is_admin(self.customer))
        self.assertFalse(is_admin(AnonymousUser()))

    def test_authorize(self):
        authorize(self.customer, 'customer', self.customer.id)
        authorize(self.staff, 'admin')
        with self.assertRaises(UnauthorizedActionError):
            authorize(self.customer, 'provider')
        with self.assertRaises(UnauthorizedActionError):
            authorize(self.customer, 'customer', self.admin.id)
        with self.assertRaises(UnauthorizedActionError):
            authorize(AnonymousUser(), 'customer')
        with self.assertRaises(UnauthorizedActionError):
            authorize(self.customer, 'admin')


class UtilsTests(TestCase):
    def test_to_bool(self):
        self.assertTrue(to_bool('yes'))
        self.assertFalse(to_bool('0'))
        self.assertIsNone(to_bool('maybe'))
        self.assertIsNone(to_bool(None))

    def test_money_helpers(self):
        self.assertEqual(quantize_money(Decimal('1.005')), Decimal('1.01'))
        self.assertEqual(parse_decimal('12.5'), Decimal('12.5'))
        self.assertIsNone(parse_decimal('abc'))
        self.assertIsNone(parse_decimal(''))
        self.assertEqual(parse_money('9999999999.99', '金额'), Decimal('9999999999.99'))
        with self.assertRaises(BusinessValidationError):
            quantize_money(Decimal('1e30'))
        for bad in ('1e30', '10000000000', '-0.01', 'NaN', 'abc'):
            with self.assertRaises(BusinessValidationError):
                parse_money(bad, '金额')
