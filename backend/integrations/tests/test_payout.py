from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.test import TestCase

from common.exceptions import ExternalServiceError
from integrations.payout import PayoutClient
from orders.tests.helpers import create_bank_account
from users.models import User


def _response(status_code, data):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data
    resp.text = str(data)
    return resp


class PayoutClientTests(TestCase):
    def setUp(self):
        user = User.objects.create_user(username='customer', password='pass')
        self.account = create_bank_account(user)
        self.payout = PayoutClient({
            'base_url': 'https://rail.example.com/v1/',
            'api_key': 'secret-key',
            'timeout': 5,
            'retries': 1,
        })

    @patch('integrations.payout.requests.post')
    def test_successful_payout(self, mock_post):
        mock_post.return_value = _response(201, {'status': 'succeeded', 'transaction_id': 'TX-1'})

        result = self.payout.send_payout(self.account, Decimal('700000.00'), 'key-1', reference='RF-ABC')

        self.assertTrue(result.success)
        self.assertEqual(result.external_transaction_id, 'TX-1')
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], 'https://rail.example.com/v1/payouts')
        self.assertEqual(kwargs['headers']['Idempotency-Key'], 'key-1')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer secret-key')
        self.assertEqual(kwargs['json']['amount'], '700000.00')
        self.assertEqual(kwargs['json']['beneficiary']['account_number'], '6225880112345678')
        self.assertEqual(kwargs['timeout'], 5)

    @patch('integrations.payout.time.sleep')
    @patch('integrations.payout.requests.post')
    def test_retries_server_errors_with_same_key(self, mock_post, mock_sleep):
        mock_post.side_effect = [
            _response(503, {}),
            _response(200, {'status': 'succeeded', 'transaction_id': 'TX-2'}),
        ]

        result = self.payout.send_payout(self.account, Decimal('10.00'), 'key-2')

        self.assertEqual(result.external_transaction_id, 'TX-2')
        self.assertEqual(mock_post.call_count, 2)
        keys = {call.kwargs['headers']['Idempotency-Key'] for call in mock_post.call_args_list}
        self.assertEqual(keys, {'key-2'})

    @patch('integrations.payout.time.sleep')
    @patch('integrations.payout.requests.post', side_effect=requests.ConnectionError('connection refused'))
    def test_unreachable_rail_raises(self, mock_post, mock_sleep):
        with self.assertRaises(ExternalServiceError) as ctx:
            self.payout.send_payout(self.account, Decimal('10.00'), 'key-3')
        self.assertIn('connection refused', str(ctx.exception.detail))
        self.assertEqual(mock_post.call_count, 2)

    @patch('integrations.payout.requests.post')
    def test_rejected_payout_raises(self, mock_post):
        mock_post.return_value = _response(400, {'message': 'account closed'})
        with self.assertRaises(ExternalServiceError) as ctx:
            self.payout.send_payout(self.account, Decimal('10.00'), 'key-4')
        self.assertIn('account closed', str(ctx.exception.detail))

    @patch('integrations.payout.requests.post')
    def test_unsuccessful_status_raises(self, mock_post):
        mock_post.return_value = _response(200, {'status': 'failed', 'message': 'insufficient funds'})
        with self.assertRaises(ExternalServiceError):
            self.payout.send_payout(self.account, Decimal('10.00'), 'key-5')

    @patch('integrations.payout.requests.post')
    def test_non_object_body_raises(self, mock_post):
        for body in (['ok'], 'ok', None):
            mock_post.return_value = _response(200, body)
            with self.assertRaises(ExternalServiceError):
                self.payout.send_payout(self.account, Decimal('10.00'), 'key-8')
        mock_post.return_value = _response(400, ['bad request'])
        with self.assertRaises(ExternalServiceError):
            self.payout.send_payout(self.account, Decimal('10.00'), 'key-9')

    @patch('integrations.payout.requests.post')
    def test_mock_mode_skips_network(self, mock_post):
        client = PayoutClient({'use_mock': True})
        result = client.send_payout(self.account, Decimal('10.00'), 'key-6')
        self.assertTrue(result.external_transaction_id.startswith('MOCK-'))
        mock_post.assert_not_called()

    def test_missing_url_raises(self):
        with self.assertRaises(ExternalServiceError):
            PayoutClient({}).send_payout(self.account, Decimal('10.00'), 'key-7')
