from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APIClient

from common.exceptions import InvalidTransitionError, UnauthorizedActionError
from orders import services
from orders.models import OrderStatusHistory
from orders.state_machine import OrderStateMachine
from refunds.models import DepositRefund
from users.models import Notification
from .helpers import create_parties, create_order


class OrderStateMachineTests(TestCase):
    def test_allowed_transitions(self):
        self.assertTrue(OrderStateMachine.can_transition('in_use', 'returning'))
        self.assertTrue(OrderStateMachine.can_transition('returning', 'returned_with_issue'))
        self.assertTrue(OrderStateMachine.can_transition('returned_with_issue', 'returned'))
        self.assertFalse(OrderStateMachine.can_transition('returned', 'returning'))
        self.assertFalse(OrderStateMachine.can_transition('in_use', 'returned'))
        self.assertFalse(OrderStateMachine.can_transition('unknown', 'returned'))
        self.assertEqual(OrderStateMachine.get_allowed_transitions('cancelled'), set())


class ReturnServiceTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.order = create_order(
            self.customer, self.provider, deposits=(Decimal('1000000.00'), Decimal('200000.00'))
        )

    def test_clean_return_creates_full_refund(self):
        services.start_return(self.order.id, self.customer)
        order = services.confirm_return(self.order.id, self.provider)

        self.assertEqual(order.status, 'returned')
        refund = DepositRefund.objects.get(order=order)
        self.assertEqual(refund.status, 'initiated')
        self.assertEqual(refund.customer_id, self.customer.id)
        self.assertEqual(refund.original_deposit_amount, Decimal('1200000.00'))
        self.assertEqual(refund.total_penalty_amount, Decimal('0.00'))
        self.assertEqual(refund.refund_amount, Decimal('1200000.00'))
        # 双方都收到归还通知
        self.assertEqual(Notification.objects.filter(type='order').count(), 2)

        transitions = list(
            OrderStatusHistory.objects.filter(order=order).order_by('id').values_list('from_status', 'to_status')
        )
        self.assertEqual(transitions, [('in_use', 'returning'), ('returning', 'returned')])

    def test_only_customer_can_start_return(self):
        with self.assertRaises(UnauthorizedActionError):
            services.start_return(self.order.id, self.provider)

    def test_only_provider_can_confirm_return(self):
        services.start_return(self.order.id, self.customer)
        with self.assertRaises(UnauthorizedActionError):
            services.confirm_return(self.order.id, self.customer)

    def test_confirm_requires_returning(self):
        with self.assertRaises(InvalidTransitionError):
            services.confirm_return(self.order.id, self.provider)
        self.assertFalse(DepositRefund.objects.filter(order=self.order).exists())

    def test_cancel_after_delivery_is_rejected(self):
        with self.assertRaises(InvalidTransitionError):
            services.cancel_order(self.order.id, self.customer)

    def test_complete_return_if_settled_ignores_other_states(self):
        self.assertFalse(services.complete_return_if_settled(self.order.id))
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'in_use')


class OrderApiTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.order = create_order(self.customer, self.provider)
        self.client = APIClient()

    def test_return_flow_via_api(self):
        self.client.force_authenticate(user=self.customer)
        resp = self.client.patch(f'/api/v1/orders/{self.order.id}/start_return/', {'note': '已寄回'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['status'], 'returning')

        resp_forbidden = self.client.patch(f'/api/v1/orders/{self.order.id}/confirm_return/')
        self.assertEqual(resp_forbidden.status_code, 403)

        self.client.force_authenticate(user=self.provider)
        resp = self.client.patch(f'/api/v1/orders/{self.order.id}/confirm_return/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['status'], 'returned')
        self.assertEqual(resp.data['total_deposit'], '1000000.00')

    def test_cancel_in_use_returns_conflict(self):
        self.client.force_authenticate(user=self.customer)
        resp = self.client.patch(f'/api/v1/orders/{self.order.id}/cancel/')
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data.get('error_code'), 'INVALID_TRANSITION')

    def test_orders_visible_to_parties_only(self):
        from users.models import User
        stranger = User.objects.create_user(username='stranger', password='pass', role='customer')
        self.client.force_authenticate(user=stranger)
        resp = self.client.get(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(resp.status_code, 404)

        self.client.force_authenticate(user=self.provider)
        resp_list = self.client.get('/api/v1/orders/', {'status': 'in_use,returning'})
        self.assertEqual(resp_list.status_code, 200)
        self.assertEqual(len(resp_list.data.get('results', [])), 1)

        self.client.force_authenticate(user=self.admin)
        resp_admin = self.client.get('/api/v1/orders/', {'status': 'returned'})
        self.assertEqual(len(resp_admin.data.get('results', [])), 0)
