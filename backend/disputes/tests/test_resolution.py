from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase

from common.exceptions import (
    BusinessValidationError,
    InvalidStateError,
    ResourceConflictError,
    UnauthorizedActionError,
)
from disputes.models import Resolution, Violation
from disputes.resolution import ResolutionEngine
from disputes.workflow import ViolationWorkflow
from orders import services as order_services
from orders.tests.helpers import create_parties, create_order
from refunds.models import DepositRefund
from users.models import Notification


class ResolutionEngineTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.order = create_order(self.customer, self.provider)
        order_services.start_return(self.order.id, self.customer)
        self.violation = ViolationWorkflow.file_violation(
            self.provider, self.order.items.first().id, 'damaged', '电机烧毁', '30', damage_percentage='50'
        )
        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='使用前已有故障')
        ViolationWorkflow.escalate(self.customer, self.violation.id, '请求仲裁')

    def _open(self):
        return ResolutionEngine.open_resolution(self.violation.id, self.admin)

    def test_open_requires_admin(self):
        with self.assertRaises(UnauthorizedActionError):
            ResolutionEngine.open_resolution(self.violation.id, self.provider)

    def test_open_twice_is_rejected(self):
        resolution = self._open()
        self.assertEqual(resolution.status, 'pending')
        self.assertEqual(resolution.opened_by, self.admin)
        with self.assertRaises(InvalidStateError):
            self._open()

    def test_open_requires_escalated_violation(self):
        order = create_order(self.customer, self.provider, status='returning')
        pending = ViolationWorkflow.file_violation(
            self.provider, order.items.first().id, 'late_return', '逾期', '5'
        )
        with self.assertRaises(InvalidStateError):
            ResolutionEngine.open_resolution(pending.id, self.admin)

    def test_compromise_settles_refund(self):
        resolution = self._open()
        resolution = ResolutionEngine.decide(
            resolution.id, 'compromise', '150000', '100000', '双方各担部分责任', self.admin
        )

        self.assertEqual(resolution.status, 'completed')
        self.assertEqual(resolution.customer_fine_amount, Decimal('150000.00'))
        self.assertEqual(resolution.provider_compensation_amount, Decimal('100000.00'))
        self.assertEqual(resolution.processed_by, self.admin)
        self.assertIsNotNone(resolution.processed_at)

        violation = Violation.objects.get(id=self.violation.id)
        self.assertEqual(violation.status, 'resolved')
        self.assertEqual(violation.penalty_amount, Decimal('150000.00'))

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'returned')
        refund = DepositRefund.objects.get(order=self.order)
        self.assertEqual(refund.total_penalty_amount, Decimal('150000.00'))
        self.assertEqual(refund.refund_amount, Decimal('850000.00'))
        self.assertEqual(
            Notification.objects.filter(type='resolution', user__in=[self.customer, self.provider]).count(), 2
        )

    def test_uphold_uses_claimed_penalty(self):
        resolution = self._open()
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'uphold_claim', '1', None, '照片清晰显示损坏', self.admin)
        resolution.refresh_from_db()
        self.assertEqual(resolution.status, 'pending')

        resolution = ResolutionEngine.decide(
            resolution.id, 'uphold_claim', '300000', None, '照片清晰显示损坏', self.admin
        )
        self.assertEqual(resolution.customer_fine_amount, Decimal('300000.00'))
        self.assertEqual(resolution.provider_compensation_amount, Decimal('300000.00'))
        refund = DepositRefund.objects.get(order=self.order)
        self.assertEqual(refund.refund_amount, Decimal('700000.00'))

    def test_reject_claim_refunds_full_deposit(self):
        resolution = ResolutionEngine.decide(
            self._open().id, 'reject_claim', '5000', '5000', '证据不足', self.admin
        )
        self.assertEqual(resolution.customer_fine_amount, Decimal('0.00'))
        self.assertEqual(resolution.provider_compensation_amount, Decimal('0.00'))
        refund = DepositRefund.objects.get(order=self.order)
        self.assertEqual(refund.refund_amount, Decimal('1000000.00'))

    def test_decide_validation(self):
        resolution = self._open()
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'split', '0', '0', '理由', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'compromise', '300000.01', '0', '理由', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'compromise', '-1', '0', '理由', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'compromise', '100', None, '理由', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'compromise', '100', '1e30', '理由', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'compromise', '100', '10000000000', '理由', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'reject_claim', None, None, '  ', self.admin)
        with self.assertRaises(BusinessValidationError):
            ResolutionEngine.decide(resolution.id, 'reject_claim', None, None, 'x' * 3001, self.admin)
        resolution.refresh_from_db()
        self.assertEqual(resolution.status, 'pending')

    def test_decide_twice_is_conflict(self):
        resolution = self._open()
        ResolutionEngine.decide(resolution.id, 'reject_claim', None, None, '证据不足', self.admin)
        with self.assertRaises(ResourceConflictError):
            ResolutionEngine.decide(resolution.id, 'uphold_claim', None, None, '改判', self.admin)
        # 参数不合法同样返回冲突
        with self.assertRaises(ResourceConflictError):
            ResolutionEngine.decide(resolution.id, 'bogus', 'x', 'y', '', self.admin)
        resolution.refresh_from_db()
        self.assertEqual(resolution.resolution_type, 'reject_claim')

    def test_non_admin_cannot_decide(self):
        resolution = self._open()
        with self.assertRaises(UnauthorizedActionError):
            ResolutionEngine.decide(resolution.id, 'reject_claim', None, None, '证据不足', self.customer)

    def test_mark_resolved_requires_completed_resolution(self):
        resolution = self._open()
        with self.assertRaises(InvalidStateError):
            ViolationWorkflow.mark_resolved(self.violation, resolution)

    def test_replay_completed_writes_back_stale_records(self):
        resolution = self._open()
        # 模拟绕过服务层直接改库的记录
        Resolution.objects.filter(id=resolution.id).update(
            status='completed', resolution_type='compromise',
            customer_fine_amount=Decimal('100000.00'), processed_by=self.admin,
        )

        dry = ResolutionEngine.replay_completed(dry_run=True)
        self.assertEqual(dry, {'checked': 1, 'replayed': [resolution.id]})
        self.assertEqual(Violation.objects.get(id=self.violation.id).status, 'escalated')

        call_command('reconcile_resolutions')

        violation = Violation.objects.get(id=self.violation.id)
        self.assertEqual(violation.status, 'resolved')
        self.assertEqual(violation.penalty_amount, Decimal('100000.00'))
        self.assertEqual(DepositRefund.objects.get(order=self.order).refund_amount, Decimal('900000.00'))
        self.assertEqual(ResolutionEngine.replay_completed(), {'checked': 0, 'replayed': []})
