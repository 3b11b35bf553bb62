from decimal import Decimal

from django.test import TestCase

from common.exceptions import (
    BusinessValidationError,
    InvalidClaimError,
    InvalidStateError,
    InvalidTransitionError,
    UnauthorizedActionError,
)
from disputes.models import Violation, ViolationStatusHistory
from disputes.state_machine import ViolationStateMachine
from disputes.workflow import ViolationWorkflow, compute_penalty
from orders import services as order_services
from orders.tests.helpers import create_parties, create_order
from refunds.models import DepositRefund
from users.models import Notification


class ViolationStateMachineTests(TestCase):
    def test_transition_table(self):
        self.assertTrue(ViolationStateMachine.can_transition('pending', 'customer_accepted'))
        self.assertTrue(ViolationStateMachine.can_transition('customer_rejected', 'pending'))
        self.assertTrue(ViolationStateMachine.can_transition('escalated', 'resolved'))
        self.assertFalse(ViolationStateMachine.can_transition('pending', 'escalated'))
        self.assertFalse(ViolationStateMachine.can_transition('customer_accepted', 'pending'))
        self.assertTrue(ViolationStateMachine.is_terminal('resolved'))
        self.assertFalse(ViolationStateMachine.is_terminal('escalated'))


class FileViolationTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.order = create_order(
            self.customer, self.provider, deposits=(Decimal('1000000.00'), Decimal('50000.00'))
        )
        self.item, self.second_item = list(self.order.items.order_by('id'))
        order_services.start_return(self.order.id, self.customer)

    def _file(self, actor=None, item=None, **overrides):
        params = {
            'violation_type': 'damaged',
            'description': '机身外壳开裂',
            'penalty_percentage': '30',
            'damage_percentage': '40',
            'evidence': ['https://cdn.example.com/evidence/crack.jpg'],
        }
        params.update(overrides)
        return ViolationWorkflow.file_violation(
            actor or self.provider,
            (item or self.item).id,
            params['violation_type'],
            params['description'],
            params['penalty_percentage'],
            damage_percentage=params['damage_percentage'],
            evidence=params['evidence'],
        )

    def test_file_violation_computes_penalty_and_moves_order(self):
        violation = self._file()

        self.assertEqual(violation.status, 'pending')
        self.assertEqual(violation.penalty_amount, Decimal('300000.00'))
        self.assertEqual(violation.damage_percentage, Decimal('40.00'))
        self.assertEqual(violation.evidence.count(), 1)
        self.assertEqual(violation.evidence.first().media_kind, 'image')
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'returned_with_issue')
        self.assertTrue(
            Notification.objects.filter(user=self.customer, type='violation').exists()
        )

    def test_compute_penalty_rounds_to_cents(self):
        self.assertEqual(compute_penalty(self.second_item, Decimal('33.33')), Decimal('16665.00'))
        self.item.deposit_per_unit = Decimal('99.99')
        self.assertEqual(compute_penalty(self.item, Decimal('12.5')), Decimal('12.50'))

    def test_second_item_can_be_filed_while_order_has_issue(self):
        self._file()
        late = self._file(item=self.second_item, violation_type='late_return', damage_percentage=None, evidence=None)
        self.assertEqual(late.penalty_amount, Decimal('15000.00'))
        self.assertIsNone(late.damage_percentage)

    def test_duplicate_outstanding_claim_is_rejected(self):
        self._file()
        with self.assertRaises(InvalidClaimError):
            self._file()

    def test_settled_claim_blocks_new_filing_on_same_item(self):
        # 另一件商品保持待确认，订单停留在归还有争议
        self._file(item=self.second_item, violation_type='late_return', damage_percentage=None, evidence=None)
        first = self._file(penalty_percentage='100')
        ViolationWorkflow.respond_as_customer(self.customer, first.id, True)

        with self.assertRaises(InvalidClaimError):
            self._file(penalty_percentage='100')
        result = ViolationWorkflow.file_violations(self.provider, self.order.id, [
            {'order_item_id': self.item.id, 'violation_type': 'damaged', 'description': '再次申报',
             'penalty_percentage': '100', 'damage_percentage': '100'},
        ])
        self.assertEqual(result['skipped'], [self.item.id])
        self.assertEqual(result['created'], [])
        self.assertEqual(Violation.objects.filter(order_item=self.item).count(), 1)

    def test_only_order_provider_can_file(self):
        with self.assertRaises(UnauthorizedActionError):
            self._file(actor=self.customer)

    def test_authorization_is_checked_before_input(self):
        with self.assertRaises(UnauthorizedActionError):
            self._file(actor=self.customer, penalty_percentage='150')

    def test_order_must_be_returning(self):
        other = create_order(self.customer, self.provider)
        with self.assertRaises(InvalidStateError):
            self._file(item=other.items.first())

    def test_input_validation(self):
        with self.assertRaises(BusinessValidationError):
            self._file(penalty_percentage='150')
        with self.assertRaises(BusinessValidationError):
            self._file(penalty_percentage='abc')
        with self.assertRaises(BusinessValidationError):
            self._file(description='   ')
        with self.assertRaises(BusinessValidationError):
            self._file(description='x' * 2001)
        with self.assertRaises(BusinessValidationError):
            self._file(violation_type='lost')
        with self.assertRaises(BusinessValidationError):
            self._file(damage_percentage=None)
        with self.assertRaises(BusinessValidationError):
            self._file(evidence=['not-a-url'])
        self.assertFalse(Violation.objects.exists())

    def test_batch_filing_skips_items_with_outstanding_claims(self):
        self._file()
        result = ViolationWorkflow.file_violations(self.provider, self.order.id, [
            {'order_item_id': self.item.id, 'violation_type': 'damaged', 'description': '重复',
             'penalty_percentage': '10', 'damage_percentage': '10'},
            {'order_item_id': self.second_item.id, 'violation_type': 'not_returned',
             'description': '配件未归还', 'penalty_percentage': '100'},
        ])
        self.assertEqual(result['skipped'], [self.item.id])
        self.assertEqual(len(result['created']), 1)
        self.assertEqual(result['created'][0].penalty_amount, Decimal('50000.00'))

    def test_batch_rejects_foreign_items(self):
        other = create_order(self.customer, self.provider, status='returning')
        with self.assertRaises(BusinessValidationError):
            ViolationWorkflow.file_violations(self.provider, self.order.id, [
                {'order_item_id': other.items.first().id, 'violation_type': 'late_return',
                 'description': '逾期', 'penalty_percentage': '5'},
            ])


class CustomerResponseTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.order = create_order(self.customer, self.provider)
        self.item = self.order.items.first()
        order_services.start_return(self.order.id, self.customer)
        self.violation = ViolationWorkflow.file_violation(
            self.provider, self.item.id, 'damaged', '屏幕碎裂', '30', damage_percentage='30'
        )

    def test_accept_settles_order_and_refund(self):
        violation = ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, True)

        self.assertEqual(violation.status, 'customer_accepted')
        self.assertIsNotNone(violation.customer_response_at)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'returned')
        refund = DepositRefund.objects.get(order=self.order)
        self.assertEqual(refund.total_penalty_amount, Decimal('300000.00'))
        self.assertEqual(refund.refund_amount, Decimal('700000.00'))

    def test_reject_requires_notes(self):
        with self.assertRaises(BusinessValidationError):
            ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='')
        violation = ViolationWorkflow.respond_as_customer(
            self.customer, self.violation.id, False, notes='归还时完好',
            evidence=['https://cdn.example.com/evidence/handover.mp4'],
        )
        self.assertEqual(violation.status, 'customer_rejected')
        self.assertEqual(violation.customer_notes, '归还时完好')
        self.assertEqual(violation.evidence.get().uploaded_by, 'customer')
        self.assertEqual(violation.evidence.get().media_kind, 'video')
        self.assertFalse(DepositRefund.objects.filter(order=self.order).exists())

    def test_accept_from_non_pending_is_invalid_transition(self):
        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, True)
        with self.assertRaises(InvalidTransitionError):
            ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, True)

    def test_respond_only_allowed_while_pending(self):
        from disputes.resolution import ResolutionEngine

        def assert_cannot_respond():
            for accept, notes in ((True, None), (False, '再次拒绝')):
                with self.assertRaises(InvalidTransitionError):
                    ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, accept, notes=notes)

        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='不认可')
        assert_cannot_respond()

        ViolationWorkflow.escalate(self.customer, self.violation.id, '请求仲裁')
        assert_cannot_respond()

        resolution = ResolutionEngine.open_resolution(self.violation.id, self.admin)
        ResolutionEngine.decide(resolution.id, 'reject_claim', None, None, '证据不足', self.admin)
        self.assertEqual(Violation.objects.get(id=self.violation.id).status, 'resolved')
        assert_cannot_respond()

    def test_provider_cannot_respond(self):
        with self.assertRaises(UnauthorizedActionError):
            ViolationWorkflow.respond_as_customer(self.provider, self.violation.id, True)

    def test_revise_returns_claim_to_pending(self):
        with self.assertRaises(InvalidTransitionError):
            ViolationWorkflow.revise_claim(self.provider, self.violation.id, '20')

        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='比例过高')
        violation = ViolationWorkflow.revise_claim(self.provider, self.violation.id, '20', new_description='屏幕轻微划痕')

        self.assertEqual(violation.status, 'pending')
        self.assertEqual(violation.penalty_amount, Decimal('200000.00'))
        self.assertEqual(violation.description, '屏幕轻微划痕')
        self.assertEqual(violation.customer_notes, '')

    def test_revise_with_amount_override(self):
        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='比例过高')
        with self.assertRaises(BusinessValidationError):
            ViolationWorkflow.revise_claim(self.provider, self.violation.id, '20', penalty_amount='1000000.01')
        for bad in ('1e30', '-1', 'abc'):
            with self.assertRaises(BusinessValidationError):
                ViolationWorkflow.revise_claim(self.provider, self.violation.id, '20', penalty_amount=bad)
        violation = ViolationWorkflow.revise_claim(self.provider, self.violation.id, '20', penalty_amount='123456.78')
        self.assertEqual(violation.penalty_amount, Decimal('123456.78'))

    def test_respond_to_rejection_requires_rejected_claim(self):
        with self.assertRaises(InvalidStateError):
            ViolationWorkflow.respond_to_rejection(self.provider, self.violation.id, '有照片为证')

        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='不认可')
        violation = ViolationWorkflow.respond_to_rejection(self.provider, self.violation.id, '有照片为证')
        self.assertEqual(violation.status, 'customer_rejected')
        self.assertEqual(violation.provider_response, '有照片为证')
        self.assertIsNotNone(violation.provider_response_at)


class EscalationTests(TestCase):
    def setUp(self):
        self.customer, self.provider, self.admin = create_parties()
        self.order = create_order(self.customer, self.provider)
        order_services.start_return(self.order.id, self.customer)
        self.violation = ViolationWorkflow.file_violation(
            self.provider, self.order.items.first().id, 'late_return', '逾期三天', '5'
        )

    def test_escalate_requires_rejection(self):
        with self.assertRaises(InvalidTransitionError):
            ViolationWorkflow.escalate(self.provider, self.violation.id, '请管理员裁决')

    def test_escalate_is_idempotent(self):
        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='物流延误')

        first = ViolationWorkflow.escalate(self.provider, self.violation.id, '租客拒不承认')
        self.assertEqual(first.status, 'escalated')
        self.assertEqual(first.escalated_by, 'provider')
        self.assertTrue(Notification.objects.filter(user=self.admin, type='resolution').exists())

        second = ViolationWorkflow.escalate(self.customer, self.violation.id, '物流单号可查')
        third = ViolationWorkflow.escalate(self.provider, self.violation.id, '补充理由')

        self.assertEqual(second.status, 'escalated')
        third.refresh_from_db()
        self.assertEqual(third.escalated_by, 'provider')
        self.assertEqual(third.provider_escalation_reason, '租客拒不承认')
        self.assertEqual(third.customer_escalation_reason, '物流单号可查')
        self.assertEqual(
            ViolationStatusHistory.objects.filter(violation=third, to_status='escalated').count(), 1
        )

    def test_stranger_cannot_escalate(self):
        from users.models import User
        stranger = User.objects.create_user(username='stranger', password='pass', role='provider')
        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='物流延误')
        with self.assertRaises(UnauthorizedActionError):
            ViolationWorkflow.escalate(stranger, self.violation.id, '路过')

    def test_escalate_requires_reason(self):
        ViolationWorkflow.respond_as_customer(self.customer, self.violation.id, False, notes='物流延误')
        with self.assertRaises(BusinessValidationError):
            ViolationWorkflow.escalate(self.customer, self.violation.id, '')
