"""
押金结算服务

押金扣款合计每次都从源违规申报重新汇总，不维护累加计数，
因此重新计算可以任意重复执行。
"""

import logging
from decimal import Decimal
from typing import Dict

from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from common.audit_logger import AuditLogger
from common.exceptions import (
    BusinessValidationError,
    ExternalServiceError,
    InvalidStateError,
    ResourceNotFoundError,
)
from common.permissions import authorize, ROLE_ADMIN
from common.utils import quantize_money, to_bool
from .models import DepositRefund, generate_idempotency_key
from .state_machine import RefundStateMachine, RefundStatus

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 2000


def aggregate_penalty(order_id) -> Decimal:
    """订单下所有计入扣款的违规金额合计

    计入：租客已接受的申报，以及仲裁已完成并回写为 resolved 的申报。
    """
    from disputes.models import Violation, Resolution

    total = Violation.objects.filter(order_item__order_id=order_id).filter(
        Q(status=Violation.STATUS_CUSTOMER_ACCEPTED)
        | Q(status=Violation.STATUS_RESOLVED, resolution__status=Resolution.STATUS_COMPLETED)
    ).aggregate(total=Sum('penalty_amount'))['total']
    return quantize_money(total or 0)


def compute_refund_amount(original_deposit: Decimal, total_penalty: Decimal) -> Decimal:
    """应退金额 = max(0, 原始押金 - 扣款合计)"""
    return quantize_money(max(Decimal('0'), original_deposit - total_penalty))


class DepositSettlement:
    """押金结算与退款处理"""

    @staticmethod
    def _get_refund(refund_id) -> DepositRefund:
        refund = DepositRefund.objects.filter(id=refund_id).first()
        if refund is None:
            raise ResourceNotFoundError(f'退款单#{refund_id}不存在')
        return refund

    @staticmethod
    def _lock_refund(refund_id) -> DepositRefund:
        refund = DepositRefund.objects.select_for_update().filter(id=refund_id).first()
        if refund is None:
            raise ResourceNotFoundError(f'退款单#{refund_id}不存在')
        return refund

    @staticmethod
    def _apply_totals(refund) -> bool:
        """重新汇总并写入金额，金额有变化时返回True"""
        total = aggregate_penalty(refund.order_id)
        amount = compute_refund_amount(refund.original_deposit_amount, total)
        if total == refund.total_penalty_amount and amount == refund.refund_amount:
            return False
        refund.total_penalty_amount = total
        refund.refund_amount = amount
        refund.add_log('recalculated', f'penalty={total}, refund={amount}')
        refund.save(update_fields=['total_penalty_amount', 'refund_amount', 'logs', 'updated_at'])
        AuditLogger.log_refund_recalculated(refund.id, total, amount)
        return True

    @staticmethod
    @transaction.atomic
    def ensure_refund(order, operator=None) -> DepositRefund:
        """订单进入"已归还"时生成押金退款单；已存在时重新汇总"""
        from orders.services import lock_order

        order = lock_order(order.id)
        refund, created = DepositRefund.objects.get_or_create(
            order=order,
            defaults={
                'customer_id': order.customer_id,
                'original_deposit_amount': quantize_money(order.total_deposit),
            }
        )
        if created:
            refund.add_log('created', f'deposit={refund.original_deposit_amount}')
            refund.save(update_fields=['logs'])
            AuditLogger.log_refund_created(refund.id, order.id, refund.original_deposit_amount)
            logger.info(f'押金退款单#{refund.id}已生成: 订单#{order.id}, 押金 {refund.original_deposit_amount}')

        refund = DepositSettlement._lock_refund(refund.id)
        if refund.status == DepositRefund.STATUS_INITIATED:
            DepositSettlement._apply_totals(refund)
        return refund

    @staticmethod
    @transaction.atomic
    def recalculate_refund(order_id) -> DepositRefund:
        """重新汇总订单的押金扣款与应退金额

        Raises:
            ResourceNotFoundError: 订单或退款单不存在
            InvalidStateError: 退款单已处理
        """
        from orders.services import lock_order

        lock_order(order_id)
        refund = DepositRefund.objects.select_for_update().filter(order_id=order_id).first()
        if refund is None:
            raise ResourceNotFoundError(f'订单#{order_id}尚无押金退款单')
        if refund.status != DepositRefund.STATUS_INITIATED:
            raise InvalidStateError(f'退款单{refund.refund_code}已处理，不能重新计算')

        DepositSettlement._apply_totals(refund)
        return refund

    @staticmethod
    def resolve_bank_account(refund, bank_account_id=None):
        """确定收款账户：指定账户须属于该租客，否则使用租客的默认账户"""
        from users.models import BankAccount

        if bank_account_id not in (None, ''):
            account = BankAccount.objects.filter(id=bank_account_id, user_id=refund.customer_id).first()
            if account is None:
                raise BusinessValidationError('收款账户不存在或不属于该租客')
            return account

        account = BankAccount.objects.filter(user_id=refund.customer_id, is_primary=True).first()
        if account is None:
            raise BusinessValidationError('租客未设置默认收款账户，请指定收款账户')
        return account

    @staticmethod
    @transaction.atomic
    def process_refund(
        refund_id,
        approve,
        admin,
        bank_account_id=None,
        external_transaction_id=None,
        notes=None,
    ) -> Dict:
        """管理员处理退款单

        - 拒绝：置为 failed，不打款
        - 通过且提供外部交易号：视为线下已转账，直接完成
        - 通过且应退金额为0：直接完成
        - 通过：调用打款通道；通道失败时置为 failed 并返回软失败

        Returns:
            dict: {'refund': DepositRefund, 'payout_succeeded': bool, 'payout_error': str|None}
        """
        from integrations.payout import PayoutClient

        authorize(admin, ROLE_ADMIN)

        refund = DepositSettlement._get_refund(refund_id)
        from orders.services import lock_order
        lock_order(refund.order_id)
        refund = DepositSettlement._lock_refund(refund.id)

        if refund.status != DepositRefund.STATUS_INITIATED:
            raise InvalidStateError(f'退款单{refund.refund_code}已处理，不能重复处理')

        approve_flag = to_bool(approve)
        if approve_flag is None:
            raise BusinessValidationError('approve 必须是布尔值')
        notes = str(notes or '').strip()
        if len(notes) > MAX_NOTES_LENGTH:
            raise BusinessValidationError(f'备注长度不能超过{MAX_NOTES_LENGTH}个字符')
        external_transaction_id = str(external_transaction_id or '').strip()

        now = timezone.now()
        refund.processed_by = admin
        refund.processed_at = now

        if not approve_flag:
            if notes:
                refund.notes = notes
            RefundStateMachine.transition(
                refund,
                RefundStatus.FAILED.value,
                operator=admin,
                note=notes or '管理员拒绝退款',
                extra_fields=['processed_by', 'processed_at', 'notes']
            )
            AuditLogger.log_refund_processed(refund.id, refund.status, refund.refund_amount, '', admin.id)
            DepositSettlement._notify_customer(refund, '押金退款未通过', f'押金退款单{refund.refund_code}未通过：{notes}')
            return {'refund': refund, 'payout_succeeded': False, 'payout_error': None}

        DepositSettlement._apply_totals(refund)
        if notes:
            refund.notes = notes

        account = None
        if refund.refund_amount > 0:
            account = DepositSettlement.resolve_bank_account(refund, bank_account_id)
        refund.refund_bank_account = account

        if refund.refund_amount > 0 and not external_transaction_id:
            try:
                result = PayoutClient.from_settings().send_payout(
                    account,
                    refund.refund_amount,
                    idempotency_key=refund.payout_idempotency_key,
                    reference=refund.refund_code,
                )
            except ExternalServiceError as e:
                reason = str(e.detail)
                refund.notes = f'{refund.notes}\n{reason}'.strip() if refund.notes else reason
                RefundStateMachine.transition(
                    refund,
                    RefundStatus.FAILED.value,
                    operator=admin,
                    note=reason,
                    extra_fields=['processed_by', 'processed_at', 'notes', 'refund_bank_account']
                )
                AuditLogger.log_payout_failed(refund.id, reason, admin.id)
                logger.error(f'退款单{refund.refund_code}打款失败: {reason}')
                return {'refund': refund, 'payout_succeeded': False, 'payout_error': reason}
            external_transaction_id = result.external_transaction_id

        refund.external_transaction_id = external_transaction_id
        RefundStateMachine.transition(
            refund,
            RefundStatus.COMPLETED.value,
            operator=admin,
            note=f'退款 {refund.refund_amount}',
            extra_fields=['processed_by', 'processed_at', 'notes', 'refund_bank_account', 'external_transaction_id']
        )
        AuditLogger.log_refund_processed(
            refund.id, refund.status, refund.refund_amount, external_transaction_id, admin.id
        )
        DepositSettlement._notify_customer(
            refund, '押金已退还', f'押金退款单{refund.refund_code}已退款 {refund.refund_amount}'
        )
        return {'refund': refund, 'payout_succeeded': True, 'payout_error': None}

    @staticmethod
    @transaction.atomic
    def reopen(refund_id, admin) -> DepositRefund:
        """重新打开已处理的退款单，金额与备注保持不变"""
        authorize(admin, ROLE_ADMIN)

        refund = DepositSettlement._lock_refund(refund_id)
        old_status = refund.status
        if not RefundStateMachine.can_transition(old_status, RefundStatus.INITIATED.value):
            raise InvalidStateError(f'退款单{refund.refund_code}处于待处理状态，无需重新打开')

        # 已完成的打款需要重新发起时换一个幂等键
        if old_status == RefundStatus.COMPLETED.value:
            refund.payout_idempotency_key = generate_idempotency_key()
        refund.processed_by = None
        refund.processed_at = None
        refund.external_transaction_id = ''
        RefundStateMachine.transition(
            refund,
            RefundStatus.INITIATED.value,
            operator=admin,
            note='管理员重新打开',
            extra_fields=['processed_by', 'processed_at', 'external_transaction_id', 'payout_idempotency_key']
        )
        AuditLogger.log_refund_reopened(refund.id, old_status, admin.id)
        return refund

    @staticmethod
    def pending_count() -> int:
        return DepositRefund.objects.filter(status=DepositRefund.STATUS_INITIATED).count()

    @staticmethod
    def _notify_customer(refund, title: str, content: str):
        from users.services import create_notification
        create_notification(
            refund.customer,
            title,
            content,
            ntype='refund',
            metadata={
                'refund_id': refund.id,
                'order_id': refund.order_id,
                'refund_amount': str(refund.refund_amount),
                'status': refund.status,
            }
        )
