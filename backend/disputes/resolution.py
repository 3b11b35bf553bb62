"""
仲裁服务

管理员受理已升级的违规申报并作出最终裁决。
裁决一经完成不可修改，裁决与违规申报回写在同一事务内完成。
"""

import logging
from decimal import Decimal
from typing import Dict

from django.db import transaction
from django.utils import timezone

from common.audit_logger import AuditLogger
from common.exceptions import (
    BusinessValidationError,
    InvalidStateError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from common.permissions import authorize, ROLE_ADMIN
from common.utils import parse_money
from .models import Resolution, Violation
from .workflow import ViolationWorkflow

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 3000
RESOLUTION_TYPES = {choice[0] for choice in Resolution.TYPE_CHOICES}


def _parse_amount(value, label: str, required: bool = True):
    if value is None or value == '':
        if required:
            raise BusinessValidationError(f'{label}不能为空')
        return None
    return parse_money(value, label)


class ResolutionEngine:
    """仲裁引擎"""

    @staticmethod
    def lock_resolution(resolution_id) -> Resolution:
        resolution = Resolution.objects.select_for_update().filter(id=resolution_id).first()
        if resolution is None:
            raise ResourceNotFoundError(f'仲裁#{resolution_id}不存在')
        return resolution

    @staticmethod
    def normalize_amounts(resolution_type: str, penalty: Decimal, customer_fine, provider_compensation):
        """按裁决类型校验并确定最终金额

        - reject_claim: 罚金与补偿均为0
        - uphold_claim: 罚金等于申报扣款金额（传入其他金额视为错误），补偿默认等于扣款金额
        - compromise: 罚金在 [0, 扣款金额] 内，补偿必须单独给出

        Returns:
            tuple: (customer_fine, provider_compensation)
        """
        if resolution_type not in RESOLUTION_TYPES:
            raise BusinessValidationError(f'无效的裁决类型: {resolution_type}')

        if resolution_type == Resolution.TYPE_REJECT:
            return Decimal('0.00'), Decimal('0.00')

        if resolution_type == Resolution.TYPE_UPHOLD:
            fine = _parse_amount(customer_fine, '租客罚金', required=False)
            if fine is not None and fine != penalty:
                raise BusinessValidationError(f'支持出租方时租客罚金必须等于申报扣款金额 {penalty}')
            compensation = _parse_amount(provider_compensation, '出租方补偿', required=False)
            if compensation is None:
                compensation = penalty
            return penalty, compensation

        fine = _parse_amount(customer_fine, '租客罚金')
        if fine > penalty:
            raise BusinessValidationError(f'租客罚金不能超过申报扣款金额 {penalty}')
        compensation = _parse_amount(provider_compensation, '出租方补偿')
        return fine, compensation

    @staticmethod
    @transaction.atomic
    def open_resolution(violation_id, admin) -> Resolution:
        """受理仲裁：违规申报必须处于仲裁中且尚未受理"""
        authorize(admin, ROLE_ADMIN)

        violation = ViolationWorkflow.lock_violation(violation_id)
        if violation.status != Violation.STATUS_ESCALATED:
            raise InvalidStateError(
                f'违规申报当前状态为"{violation.get_status_display()}"，只有仲裁中的申报可以受理'
            )
        if Resolution.objects.filter(violation=violation).exists():
            raise InvalidStateError(f'违规申报#{violation.id}已受理仲裁')

        resolution = Resolution.objects.create(
            violation=violation,
            status=Resolution.STATUS_PENDING,
            opened_by=admin,
        )
        AuditLogger.log_resolution_opened(resolution.id, violation.id, admin.id)
        logger.info(f'仲裁#{resolution.id}已受理: 违规申报#{violation.id}')
        return resolution

    @staticmethod
    @transaction.atomic
    def decide(resolution_id, resolution_type: str, customer_fine, provider_compensation, reason, admin) -> Resolution:
        """作出裁决

        已裁决的仲裁无论传入何种参数都返回冲突。
        裁决完成后回写违规申报，并尝试推进订单归还与押金结算。

        Raises:
            ResourceConflictError: 仲裁已裁决
            BusinessValidationError: 金额或理由不合法
        """
        authorize(admin, ROLE_ADMIN)

        resolution = ResolutionEngine.lock_resolution(resolution_id)
        if resolution.is_completed:
            raise ResourceConflictError(f'仲裁#{resolution.id}已裁决，不可修改')

        violation = ViolationWorkflow.lock_violation(resolution.violation_id)
        if violation.status != Violation.STATUS_ESCALATED:
            raise InvalidStateError(
                f'违规申报当前状态为"{violation.get_status_display()}"，无法裁决'
            )

        fine, compensation = ResolutionEngine.normalize_amounts(
            resolution_type, violation.penalty_amount, customer_fine, provider_compensation
        )
        reason = str(reason or '').strip()
        if not reason:
            raise BusinessValidationError('裁决理由不能为空')
        if len(reason) > MAX_REASON_LENGTH:
            raise BusinessValidationError(f'裁决理由长度不能超过{MAX_REASON_LENGTH}个字符')

        resolution.status = Resolution.STATUS_UNDER_REVIEW
        resolution.save(update_fields=['status'])

        resolution.resolution_type = resolution_type
        resolution.customer_fine_amount = fine
        resolution.provider_compensation_amount = compensation
        resolution.reason = reason
        resolution.processed_by = admin
        resolution.processed_at = timezone.now()
        resolution.status = Resolution.STATUS_COMPLETED
        resolution.save(update_fields=[
            'resolution_type', 'customer_fine_amount', 'provider_compensation_amount',
            'reason', 'processed_by', 'processed_at', 'status',
        ])

        violation = ViolationWorkflow.mark_resolved(violation, resolution, operator=admin)
        AuditLogger.log_resolution_decided(resolution.id, resolution_type, fine, compensation, admin.id)
        logger.info(
            f'仲裁#{resolution.id}已裁决: {resolution_type}, 罚金 {fine}, 补偿 {compensation}'
        )

        from users.services import notify_users
        order = violation.order
        notify_users(
            [order.customer, order.provider],
            title='仲裁结果已出',
            content=(
                f'违规申报#{violation.id}仲裁结果：{resolution.get_resolution_type_display()}，'
                f'租客罚金 {fine}，出租方补偿 {compensation}。理由：{reason}'
            ),
            ntype='resolution',
            metadata={
                'resolution_id': resolution.id,
                'violation_id': violation.id,
                'customer_fine_amount': str(fine),
                'provider_compensation_amount': str(compensation),
            }
        )

        from orders.services import complete_return_if_settled
        complete_return_if_settled(order.id, operator=admin)
        return resolution

    @staticmethod
    def replay_completed(dry_run: bool = False) -> Dict:
        """补偿回写：已裁决但违规申报未进入 resolved 的记录重新执行回写

        Returns:
            dict: {'checked': n, 'replayed': [resolution_id, ...]}
        """
        from orders.services import complete_return_if_settled

        stale = Resolution.objects.filter(
            status=Resolution.STATUS_COMPLETED
        ).exclude(violation__status=Violation.STATUS_RESOLVED).select_related('violation__order_item')

        replayed = []
        checked = 0
        for resolution in stale:
            checked += 1
            if dry_run:
                replayed.append(resolution.id)
                continue
            with transaction.atomic():
                violation = ViolationWorkflow.mark_resolved(
                    resolution.violation, resolution, operator=resolution.processed_by
                )
                complete_return_if_settled(violation.order_item.order_id, operator=resolution.processed_by)
            replayed.append(resolution.id)
            logger.warning(f'仲裁#{resolution.id}回写违规申报#{resolution.violation_id}')

        return {'checked': checked, 'replayed': replayed}
