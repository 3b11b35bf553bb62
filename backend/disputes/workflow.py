"""
违规申报流程服务

负责出租方申报、租客答复、出租方修改/回应、双方申请仲裁，
以及仲裁结束后把裁决金额回写到违规申报。

每个操作的校验顺序：身份与资源归属 -> 当前状态 -> 入参。
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from django.db import transaction
from django.utils import timezone

from common.audit_logger import AuditLogger
from common.exceptions import (
    BusinessValidationError,
    InvalidClaimError,
    InvalidStateError,
    InvalidTransitionError,
    ResourceNotFoundError,
    UnauthorizedActionError,
)
from common.permissions import authorize, ROLE_CUSTOMER, ROLE_PROVIDER
from common.utils import parse_decimal, parse_money, quantize_money, CENT
from orders.models import OrderItem
from orders.services import lock_order, complete_return_if_settled
from orders.state_machine import OrderStateMachine, OrderStatus
from .evidence import EvidenceLedger
from .models import Violation
from .state_machine import ViolationStateMachine, ViolationStatus

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000
# 允许提交违规申报的订单状态
CLAIMABLE_ORDER_STATUSES = (OrderStatus.RETURNING.value, OrderStatus.RETURNED_WITH_ISSUE.value)
VIOLATION_TYPES = {choice[0] for choice in Violation.TYPE_CHOICES}


def compute_penalty(order_item, penalty_percentage: Decimal) -> Decimal:
    """扣款金额 = 单件押金 × 数量 × 扣款比例 / 100"""
    base = order_item.deposit_per_unit * order_item.quantity
    return quantize_money(base * penalty_percentage / Decimal('100'))


def _parse_percentage(value, label: str, required: bool = True) -> Optional[Decimal]:
    if value is None or value == '':
        if required:
            raise BusinessValidationError(f'{label}不能为空')
        return None
    pct = parse_decimal(value)
    if pct is None or not pct.is_finite():
        raise BusinessValidationError(f'{label}必须是数字')
    if pct < 0 or pct > 100:
        raise BusinessValidationError(f'{label}必须在0到100之间')
    return pct.quantize(CENT)


def _require_text(value, label: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    text = str(value or '').strip()
    if not text:
        raise BusinessValidationError(f'{label}不能为空')
    if len(text) > max_length:
        raise BusinessValidationError(f'{label}长度不能超过{max_length}个字符')
    return text


def _party_role(actor, order) -> str:
    """根据订单判断操作人是出租方还是租客"""
    if actor is None or not getattr(actor, 'is_authenticated', False):
        raise UnauthorizedActionError('请先登录')
    if actor.id == order.provider_id:
        return ROLE_PROVIDER
    if actor.id == order.customer_id:
        return ROLE_CUSTOMER
    raise UnauthorizedActionError('只有订单双方可以操作该违规申报')


def _notify(users, title: str, content: str, violation, ntype: str = 'violation'):
    from users.services import notify_users
    notify_users(
        users,
        title=title,
        content=content,
        ntype=ntype,
        metadata={
            'violation_id': violation.id,
            'order_item_id': violation.order_item_id,
            'status': violation.status,
        }
    )


class ViolationWorkflow:
    """违规申报流程"""

    @staticmethod
    def lock_violation(violation_id) -> Violation:
        """加行锁读取违规申报，不存在时抛出 ResourceNotFoundError"""
        violation = Violation.objects.select_for_update().filter(id=violation_id).first()
        if violation is None:
            raise ResourceNotFoundError(f'违规申报#{violation_id}不存在')
        return violation

    @staticmethod
    def has_claim(order_item_id) -> bool:
        """商品是否已有违规申报，含已接受或已裁决的"""
        return Violation.objects.filter(order_item_id=order_item_id).exists()

    @staticmethod
    @transaction.atomic
    def file_violation(
        actor,
        order_item_id,
        violation_type: str,
        description: str,
        penalty_percentage,
        damage_percentage=None,
        evidence: Optional[List] = None,
    ) -> Violation:
        """出租方提交违规申报

        Raises:
            ResourceNotFoundError: 订单商品不存在
            UnauthorizedActionError: 操作人不是该订单的出租方
            InvalidStateError: 订单尚未进入归还流程
            InvalidClaimError: 该商品已有违规申报（含已结算的申报）
            BusinessValidationError: 入参不合法
        """
        item = OrderItem.objects.filter(id=order_item_id).first()
        if item is None:
            raise ResourceNotFoundError(f'订单商品#{order_item_id}不存在')
        order = lock_order(item.order_id)

        authorize(actor, ROLE_PROVIDER, order.provider_id)

        if order.status not in CLAIMABLE_ORDER_STATUSES:
            raise InvalidStateError(
                f'订单当前状态为"{order.get_status_display()}"，只有归还中的订单可以提交违规申报'
            )
        if ViolationWorkflow.has_claim(item.id):
            raise InvalidClaimError(f'订单商品#{item.id}已有违规申报')

        if violation_type not in VIOLATION_TYPES:
            raise BusinessValidationError(f'无效的违规类型: {violation_type}')
        description = _require_text(description, '违规描述')
        penalty_pct = _parse_percentage(penalty_percentage, '扣款比例')
        damage_pct = _parse_percentage(damage_percentage, '损坏程度', required=False)
        if violation_type == Violation.TYPE_DAMAGED and damage_pct is None:
            raise BusinessValidationError('损坏类违规必须填写损坏程度')
        for entry in evidence or []:
            EvidenceLedger.validate_url(entry.get('url') if isinstance(entry, dict) else entry)

        violation = Violation.objects.create(
            order_item=item,
            violation_type=violation_type,
            description=description,
            damage_percentage=damage_pct if violation_type == Violation.TYPE_DAMAGED else None,
            penalty_percentage=penalty_pct,
            penalty_amount=compute_penalty(item, penalty_pct),
        )
        EvidenceLedger.append_many(violation, evidence, 'provider')

        if order.status == OrderStatus.RETURNING.value:
            OrderStateMachine.transition(
                order,
                OrderStatus.RETURNED_WITH_ISSUE.value,
                operator=actor,
                note=f'出租方提交违规申报#{violation.id}'
            )

        AuditLogger.log_violation_filed(
            violation.id, item.id, violation.violation_type, violation.penalty_amount, actor.id
        )
        logger.info(
            f'违规申报#{violation.id}已提交: 订单商品#{item.id}, 扣款 {violation.penalty_amount}'
        )
        _notify(
            [order.customer],
            '收到违规申报',
            f'订单 {order.order_number} 的商品「{item.product_name}」被申报'
            f'{violation.get_violation_type_display()}，拟扣押金 {violation.penalty_amount}，请及时确认',
            violation,
        )
        return violation

    @staticmethod
    @transaction.atomic
    def file_violations(actor, order_id, items: List[Dict]) -> Dict:
        """批量提交同一订单下多个商品的违规申报

        已有申报的商品会被跳过。

        Returns:
            dict: {'created': [Violation, ...], 'skipped': [order_item_id, ...]}
        """
        order = lock_order(order_id)
        authorize(actor, ROLE_PROVIDER, order.provider_id)

        if not items:
            raise BusinessValidationError('违规申报列表不能为空')

        item_ids = set(order.items.values_list('id', flat=True))
        created, skipped = [], []
        for entry in items:
            order_item_id = entry.get('order_item_id')
            try:
                order_item_id = int(order_item_id)
            except (TypeError, ValueError):
                raise BusinessValidationError(f'无效的订单商品ID: {order_item_id}')
            if order_item_id not in item_ids:
                raise BusinessValidationError(f'订单商品#{order_item_id}不属于订单 {order.order_number}')
            if ViolationWorkflow.has_claim(order_item_id):
                skipped.append(order_item_id)
                continue
            created.append(ViolationWorkflow.file_violation(
                actor,
                order_item_id,
                entry.get('violation_type'),
                entry.get('description'),
                entry.get('penalty_percentage'),
                damage_percentage=entry.get('damage_percentage'),
                evidence=entry.get('evidence'),
            ))

        logger.info(f'订单#{order.id}批量申报: 新建{len(created)}条, 跳过{len(skipped)}条')
        return {'created': created, 'skipped': skipped}

    @staticmethod
    @transaction.atomic
    def respond_as_customer(actor, violation_id, accept: bool, notes=None, evidence: Optional[List] = None) -> Violation:
        """租客答复违规申报：接受则进入结算，拒绝须填写理由"""
        violation = ViolationWorkflow.lock_violation(violation_id)
        order = violation.order
        authorize(actor, ROLE_CUSTOMER, order.customer_id)

        if violation.status != ViolationStatus.PENDING.value:
            raise InvalidTransitionError(
                f'违规申报当前状态为"{violation.get_status_display()}"，只能答复待确认的申报'
            )

        if not accept:
            notes = _require_text(notes, '拒绝理由')
        for entry in evidence or []:
            EvidenceLedger.validate_url(entry.get('url') if isinstance(entry, dict) else entry)

        violation.customer_response_at = timezone.now()
        if accept:
            ViolationStateMachine.transition(
                violation,
                ViolationStatus.CUSTOMER_ACCEPTED.value,
                operator=actor,
                note='租客接受扣款',
                extra_fields=['customer_response_at']
            )
        else:
            violation.customer_notes = notes
            ViolationStateMachine.transition(
                violation,
                ViolationStatus.CUSTOMER_REJECTED.value,
                operator=actor,
                note=notes,
                extra_fields=['customer_response_at', 'customer_notes']
            )
        EvidenceLedger.append_many(violation, evidence, 'customer')

        if accept:
            content = f'租客已接受违规申报#{violation.id}，扣款 {violation.penalty_amount}'
        else:
            content = f'租客拒绝了违规申报#{violation.id}：{notes}'
        _notify([order.provider], '违规申报已答复', content, violation)

        if accept:
            complete_return_if_settled(order.id, operator=actor)
        return violation

    @staticmethod
    @transaction.atomic
    def revise_claim(actor, violation_id, new_penalty_percentage, new_description=None, penalty_amount=None) -> Violation:
        """出租方修改被拒绝的申报，重新交由租客确认

        penalty_amount 为可选的金额覆盖值，范围 [0, 商品押金]。
        """
        violation = ViolationWorkflow.lock_violation(violation_id)
        order = violation.order
        authorize(actor, ROLE_PROVIDER, order.provider_id)

        if violation.status != ViolationStatus.CUSTOMER_REJECTED.value:
            raise InvalidTransitionError(
                f'违规申报当前状态为"{violation.get_status_display()}"，只能修改被租客拒绝的申报'
            )

        penalty_pct = _parse_percentage(new_penalty_percentage, '扣款比例')
        if new_description not in (None, ''):
            violation.description = _require_text(new_description, '违规描述')

        item = violation.order_item
        if penalty_amount in (None, ''):
            amount = compute_penalty(item, penalty_pct)
        else:
            amount = parse_money(penalty_amount, '扣款金额')
            if amount > item.deposit_amount:
                raise BusinessValidationError(f'扣款金额必须在0到{item.deposit_amount}之间')

        violation.penalty_percentage = penalty_pct
        violation.penalty_amount = amount
        violation.customer_notes = ''
        violation.customer_response_at = None
        ViolationStateMachine.transition(
            violation,
            ViolationStatus.PENDING.value,
            operator=actor,
            note='出租方修改申报',
            extra_fields=['description', 'penalty_percentage', 'penalty_amount', 'customer_notes', 'customer_response_at']
        )

        AuditLogger.log_violation_revised(violation.id, penalty_pct, amount, actor.id)
        _notify(
            [order.customer],
            '违规申报已修改',
            f'违规申报#{violation.id}已修改，拟扣押金 {amount}，请重新确认',
            violation,
        )
        return violation

    @staticmethod
    @transaction.atomic
    def respond_to_rejection(actor, violation_id, response_text) -> Violation:
        """出租方回应租客的拒绝，状态不变（通常随后申请仲裁）"""
        violation = ViolationWorkflow.lock_violation(violation_id)
        order = violation.order
        authorize(actor, ROLE_PROVIDER, order.provider_id)

        if violation.status != ViolationStatus.CUSTOMER_REJECTED.value:
            raise InvalidStateError(
                f'违规申报当前状态为"{violation.get_status_display()}"，只能回应被租客拒绝的申报'
            )

        violation.provider_response = _require_text(response_text, '回应内容')
        violation.provider_response_at = timezone.now()
        violation.save(update_fields=['provider_response', 'provider_response_at', 'updated_at'])

        logger.info(f'出租方回应违规申报#{violation.id}')
        _notify([order.customer], '出租方已回应', violation.provider_response, violation)
        return violation

    @staticmethod
    @transaction.atomic
    def escalate(actor, violation_id, reason) -> Violation:
        """申请管理员仲裁

        任一方均可发起，首次调用完成状态转换；
        已在仲裁中时再次调用不报错，仅补充调用方的理由。
        """
        violation = ViolationWorkflow.lock_violation(violation_id)
        order = violation.order
        role = _party_role(actor, order)
        owner_id = order.provider_id if role == ROLE_PROVIDER else order.customer_id
        authorize(actor, role, owner_id)

        already = violation.status == ViolationStatus.ESCALATED.value
        if not already and violation.status != ViolationStatus.CUSTOMER_REJECTED.value:
            raise InvalidTransitionError(
                f'违规申报当前状态为"{violation.get_status_display()}"，只有被租客拒绝的申报可以申请仲裁'
            )

        reason = _require_text(reason, '仲裁理由')
        reason_field = 'provider_escalation_reason' if role == ROLE_PROVIDER else 'customer_escalation_reason'

        if already:
            if not getattr(violation, reason_field):
                setattr(violation, reason_field, reason)
                violation.save(update_fields=[reason_field, 'updated_at'])
            AuditLogger.log_violation_escalated(violation.id, role, False, actor.id)
            return violation

        setattr(violation, reason_field, reason)
        violation.escalated_by = role
        violation.escalated_at = timezone.now()
        ViolationStateMachine.transition(
            violation,
            ViolationStatus.ESCALATED.value,
            operator=actor,
            note=reason,
            extra_fields=[reason_field, 'escalated_by', 'escalated_at']
        )
        AuditLogger.log_violation_escalated(violation.id, role, True, actor.id)

        from users.services import get_admin_users
        other = order.customer if role == ROLE_PROVIDER else order.provider
        _notify(
            list(get_admin_users()),
            '新的仲裁申请',
            f'违规申报#{violation.id}（订单 {order.order_number}）申请仲裁：{reason}',
            violation,
            ntype='resolution',
        )
        _notify([other], '对方已申请仲裁', f'违规申报#{violation.id}已提交管理员仲裁', violation)
        return violation

    @staticmethod
    @transaction.atomic
    def mark_resolved(violation, resolution, operator=None) -> Violation:
        """仲裁完成后回写：escalated -> resolved，扣款金额以裁决罚金为准

        可重复调用，已 resolved 时直接返回。
        """
        if not resolution.is_completed:
            raise InvalidStateError(f'仲裁#{resolution.id}尚未裁决')

        violation = ViolationWorkflow.lock_violation(violation.id)
        if violation.status == ViolationStatus.RESOLVED.value:
            return violation

        violation.penalty_amount = resolution.customer_fine_amount
        ViolationStateMachine.transition(
            violation,
            ViolationStatus.RESOLVED.value,
            operator=operator,
            note=f'仲裁#{resolution.id} {resolution.get_resolution_type_display()}',
            extra_fields=['penalty_amount']
        )
        return violation

    @staticmethod
    @transaction.atomic
    def add_evidence(actor, violation_id, url, media_kind=None):
        """任一方在申报未结案前追加证据"""
        violation = ViolationWorkflow.lock_violation(violation_id)
        role = _party_role(actor, violation.order)

        if ViolationStateMachine.is_terminal(violation.status):
            raise InvalidStateError('违规申报已结案，不能再追加证据')

        return EvidenceLedger.append(violation, url, role, media_kind)
