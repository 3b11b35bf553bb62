"""
违规申报状态机模块

定义违规申报的所有状态和合法的状态转换规则。
customer_accepted 与 resolved 为终态，进入押金结算。
"""

import logging
from enum import Enum
from typing import Set
from django.db import transaction

from common.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class ViolationStatus(Enum):
    """违规申报状态枚举"""
    PENDING = 'pending'                       # 待客户确认
    CUSTOMER_ACCEPTED = 'customer_accepted'   # 客户已接受
    CUSTOMER_REJECTED = 'customer_rejected'   # 客户已拒绝
    ESCALATED = 'escalated'                   # 仲裁中
    RESOLVED = 'resolved'                     # 已裁决


class ViolationStateMachine:
    """违规申报状态机"""

    TRANSITIONS = {
        ViolationStatus.PENDING: {
            ViolationStatus.CUSTOMER_ACCEPTED,   # 客户接受扣款
            ViolationStatus.CUSTOMER_REJECTED,   # 客户拒绝
        },
        ViolationStatus.CUSTOMER_REJECTED: {
            ViolationStatus.PENDING,             # 出租方修改申报
            ViolationStatus.ESCALATED,           # 任一方申请仲裁
        },
        ViolationStatus.ESCALATED: {
            ViolationStatus.RESOLVED,            # 管理员裁决
        },
        ViolationStatus.CUSTOMER_ACCEPTED: set(),
        ViolationStatus.RESOLVED: set(),
    }

    TERMINAL = {ViolationStatus.CUSTOMER_ACCEPTED.value, ViolationStatus.RESOLVED.value}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        try:
            from_enum = ViolationStatus(from_status)
            to_enum = ViolationStatus(to_status)
            return to_enum in cls.TRANSITIONS.get(from_enum, set())
        except ValueError:
            return False

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> Set[str]:
        try:
            current_enum = ViolationStatus(current_status)
            return {status.value for status in cls.TRANSITIONS.get(current_enum, set())}
        except ValueError:
            return set()

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL

    @classmethod
    @transaction.atomic
    def transition(cls, violation, new_status: str, operator=None, note: str = '', extra_fields=None):
        """执行状态转换

        Args:
            violation: Violation对象（调用方应已加行锁）
            new_status: 目标状态
            operator: 操作人（User对象，可选）
            note: 转换备注
            extra_fields: 与状态一同保存的其他字段名列表

        Raises:
            InvalidTransitionError: 如果状态转换不合法
        """
        if not cls.can_transition(violation.status, new_status):
            allowed = cls.get_allowed_transitions(violation.status)
            raise InvalidTransitionError(
                f'违规申报不允许从状态 "{violation.status}" 转换到 "{new_status}"。'
                f'允许的转换: {sorted(allowed)}'
            )

        old_status = violation.status
        violation.status = new_status
        update_fields = ['status', 'updated_at'] + list(extra_fields or [])
        violation.save(update_fields=update_fields)

        from .models import ViolationStatusHistory
        ViolationStatusHistory.objects.create(
            violation=violation,
            from_status=old_status,
            to_status=new_status,
            operator=operator,
            note=note
        )

        from common.audit_logger import AuditLogger
        AuditLogger.log_violation_status_changed(
            violation.id, old_status, new_status, operator.id if operator else None
        )
        logger.info(f'违规申报#{violation.id} 状态变更: {old_status} -> {new_status}')

        return violation
