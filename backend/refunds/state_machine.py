"""
押金退款状态机模块

initiated -> completed / failed 由管理员处理完成；
failed / completed -> initiated（重新打开）是唯一允许的回退。
"""

import logging
from enum import Enum
from typing import Set
from django.db import transaction

from common.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class RefundStatus(Enum):
    """押金退款状态枚举"""
    INITIATED = 'initiated'   # 待处理
    COMPLETED = 'completed'   # 已退款
    FAILED = 'failed'         # 退款失败


class RefundStateMachine:
    """押金退款状态机"""

    TRANSITIONS = {
        RefundStatus.INITIATED: {
            RefundStatus.COMPLETED,   # 打款成功
            RefundStatus.FAILED,      # 管理员拒绝或打款失败
        },
        RefundStatus.FAILED: {
            RefundStatus.INITIATED,   # 重新打开
        },
        RefundStatus.COMPLETED: {
            RefundStatus.INITIATED,   # 更正后重新打开
        },
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        try:
            return RefundStatus(to_status) in cls.TRANSITIONS.get(RefundStatus(from_status), set())
        except ValueError:
            return False

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> Set[str]:
        try:
            return {s.value for s in cls.TRANSITIONS.get(RefundStatus(current_status), set())}
        except ValueError:
            return set()

    @classmethod
    @transaction.atomic
    def transition(cls, refund, new_status: str, operator=None, note: str = '', extra_fields=None):
        """执行状态转换，并在退款单日志中追加一条记录

        Raises:
            InvalidTransitionError: 如果状态转换不合法
        """
        if not cls.can_transition(refund.status, new_status):
            allowed = cls.get_allowed_transitions(refund.status)
            raise InvalidTransitionError(
                f'退款单不允许从状态 "{refund.status}" 转换到 "{new_status}"。'
                f'允许的转换: {sorted(allowed)}'
            )

        old_status = refund.status
        refund.status = new_status
        refund.add_log(
            'status_changed',
            note,
            from_status=old_status,
            to_status=new_status,
            operator=operator.id if operator else '',
        )
        update_fields = ['status', 'logs', 'updated_at'] + list(extra_fields or [])
        refund.save(update_fields=update_fields)

        logger.info(f'退款单#{refund.id} 状态变更: {old_status} -> {new_status}')
        return refund
