"""
订单状态机模块

定义租赁订单的所有可能状态和合法的状态转换规则。
订单进入"已归还"时自动生成押金退款单。
"""

import logging
from enum import Enum
from typing import Set
from django.db import transaction
from django.utils import timezone

from common.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class OrderStatus(Enum):
    """订单状态枚举"""
    PENDING = 'pending'                          # 待确认
    APPROVED = 'approved'                        # 已确认
    IN_USE = 'in_use'                            # 租用中
    RETURNING = 'returning'                      # 归还中
    RETURNED_WITH_ISSUE = 'returned_with_issue'  # 归还有争议
    RETURNED = 'returned'                        # 已归还
    CANCELLED = 'cancelled'                      # 已取消


class OrderStateMachine:
    """订单状态机

    管理订单状态的转换规则和业务逻辑。
    确保订单状态只能按照定义的规则进行转换。
    """

    # 键为当前状态，值为允许转换到的状态集合
    TRANSITIONS = {
        OrderStatus.PENDING: {
            OrderStatus.APPROVED,             # 出租方确认
            OrderStatus.CANCELLED,            # 取消订单
        },
        OrderStatus.APPROVED: {
            OrderStatus.IN_USE,               # 交付租用
            OrderStatus.CANCELLED,            # 取消订单
        },
        OrderStatus.IN_USE: {
            OrderStatus.RETURNING,            # 租客发起归还
        },
        OrderStatus.RETURNING: {
            OrderStatus.RETURNED,             # 出租方验收无误
            OrderStatus.RETURNED_WITH_ISSUE,  # 出租方提交违规申报
        },
        OrderStatus.RETURNED_WITH_ISSUE: {
            OrderStatus.RETURNED,             # 所有违规申报均已结案
        },
        OrderStatus.RETURNED: set(),          # 已归还，不允许转换
        OrderStatus.CANCELLED: set(),         # 已取消，不允许转换
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """检查状态转换是否合法

        Args:
            from_status: 当前状态（字符串）
            to_status: 目标状态（字符串）

        Returns:
            bool: 如果转换合法返回True，否则返回False
        """
        try:
            from_enum = OrderStatus(from_status)
            to_enum = OrderStatus(to_status)
            return to_enum in cls.TRANSITIONS.get(from_enum, set())
        except ValueError:
            return False

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> Set[str]:
        """获取当前状态允许转换到的所有状态"""
        try:
            current_enum = OrderStatus(current_status)
            allowed_enums = cls.TRANSITIONS.get(current_enum, set())
            return {status.value for status in allowed_enums}
        except ValueError:
            return set()

    @classmethod
    @transaction.atomic
    def transition(
        cls,
        order,
        new_status: str,
        operator=None,
        note: str = ''
    ):
        """执行状态转换

        Args:
            order: Order对象
            new_status: 目标状态（字符串）
            operator: 操作人（User对象，可选）
            note: 转换备注（可选）

        Raises:
            InvalidTransitionError: 如果状态转换不合法

        Returns:
            Order: 更新后的订单对象
        """
        if not cls.can_transition(order.status, new_status):
            allowed = cls.get_allowed_transitions(order.status)
            raise InvalidTransitionError(
                f'订单不允许从状态 "{order.status}" 转换到 "{new_status}"。'
                f'允许的转换: {sorted(allowed)}'
            )

        old_status = order.status

        order.status = new_status
        order.updated_at = timezone.now()
        order.save(update_fields=['status', 'updated_at'])

        from .models import OrderStatusHistory
        OrderStatusHistory.objects.create(
            order=order,
            from_status=old_status,
            to_status=new_status,
            operator=operator,
            note=note
        )

        from common.audit_logger import AuditLogger
        AuditLogger.log_order_status_changed(
            order.id, old_status, new_status, operator.id if operator else None
        )

        cls._handle_post_transition(order, old_status, new_status, operator)

        return order

    @classmethod
    def _handle_post_transition(
        cls,
        order,
        old_status: str,
        new_status: str,
        operator=None
    ):
        """处理状态转换后的业务逻辑

        Args:
            order: Order对象
            old_status: 原状态
            new_status: 新状态
            operator: 操作人
        """
        if new_status == OrderStatus.RETURNED.value:
            cls._handle_order_returned(order, old_status, operator)

    @classmethod
    def _handle_order_returned(cls, order, old_status: str, operator=None):
        """处理订单归还完成

        生成（或重新汇总）押金退款单，并通知双方。
        退款单生成失败会回滚整个状态转换。
        """
        from refunds.settlement import DepositSettlement
        from users.services import notify_users

        refund = DepositSettlement.ensure_refund(order, operator=operator)
        logger.info(
            f'订单#{order.id}已归还，押金退款单#{refund.id} 应退 {refund.refund_amount}'
        )

        if old_status == OrderStatus.RETURNED_WITH_ISSUE.value:
            content = f'订单 {order.order_number} 的所有违规申报均已结案，押金退款处理中'
        else:
            content = f'订单 {order.order_number} 已验收归还，押金退款处理中'
        notify_users(
            [order.customer, order.provider],
            title='订单已归还',
            content=content,
            ntype='order',
            metadata={
                'order_id': order.id,
                'order_number': order.order_number,
                'refund_id': refund.id,
                'refund_amount': str(refund.refund_amount),
                'status': order.status,
            }
        )
