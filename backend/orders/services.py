"""
订单服务模块

封装订单归还流程中需要校验操作人身份的状态转换，
以及违规申报结案后的订单自动归还。
"""

import logging

from django.db import transaction

from common.exceptions import ResourceNotFoundError, UnauthorizedActionError
from common.permissions import authorize, is_admin, ROLE_CUSTOMER, ROLE_PROVIDER
from .models import Order
from .state_machine import OrderStateMachine, OrderStatus

logger = logging.getLogger(__name__)


def lock_order(order_id) -> Order:
    """加行锁读取订单，不存在时抛出 ResourceNotFoundError"""
    order = Order.objects.select_for_update().filter(id=order_id).first()
    if order is None:
        raise ResourceNotFoundError(f'订单#{order_id}不存在')
    return order


@transaction.atomic
def start_return(order_id, actor, note: str = '') -> Order:
    """租客发起归还：in_use -> returning"""
    order = lock_order(order_id)
    authorize(actor, ROLE_CUSTOMER, order.customer_id)
    return OrderStateMachine.transition(
        order,
        OrderStatus.RETURNING.value,
        operator=actor,
        note=note or '租客发起归还'
    )


@transaction.atomic
def confirm_return(order_id, actor, note: str = '') -> Order:
    """出租方验收无误：returning -> returned，同时生成押金退款单"""
    order = lock_order(order_id)
    authorize(actor, ROLE_PROVIDER, order.provider_id)
    return OrderStateMachine.transition(
        order,
        OrderStatus.RETURNED.value,
        operator=actor,
        note=note or '出租方验收归还'
    )


@transaction.atomic
def cancel_order(order_id, actor, note: str = '') -> Order:
    """取消订单：订单双方或管理员，仅限交付前"""
    order = lock_order(order_id)
    if not (is_admin(actor) or actor.id in {order.customer_id, order.provider_id}):
        raise UnauthorizedActionError('无权取消该订单')
    return OrderStateMachine.transition(
        order,
        OrderStatus.CANCELLED.value,
        operator=actor,
        note=note
    )


@transaction.atomic
def complete_return_if_settled(order_id, operator=None) -> bool:
    """所有违规申报结案后，将订单从"归还有争议"推进到"已归还"。

    结案指违规申报处于 customer_accepted 或 resolved。
    订单已归还时只重新汇总押金退款单。

    Returns:
        bool: 本次调用是否推进了订单状态
    """
    from disputes.models import Violation
    from refunds.models import DepositRefund
    from refunds.settlement import DepositSettlement

    order = lock_order(order_id)

    if order.status == OrderStatus.RETURNED.value:
        refund = DepositRefund.objects.filter(order=order).first()
        if refund and refund.status == DepositRefund.STATUS_INITIATED:
            DepositSettlement.recalculate_refund(order.id)
        return False

    if order.status != OrderStatus.RETURNED_WITH_ISSUE.value:
        return False

    unsettled = Violation.objects.filter(order_item__order=order).exclude(
        status__in=Violation.SETTLED_STATUSES
    ).count()
    if unsettled:
        logger.info(f'订单#{order.id}仍有{unsettled}条违规申报未结案')
        return False

    OrderStateMachine.transition(
        order,
        OrderStatus.RETURNED.value,
        operator=operator,
        note='所有违规申报均已结案'
    )
    return True
