import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User, BankAccount, Notification

logger = logging.getLogger(__name__)


def update_last_login(user):
    user.last_login_at = timezone.now()
    user.save(update_fields=['last_login_at'])


def create_tokens_for_user(user):
    refresh = RefreshToken.for_user(user)
    return str(refresh), str(refresh.access_token)


def get_admin_users():
    """所有可接收仲裁提醒的管理员"""
    return User.objects.filter(Q(is_staff=True) | Q(role='admin'), is_active=True)


@transaction.atomic
def set_primary_bank_account(account: BankAccount) -> BankAccount:
    """将指定账户设为默认收款账户，同一用户只保留一个默认账户。"""
    BankAccount.objects.select_for_update().filter(user_id=account.user_id, is_primary=True).exclude(
        id=account.id
    ).update(is_primary=False)
    if not account.is_primary:
        account.is_primary = True
        account.save(update_fields=['is_primary'])
    return account


def create_notification(user, title: str, content: str, ntype: str = 'system', metadata: dict = None):
    """创建一条通知记录（站内提醒队列）。

    通知失败不应中断业务流程，失败时记录日志并返回None。
    """
    if not user:
        return None
    try:
        with transaction.atomic():
            return Notification.objects.create(
                user=user,
                title=title[:100],
                content=content,
                type=ntype,
                metadata=metadata or {},
                status='pending'
            )
    except Exception as exc:
        logger.error(f'创建通知失败: user_id={user.id}, title={title}, err={exc}')
        return None


def notify_users(users, title: str, content: str, ntype: str = 'system', metadata: dict = None):
    """批量通知，去重后逐个创建"""
    seen = set()
    created = []
    for user in users:
        if not user or user.id in seen:
            continue
        seen.add(user.id)
        notif = create_notification(user, title, content, ntype=ntype, metadata=metadata)
        if notif:
            created.append(notif)
    return created
