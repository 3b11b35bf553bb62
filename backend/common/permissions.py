"""
Permission classes and role checks for API access control.

Two layers are provided:
- DRF permission classes used by the viewsets (request-level gate)
- ``authorize()`` used at the start of every service operation, so the
  dispute and settlement services enforce ownership no matter who calls them
"""

from rest_framework import permissions

from .exceptions import UnauthorizedActionError

ROLE_CUSTOMER = 'customer'
ROLE_PROVIDER = 'provider'
ROLE_ADMIN = 'admin'


def is_admin(user) -> bool:
    """管理员判定：is_staff 或 role=admin"""
    if not user or not getattr(user, 'is_authenticated', False):
        return False
    return bool(user.is_staff or getattr(user, 'role', '') == ROLE_ADMIN)


def authorize(actor, required_role: str, resource_owner_id=None):
    """校验操作人的角色与资源归属。

    Args:
        actor: 操作人（User对象）
        required_role: 需要的角色（customer/provider/admin）
        resource_owner_id: 资源所属用户ID；为None时只校验角色

    Raises:
        UnauthorizedActionError: 未登录、角色不符或不是资源所有者
    """
    if actor is None or not getattr(actor, 'is_authenticated', False):
        raise UnauthorizedActionError('请先登录')

    if required_role == ROLE_ADMIN:
        if not is_admin(actor):
            raise UnauthorizedActionError('仅管理员可执行该操作')
        return

    if getattr(actor, 'role', '') != required_role:
        raise UnauthorizedActionError(f'该操作需要{required_role}角色')

    if resource_owner_id is not None and actor.id != resource_owner_id:
        raise UnauthorizedActionError('无权操作不属于自己的资源')


class IsOwnerOrAdmin(permissions.BasePermission):
    """
    Permission class that allows access to the parties of an object or administrators.

    - Administrators (is_staff=True or role=admin) can access any object
    - Regular users can only access objects they are a party to

    The object is resolved to its parties through ``customer``/``provider``
    attributes, directly or through ``order``.
    """

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if is_admin(request.user):
            return True

        owner = getattr(obj, 'user', None)
        if owner is not None:
            return owner == request.user

        target = obj
        if not hasattr(obj, 'customer_id') and hasattr(obj, 'order'):
            target = obj.order
        party_ids = {
            getattr(target, 'customer_id', None),
            getattr(target, 'provider_id', None),
        }
        return request.user.id in party_ids


class IsAdmin(permissions.BasePermission):
    """
    Permission class that requires administrator privileges.

    Typical usage:
        class ResolutionViewSet(viewsets.ReadOnlyModelViewSet):
            permission_classes = [IsAdmin]
    """

    def has_permission(self, request, view):
        return is_admin(request.user)
