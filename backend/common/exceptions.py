"""
Custom exception classes and unified exception handler for the API.

This module provides:
- Business exceptions for the dispute and settlement workflows
  (BusinessValidationError, InvalidTransitionError, ResourceConflictError, etc.)
- Unified exception handler that formats all errors consistently
- Environment-aware error response formatting (hides sensitive info in production)
"""

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import JsonResponse
import logging

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Business Logic Exceptions
# ============================================================================

class BusinessException(APIException):
    """
    Base class for all business logic exceptions.

    Provides a consistent way to handle domain-specific errors with
    appropriate HTTP status codes and error messages.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'A business logic error occurred.'
    default_code = 'business_error'
    error_code = 'BUSINESS_ERROR'

    def __init__(self, detail=None, code=None, error_code=None):
        """
        Initialize the exception.

        Args:
            detail (str, optional): Error message. Uses default_detail if not provided.
            code (str, optional): Error code for DRF. Uses default_code if not provided.
            error_code (str, optional): Custom error code for client. Uses class error_code if not provided.
        """
        if detail is None:
            detail = self.default_detail
        if code is None:
            code = self.default_code
        if error_code is None:
            error_code = self.error_code

        super().__init__(detail=detail, code=code)
        self.error_code = error_code


class BusinessValidationError(BusinessException):
    """
    Raised when input is malformed: out-of-range percentages, missing
    required text, unknown resolution type and so on.

    HTTP Status: 400 Bad Request

    Example:
        if not 0 <= percentage <= 100:
            raise BusinessValidationError(
                detail='扣款比例必须在0到100之间'
            )
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = '参数校验失败'
    default_code = 'validation_error'
    error_code = 'VALIDATION_ERROR'


class UnauthorizedActionError(BusinessException):
    """
    Raised when the actor does not hold the role or does not own the resource.

    HTTP Status: 403 Forbidden

    Example:
        if order.provider_id != actor.id:
            raise UnauthorizedActionError(
                detail='只有订单的出租方可以提交违规申报'
            )
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = '无权执行该操作'
    default_code = 'unauthorized_action'
    error_code = 'UNAUTHORIZED_ACTION'


class InvalidStateError(BusinessException):
    """
    Raised when an operation is not permitted for the record's current state.

    HTTP Status: 409 Conflict

    Example:
        if refund.status != 'initiated':
            raise InvalidStateError(
                detail='退款单已处理，不能重复处理'
            )
    """

    status_code = status.HTTP_409_CONFLICT
    default_detail = '当前状态不允许该操作'
    default_code = 'invalid_state'
    error_code = 'INVALID_STATE'


class InvalidTransitionError(InvalidStateError):
    """
    Raised by the state machines when a status transition is not allowed.

    HTTP Status: 409 Conflict

    Example:
        if not ViolationStateMachine.can_transition(v.status, 'escalated'):
            raise InvalidTransitionError(
                detail='只有被客户拒绝的违规申报才能升级仲裁'
            )
    """

    default_detail = '状态转换不合法'
    default_code = 'invalid_transition'
    error_code = 'INVALID_TRANSITION'


class ResourceConflictError(BusinessException):
    """
    Raised when attempting to finalize an already-finalized record.

    HTTP Status: 409 Conflict

    Example:
        if resolution.status == 'completed':
            raise ResourceConflictError(
                detail='仲裁结果已确定，不可修改'
            )
    """

    status_code = status.HTTP_409_CONFLICT
    default_detail = '资源冲突'
    default_code = 'resource_conflict'
    error_code = 'RESOURCE_CONFLICT'


class InvalidClaimError(ResourceConflictError):
    """
    Raised when a violation is filed for an order item that already has
    an outstanding one.

    HTTP Status: 409 Conflict
    """

    default_detail = '该商品已有未结的违规申报'
    default_code = 'invalid_claim'
    error_code = 'INVALID_CLAIM'


class ResourceNotFoundError(BusinessException):
    """
    Raised when a referenced record does not exist.

    HTTP Status: 404 Not Found
    """

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = '资源不存在'
    default_code = 'not_found'
    error_code = 'NOT_FOUND'


class ExternalServiceError(BusinessException):
    """
    Raised when an external dependency (the payout rail) is unreachable
    or rejects the request.

    HTTP Status: 502 Bad Gateway

    Example:
        try:
            requests.post(url, json=payload, timeout=10)
        except requests.RequestException as e:
            raise ExternalServiceError(
                detail=f'打款通道请求失败: {str(e)}'
            )
    """

    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = '外部服务调用失败'
    default_code = 'external_service_error'
    error_code = 'EXTERNAL_SERVICE_ERROR'


# ============================================================================
# Unified Exception Handler
# ============================================================================

def _is_production():
    from rental_settlement.settings.env_config import EnvironmentConfig
    return EnvironmentConfig.is_production()


def _request_context(request):
    return {
        'request_path': request.path if request else None,
        'request_method': request.method if request else None,
    }


def custom_exception_handler(exc, context):
    """
    DRF exception handler producing one envelope for every error:

        {"success": false, "code": 409, "message": "...", "error_code": "INVALID_STATE"}

    Field-level serializer errors are attached as ``errors`` outside production.
    Exceptions DRF does not recognise become a 500 (or 400 for Django
    ValidationError) with the details hidden in production.
    """
    response = drf_exception_handler(exc, context)
    _log_exception(exc, context, response)

    if response is None:
        return _handle_unhandled_exception(exc, context)

    production = _is_production()
    message, errors, error_code = _extract_error_info(response.data, exc)

    body = {
        'success': False,
        'code': response.status_code,
        'message': message,
    }
    if error_code:
        body['error_code'] = error_code
    if errors and not production:
        body['errors'] = errors
    if production and response.status_code >= 500 and not isinstance(exc, BusinessException):
        body['message'] = '服务器内部错误，请稍后重试'

    response.data = body
    return response


def _extract_error_info(error_data, exc):
    """
    Returns:
        tuple: (message, errors, error_code)
    """
    error_code = exc.error_code if isinstance(exc, BusinessException) else None

    if isinstance(error_data, dict):
        if 'detail' in error_data:
            return str(error_data['detail']), None, error_code
        if 'message' in error_data:
            return str(error_data['message']), None, error_code
        # 序列化器字段错误
        return 'Validation error', error_data, error_code or 'VALIDATION_ERROR'

    if isinstance(error_data, list):
        return (str(error_data[0]) if error_data else 'An error occurred'), None, error_code

    return str(error_data), None, error_code


def _handle_unhandled_exception(exc, context):
    request = context.get('request')
    logger.error(
        f'Unhandled exception: {type(exc).__name__}',
        exc_info=exc,
        extra=_request_context(request)
    )

    if isinstance(exc, DjangoValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if _is_production():
        message = 'An error occurred, please try again later'
    else:
        message = f'{type(exc).__name__}: {exc}'

    return Response({'success': False, 'code': status_code, 'message': message}, status=status_code)


def _log_exception(exc, context, response):
    """5xx 记 ERROR 并带堆栈，4xx 记 WARNING；未被DRF处理的异常由 _handle_unhandled_exception 记录"""
    if response is None:
        return
    request = context.get('request')
    view = context.get('view')
    status_code = response.status_code

    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    message = f'{type(exc).__name__}: {exc}' if str(exc) else type(exc).__name__
    extra = _request_context(request)
    extra.update({
        'view_name': view.__class__.__name__ if view else None,
        'status_code': status_code,
    })
    logger.log(level, message, exc_info=exc if level == logging.ERROR else None, extra=extra)


# ============================================================================
# Middleware for catching unhandled exceptions
# ============================================================================

class ExceptionLoggingMiddleware:
    """
    Catches exceptions raised outside DRF views (admin, health check, plain
    Django views) and returns the same JSON envelope as the API handler.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        try:
            return self.get_response(request)
        except Exception as exc:
            logger.error(
                f'Unhandled exception in middleware: {type(exc).__name__}',
                exc_info=exc,
                extra=_request_context(request)
            )
            message = 'Internal server error' if _is_production() else f'{type(exc).__name__}: {exc}'
            return JsonResponse(
                {
                    'success': False,
                    'code': status.HTTP_500_INTERNAL_SERVER_ERROR,
                    'message': message,
                },
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
