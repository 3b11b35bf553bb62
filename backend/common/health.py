"""
Health check endpoint for load balancers and monitoring.

Database and cache failures make the service unhealthy (503). A missing
payout rail configuration is reported but does not fail the check, since
only refund processing depends on it.
"""

import logging
import time

from django.core.cache import cache
from django.db import connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

logger = logging.getLogger(__name__)

HEALTH_CACHE_KEY = '__health_check__'


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    GET /healthz

    {
        "success": true,
        "code": 200,
        "message": "System is healthy",
        "data": {
            "status": "healthy",
            "timestamp": "...",
            "services": {
                "database": {"status": "healthy", "response_time_ms": 1.2},
                "cache": {"status": "healthy", "response_time_ms": 0.3},
                "payout_rail": {"status": "healthy", "mode": "mock"}
            }
        }
    }
    """
    services = {
        'database': _timed_check('database', _ping_database),
        'cache': _timed_check('cache', _ping_cache),
        'payout_rail': _check_payout_config(),
    }
    healthy = services['database']['status'] == 'healthy' and services['cache']['status'] == 'healthy'
    code = status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.debug(f'Health check: db={services["database"]["status"]}, cache={services["cache"]["status"]}')
    return Response({
        'success': healthy,
        'code': code,
        'message': 'System is healthy' if healthy else 'System is unhealthy',
        'data': {
            'status': 'healthy' if healthy else 'unhealthy',
            'timestamp': timezone.now().isoformat(),
            'services': services,
        },
    }, status=code)


def _timed_check(name, probe):
    """执行探测函数并记录耗时，探测失败时返回 unhealthy"""
    start = time.time()
    try:
        probe()
    except Exception as e:
        logger.error(f'{name} health check failed', exc_info=e)
        return {'status': 'unhealthy', 'error': str(e)}
    return {'status': 'healthy', 'response_time_ms': round((time.time() - start) * 1000, 2)}


def _ping_database():
    with connection.cursor() as cursor:
        cursor.execute('SELECT 1')
        cursor.fetchone()


def _ping_cache():
    cache.set(HEALTH_CACHE_KEY, 'ok', timeout=10)
    if cache.get(HEALTH_CACHE_KEY) != 'ok':
        raise RuntimeError('Cache value mismatch')
    cache.delete(HEALTH_CACHE_KEY)


def _check_payout_config(strict: bool = False):
    """检查打款通道配置

    Args:
        strict: 为True时配置缺失直接抛出RuntimeError

    Returns:
        dict: {'status': ..., 'mode': 'mock'|'live', 'missing': [...]}
    """
    from django.conf import settings

    if getattr(settings, 'PAYOUT_USE_MOCK', False):
        return {'status': 'healthy', 'mode': 'mock'}

    missing = [
        name for name in ('PAYOUT_RAIL_URL', 'PAYOUT_RAIL_API_KEY')
        if not getattr(settings, name, '')
    ]
    if missing:
        msg = f'payout rail config missing: {", ".join(missing)}'
        if strict:
            raise RuntimeError(msg)
        logger.warning(msg)
        return {'status': 'misconfigured', 'mode': 'live', 'missing': missing}
    return {'status': 'healthy', 'mode': 'live'}
