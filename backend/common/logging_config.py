"""
Logging configuration for the Django application.

This module provides:
- Centralized logging configuration
- File rotation for log files
- Separate audit logging for settlement operations
- Environment-aware logging levels
- Windows-compatible file handlers
"""

import sys
from pathlib import Path
from rental_settlement.settings.env_config import EnvironmentConfig

# Check if running on Windows
IS_WINDOWS = sys.platform.startswith('win')

# Get the base directory for log files
BASE_DIR = Path(__file__).resolve().parents[1]
LOGS_DIR = Path(EnvironmentConfig.get_env('LOG_DIR', '') or (BASE_DIR / 'rental_settlement' / 'logs'))

# Create logs directory if it doesn't exist
LOGS_DIR.mkdir(parents=True, exist_ok=True)

APP_LOGGERS = ('common', 'users', 'orders', 'disputes', 'refunds', 'integrations')


def _file_handler(filename, level, formatter, max_mb=10, backups=10, days=30):
    """Build a rotating file handler definition.

    Windows cannot rename a file another process holds open, so it rotates
    by time instead of size.
    """
    if IS_WINDOWS:
        return {
            'level': level,
            'class': 'logging.handlers.TimedRotatingFileHandler',
            'filename': str(LOGS_DIR / filename),
            'when': 'midnight',
            'interval': 1,
            'backupCount': days,
            'formatter': formatter,
            'encoding': 'utf-8',
        }
    return {
        'level': level,
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': str(LOGS_DIR / filename),
        'maxBytes': max_mb * 1024 * 1024,
        'backupCount': backups,
        'formatter': formatter,
        'encoding': 'utf-8',
    }


def get_logging_config():
    """
    Get the logging configuration dictionary for Django.

    Example in settings.py:
        from common.logging_config import get_logging_config
        LOGGING = get_logging_config()

    Returns:
        dict: Logging configuration for Django
    """
    def _resolve_level(env_key: str, default: str) -> str:
        val = (EnvironmentConfig.get_env(env_key, '') or '').strip().upper()
        if val:
            return val
        return default

    default_level = _resolve_level('LOG_LEVEL', 'INFO')
    django_level = _resolve_level('DJANGO_LOG_LEVEL', default_level)
    db_level = _resolve_level('DB_LOG_LEVEL', 'INFO')
    payout_debug_enabled = (EnvironmentConfig.get_env('PAYOUT_API_DEBUG', 'False') or '').lower() in ('1', 'true', 'yes', 'on')

    handlers = {
        'console': {
            'level': default_level,
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
        'file': _file_handler('app.log', default_level, 'verbose'),
        'error_file': _file_handler('error.log', 'ERROR', 'verbose'),
        'settlement_audit': _file_handler('settlement_audit.log', 'INFO', 'audit', max_mb=50, backups=20, days=90),
        'db_queries': _file_handler('db_queries.log', 'DEBUG', 'verbose', backups=5, days=7),
        'api': _file_handler('api.log', 'INFO', 'verbose'),
    }

    loggers = {
        'django': {
            'handlers': ['console', 'file', 'error_file'],
            'level': django_level,
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console', 'file', 'error_file'],
            'level': 'WARNING',
            'propagate': False,
        },
        'django.db.backends': {
            # Enable query logging only when DB_LOG_LEVEL=DEBUG
            'handlers': ['db_queries'] if db_level == 'DEBUG' else [],
            'level': db_level,
            'propagate': False,
        },
        'api': {
            'handlers': ['console', 'api', 'error_file'],
            'level': 'INFO',
            'propagate': False,
        },
        'settlement_audit': {
            'handlers': ['console', 'settlement_audit', 'error_file'],
            'level': 'INFO',
            'propagate': False,
        },
    }
    for name in APP_LOGGERS:
        loggers[name] = {
            'handlers': ['console', 'file', 'error_file'],
            'level': default_level,
            'propagate': False,
        }
    if payout_debug_enabled:
        loggers['integrations']['level'] = 'DEBUG'

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'verbose': {
                'format': '[{levelname}] {asctime} {name} {funcName}:{lineno} - {message}',
                'style': '{',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
            'simple': {
                'format': '[{levelname}] {asctime} {name} - {message}',
                'style': '{',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
            'audit': {
                'format': '[AUDIT] {asctime} {name} - {message}',
                'style': '{',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': handlers,
        'loggers': loggers,
    }
