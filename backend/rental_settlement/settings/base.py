from pathlib import Path
from datetime import timedelta
from .env_config import EnvironmentConfig

BASE_DIR = Path(__file__).resolve().parents[1]

# Environment-aware configuration
SECRET_KEY = EnvironmentConfig.get_secret_key()
DEBUG = EnvironmentConfig.get_debug()
ALLOWED_HOSTS = EnvironmentConfig.get_allowed_hosts()

INSTALLED_APPS = [
    'simpleui',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'drf_spectacular',
    'corsheaders',
    'django_filters',
    'common',
    'users',
    'orders',
    'disputes',
    'refunds',
]

AUTH_USER_MODEL = 'users.User'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
    ],
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle',
    ] if EnvironmentConfig.is_production() else [],
    'DEFAULT_THROTTLE_RATES': {
        'anon': '20/minute',
        'user': '100/minute',
        'login': '5/minute',
        'payout': '10/minute' if EnvironmentConfig.is_production() else '1000/minute',
    },
    'DEFAULT_PAGINATION_CLASS': 'common.pagination.StandardResultsSetPagination',
    'PAGE_SIZE': 20,
    'EXCEPTION_HANDLER': 'common.exceptions.custom_exception_handler',
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

# drf-spectacular configuration
SPECTACULAR_SETTINGS = {
    'TITLE': 'Rental Deposit Settlement API',
    'DESCRIPTION': 'Violation claims, admin arbitration and deposit refunds for returned rentals',
    'VERSION': '1.0.0',
    'SERVE_PERMISSIONS': ['rest_framework.permissions.AllowAny'],
    'SERVE_AUTHENTICATION': None,
    'SCHEMA_PATH_PREFIX': r'/api/v1',
    'AUTHENTICATION_FLOWS': {
        'JWT': {
            'type': 'http',
            'scheme': 'bearer',
            'bearerFormat': 'JWT',
        }
    },
    'SECURITY': [
        {
            'JWT': []
        }
    ],
    'TAGS': [
        {
            'name': 'Authentication',
            'description': 'Password login and JWT refresh',
        },
        {
            'name': 'Bank Accounts',
            'description': 'Refund destination accounts',
        },
        {
            'name': 'Notifications',
            'description': 'In-app notification queue',
        },
        {
            'name': 'Orders',
            'description': 'Rental orders and the return flow',
        },
        {
            'name': 'Violations',
            'description': 'Provider claims, customer responses and escalation',
        },
        {
            'name': 'Resolutions',
            'description': 'Admin arbitration decisions',
        },
        {
            'name': 'Deposit Refunds',
            'description': 'Deposit settlement and payout',
        },
    ],
    'POSTPROCESSING_HOOKS': [
        'drf_spectacular.hooks.postprocess_schema_enums',
    ],
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(days=1),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=14),
}

# CORS configuration (environment-specific settings in development.py and production.py)
CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = [
    'accept',
    'accept-encoding',
    'authorization',
    'content-type',
    'origin',
    'user-agent',
    'x-csrftoken',
    'x-requested-with',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'common.exceptions.ExceptionLoggingMiddleware',
]

ROOT_URLCONF = 'rental_settlement.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'rental_settlement.wsgi.application'

LANGUAGE_CODE = 'zh-hans'

TIME_ZONE = 'Asia/Shanghai'

USE_I18N = True

USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Cache: local memory for development/test; override in production as needed
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'rental-settlement-cache',
        'TIMEOUT': 300,
    }
}

# Logging configuration
from common.logging_config import get_logging_config  # noqa: E402
LOGGING = get_logging_config()

# ============================================================================
# Payout rail (deposit refund bank transfers)
# ============================================================================
_payout = EnvironmentConfig.get_payout_config()
PAYOUT_RAIL_URL = _payout['PAYOUT_RAIL_URL']
PAYOUT_RAIL_API_KEY = _payout['PAYOUT_RAIL_API_KEY']
PAYOUT_RAIL_TIMEOUT = _payout['PAYOUT_RAIL_TIMEOUT']
PAYOUT_RAIL_RETRIES = _payout['PAYOUT_RAIL_RETRIES']
PAYOUT_CURRENCY = _payout['PAYOUT_CURRENCY']
# 开发/测试环境默认使用模拟打款，生产环境必须配置真实通道
PAYOUT_USE_MOCK = _payout['PAYOUT_USE_MOCK']
# 生产环境启动时缺少打款配置直接失败
PAYOUT_STRICT_CONFIG_CHECK = EnvironmentConfig.get_bool('PAYOUT_STRICT_CONFIG_CHECK', True)
