from .base import *  # noqa
import os
from .env_config import EnvironmentConfig

# Production environment settings
DEBUG = False

# Validate production configuration on startup
EnvironmentConfig.validate_production_config()

ALLOWED_HOSTS = EnvironmentConfig.get_allowed_hosts()

DATABASES = {
    'default': EnvironmentConfig.get_database_config()
}

# Security settings for production
SECURE_SSL_REDIRECT = EnvironmentConfig.get_bool('SECURE_SSL_REDIRECT', True)
SECURE_HSTS_SECONDS = int(os.getenv('SECURE_HSTS_SECONDS', '31536000'))  # 1 year
SECURE_HSTS_INCLUDE_SUBDOMAINS = EnvironmentConfig.get_bool('SECURE_HSTS_INCLUDE_SUBDOMAINS', True)
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

# CORS settings for production
CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = EnvironmentConfig.get_cors_allowed_origins()

# Shared cache so throttling counts across workers
if os.getenv('REDIS_URL'):
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': os.getenv('REDIS_URL'),
            'TIMEOUT': 300,
        }
    }
