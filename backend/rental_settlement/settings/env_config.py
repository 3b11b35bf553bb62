"""
Environment configuration for the rental settlement service.

Detects the runtime environment from DJANGO_ENV, loads ``backend/.env`` and
exposes the values the settings modules need: secrets, hosts, database and
payout rail configuration.
"""

import os
from pathlib import Path
from django.core.exceptions import ImproperlyConfigured

TRUE_VALUES = ('true', '1', 'yes', 'on')


def load_env_file():
    """Load environment variables from backend/.env without overriding the real environment"""
    env_file = Path(__file__).resolve().parents[2] / '.env'
    if not env_file.exists():
        return
    with open(env_file, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            key = key.strip()
            if key and not os.getenv(key):
                os.environ[key] = value.strip().strip('"').strip("'")


load_env_file()


class EnvironmentConfig:
    """
    Centralized environment configuration.

    Development uses SQLite, open hosts and the mock payout rail.
    Production requires every secret to be supplied through the environment.
    """

    ENV_DEVELOPMENT = 'development'
    ENV_PRODUCTION = 'production'

    @staticmethod
    def get_env(key: str = None, default: str = None) -> str:
        """
        Get an environment variable, or the current environment name when key is None.
        """
        if key is None:
            return os.getenv('DJANGO_ENV', EnvironmentConfig.ENV_DEVELOPMENT)
        return os.getenv(key, default)

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        value = os.getenv(key)
        if value is None or value == '':
            return default
        return value.strip().lower() in TRUE_VALUES

    @staticmethod
    def is_production() -> bool:
        return EnvironmentConfig.get_env() == EnvironmentConfig.ENV_PRODUCTION

    @staticmethod
    def is_development() -> bool:
        return EnvironmentConfig.get_env() == EnvironmentConfig.ENV_DEVELOPMENT

    @staticmethod
    def get_secret_key() -> str:
        """
        Raises:
            ImproperlyConfigured: If in production and SECRET_KEY is not set.
        """
        if EnvironmentConfig.is_production():
            key = os.getenv('SECRET_KEY')
            if not key:
                raise ImproperlyConfigured('SECRET_KEY environment variable must be set in production')
            return key
        return os.getenv('SECRET_KEY', 'django-insecure-rental-settlement-dev-key')

    @staticmethod
    def _split_list(name: str) -> list:
        raw = os.getenv(name, '')
        if not raw and EnvironmentConfig.is_production():
            raise ImproperlyConfigured(f'{name} environment variable must be set in production')
        return [v.strip() for v in raw.split(',') if v.strip()]

    @staticmethod
    def get_allowed_hosts() -> list:
        if EnvironmentConfig.is_production():
            return EnvironmentConfig._split_list('ALLOWED_HOSTS')
        return ['*']

    @staticmethod
    def get_cors_allowed_origins() -> list:
        if EnvironmentConfig.is_production():
            return EnvironmentConfig._split_list('CORS_ALLOWED_ORIGINS')
        return [
            'http://localhost:3000',
            'http://localhost:8000',
            'http://127.0.0.1:3000',
            'http://127.0.0.1:8000',
        ]

    @staticmethod
    def get_debug() -> bool:
        if EnvironmentConfig.is_production():
            return False
        return EnvironmentConfig.get_bool('DEBUG', True)

    @staticmethod
    def get_database_config() -> dict:
        """
        PostgreSQL in production, SQLite in development.
        """
        if EnvironmentConfig.is_production():
            return {
                'ENGINE': 'django.db.backends.postgresql',
                'NAME': os.getenv('POSTGRES_DB', ''),
                'USER': os.getenv('POSTGRES_USER', ''),
                'PASSWORD': os.getenv('POSTGRES_PASSWORD', ''),
                'HOST': os.getenv('POSTGRES_HOST', 'localhost'),
                'PORT': os.getenv('POSTGRES_PORT', '5432'),
                'ATOMIC_REQUESTS': False,
            }

        base_dir = Path(__file__).resolve().parents[2]
        return {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': base_dir / 'db.sqlite3',
        }

    @staticmethod
    def get_payout_config() -> dict:
        """
        Payout rail settings. The mock rail is on by default outside production.
        """
        return {
            'PAYOUT_RAIL_URL': os.getenv('PAYOUT_RAIL_URL', ''),
            'PAYOUT_RAIL_API_KEY': os.getenv('PAYOUT_RAIL_API_KEY', ''),
            'PAYOUT_RAIL_TIMEOUT': int(os.getenv('PAYOUT_RAIL_TIMEOUT', '15')),
            'PAYOUT_RAIL_RETRIES': int(os.getenv('PAYOUT_RAIL_RETRIES', '1')),
            'PAYOUT_CURRENCY': os.getenv('PAYOUT_CURRENCY', 'CNY'),
            'PAYOUT_USE_MOCK': EnvironmentConfig.get_bool(
                'PAYOUT_USE_MOCK', not EnvironmentConfig.is_production()
            ),
        }

    @staticmethod
    def validate_production_config():
        """
        Raises:
            ImproperlyConfigured: If any required production setting is missing.
        """
        if not EnvironmentConfig.is_production():
            return

        required_vars = [
            'SECRET_KEY',
            'ALLOWED_HOSTS',
            'CORS_ALLOWED_ORIGINS',
            'POSTGRES_DB',
            'POSTGRES_USER',
            'POSTGRES_PASSWORD',
            'POSTGRES_HOST',
        ]
        missing_vars = [var for var in required_vars if not os.getenv(var)]
        if missing_vars:
            raise ImproperlyConfigured(
                f'Missing required environment variables in production: {", ".join(missing_vars)}'
            )
