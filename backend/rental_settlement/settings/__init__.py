"""Settings package entrypoint.

- base.py: settings shared across all environments
- development.py: DEBUG=True, SQLite, open CORS, mock payout rail
- production.py: DEBUG=False, PostgreSQL, strict security, real payout rail
- env_config.py: environment detection and .env loading

Select the module with DJANGO_SETTINGS_MODULE:
  export DJANGO_SETTINGS_MODULE=rental_settlement.settings.development
  export DJANGO_SETTINGS_MODULE=rental_settlement.settings.production

and the environment with DJANGO_ENV (development by default):
  export DJANGO_ENV=production

In production, the following environment variables must be set:
  - SECRET_KEY, ALLOWED_HOSTS, CORS_ALLOWED_ORIGINS
  - POSTGRES_DB, POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST (POSTGRES_PORT optional)
  - PAYOUT_RAIL_URL, PAYOUT_RAIL_API_KEY (unless PAYOUT_USE_MOCK=true)
"""
