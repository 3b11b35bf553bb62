from django.apps import AppConfig
import logging


class CommonConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "common"

    def ready(self):
        # Startup self-check for payout rail config; production refuses to boot without it
        from django.conf import settings
        from rental_settlement.settings.env_config import EnvironmentConfig
        from .health import _check_payout_config

        strict = EnvironmentConfig.is_production() and getattr(settings, 'PAYOUT_STRICT_CONFIG_CHECK', True)
        try:
            _check_payout_config(strict=strict)
        except RuntimeError as exc:
            logging.getLogger(__name__).error(f'Payout rail config check failed: {exc}')
            raise
