"""
WSGI config for the rental settlement service.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rental_settlement.settings.development')

application = get_wsgi_application()
