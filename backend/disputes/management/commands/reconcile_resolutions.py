"""
Replay completed resolutions whose violation was not moved to resolved.

Decide and the violation write-back share one transaction, so this only
finds records touched outside the service layer (admin edits, data fixes).

Usage:
    python manage.py reconcile_resolutions
    python manage.py reconcile_resolutions --dry-run
"""

from django.core.management.base import BaseCommand

from common.audit_logger import AuditLogger
from disputes.resolution import ResolutionEngine


class Command(BaseCommand):
    help = 'Re-apply completed resolutions to their violations and settle affected orders.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show actions without applying changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        result = ResolutionEngine.replay_completed(dry_run=dry_run)
        self.stdout.write(self.style.SUCCESS(f'Found {result["checked"]} resolutions to replay'))

        for resolution_id in result['replayed']:
            if dry_run:
                self.stdout.write(f'[DRY RUN] Would replay resolution #{resolution_id}')
            else:
                AuditLogger.log_admin_action('replay', 'resolution', resolution_id, None)

        self.stdout.write(self.style.SUCCESS(f'Replayed: {0 if dry_run else len(result["replayed"])}'))
