"""
Recalculate every initiated deposit refund from its source violations.

Safe to run repeatedly: totals are always re-derived, never accumulated.

Usage:
    python manage.py recalculate_refunds
    python manage.py recalculate_refunds --dry-run
"""

from django.core.management.base import BaseCommand

from refunds.models import DepositRefund
from refunds.settlement import DepositSettlement, aggregate_penalty, compute_refund_amount


class Command(BaseCommand):
    help = 'Recalculate penalty totals and refund amounts of initiated deposit refunds.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show actions without applying changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        qs = DepositRefund.objects.filter(status=DepositRefund.STATUS_INITIATED).order_by('id')
        self.stdout.write(self.style.SUCCESS(f'Found {qs.count()} initiated refunds'))

        changed = 0
        for refund in qs:
            total = aggregate_penalty(refund.order_id)
            amount = compute_refund_amount(refund.original_deposit_amount, total)
            if total == refund.total_penalty_amount and amount == refund.refund_amount:
                continue
            changed += 1
            if dry_run:
                self.stdout.write(
                    f'[DRY RUN] Would update {refund.refund_code}: '
                    f'penalty {refund.total_penalty_amount} -> {total}, refund {refund.refund_amount} -> {amount}'
                )
            else:
                DepositSettlement.recalculate_refund(refund.order_id)

        self.stdout.write(self.style.SUCCESS(f'Changed: {changed}'))
