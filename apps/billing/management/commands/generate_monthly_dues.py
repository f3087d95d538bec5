"""
Management command to create the monthly dues of a period.

Run monthly via cron (Celery beat runs the same job on the 1st):
    python manage.py generate_monthly_dues
    python manage.py generate_monthly_dues --year 2025 --month 3
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from apps.billing.exceptions import BillingError
from apps.billing.services import generate_monthly_dues
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Create one monthly due per socio for a period (defaults to the current month)'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, help='Year of the period')
        parser.add_argument('--month', type=int, help='Month of the period (1-12)')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Print how many dues would be created without creating them',
        )

    def handle(self, *args, **options):
        today = timezone.localdate()
        year = options['year'] or today.year
        month = options['month'] or today.month
        dry_run = options['dry_run']

        if dry_run:
            self.stdout.write(self.style.WARNING('DRY RUN - No dues will be created'))

        try:
            count = generate_monthly_dues(year, month, dry_run=dry_run)
        except BillingError as e:
            raise CommandError(e.message)

        verb = 'Would create' if dry_run else 'Created'
        self.stdout.write(self.style.SUCCESS(f'{verb} {count} dues for {month:02d}/{year}'))
