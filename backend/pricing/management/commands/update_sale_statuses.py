"""
Management command to move sales between scheduled, active and expired by date
Usage: python manage.py update_sale_statuses   (run from cron every few minutes)
"""
from django.core.management.base import BaseCommand

from backend.pricing.models import refresh_sale_statuses


class Command(BaseCommand):
    help = 'Activate scheduled sales whose window has started and expire finished ones'

    def handle(self, *args, **options):
        changed = refresh_sale_statuses()
        self.stdout.write(self.style.SUCCESS(f'✓ Updated {changed} sale(s)'))
