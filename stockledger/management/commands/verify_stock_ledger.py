"""
Management command to check the movement log against stock records.

Usage:
    python manage.py verify_stock_ledger
    python manage.py verify_stock_ledger --branch branch-a
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger import stock


class Command(BaseCommand):
    """Verify stock ledger command."""

    help = 'Replays the movement log and reports records that disagree with it'

    def add_arguments(self, parser):
        parser.add_argument(
            '--branch',
            default=None,
            help='Only check records of this branch'
        )

    def handle(self, *args, **options):
        issues = stock.verify_ledger(options['branch'])

        if not issues:
            self.stdout.write(self.style.SUCCESS('Ledger consistent'))
            return

        for issue in issues:
            self.stderr.write(str(issue))
        raise CommandError(f'{len(issues)} issue(s) found', returncode=1)
