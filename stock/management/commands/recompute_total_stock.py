"""
Stock — Management Command: recompute_total_stock

Recomputes Product.total_stock from the stock ledger.

Usage::

    python manage.py recompute_total_stock
    python manage.py recompute_total_stock --product <uuid> --product <uuid>

@file stock/management/commands/recompute_total_stock.py
"""

from django.core.management.base import BaseCommand

from stock.services import TotalStockService


class Command(BaseCommand):
    help = 'Recompute product total stock from per-location quantities.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--product',
            action='append',
            dest='products',
            default=[],
            help='Product id to recompute (repeatable). Defaults to all products.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=None,
            help='Products per batch when recomputing everything.',
        )

    def handle(self, *args, **options):
        if options['products']:
            totals = TotalStockService.recompute_many(options['products'])
            for product_id, total in totals.items():
                if total is None:
                    self.stdout.write(self.style.WARNING(f'  Unknown product: {product_id}'))
                else:
                    self.stdout.write(f'  {product_id}: {total}')
            self.stdout.write(self.style.SUCCESS(f'Done. {len(totals)} product(s) recomputed.'))
            return

        corrected = TotalStockService.reconcile_all(batch_size=options['batch_size'])
        self.stdout.write(self.style.SUCCESS(f'Done. {corrected} product total(s) corrected.'))
