"""
Stock — Management Command: seed_stocks

Creates the default stock groups and locations.

Usage::

    python manage.py seed_stocks [--legacy]

Idempotent: safe to re-run (uses get_or_create).

@file stock/management/commands/seed_stocks.py
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from stock.models import Stock, StockGroup


DEFAULT_GROUPS = [
    {'name': 'Internet', 'synchronizable': True},
    {'name': 'SAV', 'synchronizable': False},
    {'name': 'À réparer', 'synchronizable': False},
]

DEFAULT_STOCKS = [
    {'name': 'Back Market', 'group': 'Internet'},
    {'name': 'eBay', 'group': 'Internet'},
    {'name': 'SAV UA', 'group': 'SAV'},
    {'name': 'À réparer Toulouse', 'group': 'À réparer'},
]

# First-generation locations, never grouped.
LEGACY_STOCKS = ['Stock Principal', 'Stock Secondaire', 'SAV']


class Command(BaseCommand):
    help = 'Seed default stock groups and stock locations.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--legacy',
            action='store_true',
            help='Also create the ungrouped first-generation locations.',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        groups = {}
        for group_data in DEFAULT_GROUPS:
            group, created = StockGroup.objects.get_or_create(
                name=group_data['name'],
                defaults={'synchronizable': group_data['synchronizable']},
            )
            groups[group.name] = group
            self.stdout.write(f'  {"Created" if created else "Exists"} group: {group.name}')

        stock_rows = [(row['name'], groups[row['group']]) for row in DEFAULT_STOCKS]
        if options['legacy']:
            stock_rows += [(name, None) for name in LEGACY_STOCKS]

        created_count = 0
        for name, group in stock_rows:
            _, created = Stock.objects.get_or_create(name=name, defaults={'group': group})
            if created:
                created_count += 1
            self.stdout.write(f'  {"Created" if created else "Exists"} stock: {name}')

        self.stdout.write(self.style.SUCCESS(
            f'Done. {len(groups)} groups, {created_count} new stock location(s).'
        ))
