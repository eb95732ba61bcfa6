from django.core.management.base import BaseCommand

from catalog.services import CatalogService, iter_items
from coffeehouse.utils import format_money


class Command(BaseCommand):
    help = 'Seed the catalog with the default menu'

    def add_arguments(self, parser):
        parser.add_argument(
            '--reset',
            action='store_true',
            help='Replace the existing catalog with the default menu',
        )

    def handle(self, *args, **options):
        service = CatalogService()

        if service.seed(reset=options['reset']):
            self.stdout.write(self.style.SUCCESS('Seeded the default menu'))
        else:
            self.stdout.write('Catalog already has items, use --reset to replace them')

        self.stdout.write("\nCurrent menu:")
        self.stdout.write("-" * 50)
        for item in iter_items(service.list_items()):
            flag = '' if item['available'] else ' (sold out)'
            self.stdout.write(
                f"ID: {item['id']:>2} | {item['name']:20s} | {format_money(item['price_p']):>6} | {item['category']}{flag}"
            )
