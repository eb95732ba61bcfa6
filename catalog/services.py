import logging

from coffeehouse.exceptions import NotFound
from coffeehouse.permissions import STAFF, enforce
from coffeehouse.store import get_store

logger = logging.getLogger(__name__)

COFFEE = 'coffee'
SNACK = 'snack'

# Catalog group name for each item category.
GROUPS = {COFFEE: 'coffee', SNACK: 'snacks'}

DEFAULT_MENU = {
    'coffee': [
        {'id': '1', 'name': 'Classic Espresso', 'price_p': 350, 'category': COFFEE, 'available': True},
        {'id': '2', 'name': 'Vintage Cappuccino', 'price_p': 425, 'category': COFFEE, 'available': True},
        {'id': '3', 'name': 'Old Fashioned Latte', 'price_p': 450, 'category': COFFEE, 'available': True},
        {'id': '4', 'name': 'Retro Americano', 'price_p': 375, 'category': COFFEE, 'available': True},
        {'id': '5', 'name': 'Vintage Mocha', 'price_p': 500, 'category': COFFEE, 'available': True},
        {'id': '6', 'name': 'Classic Macchiato', 'price_p': 400, 'category': COFFEE, 'available': True},
    ],
    'snacks': [
        {'id': '7', 'name': 'Vintage Croissant', 'price_p': 250, 'category': SNACK, 'available': True},
        {'id': '8', 'name': 'Classic Muffin', 'price_p': 300, 'category': SNACK, 'available': True},
        {'id': '9', 'name': 'Old Time Cookie', 'price_p': 225, 'category': SNACK, 'available': True},
        {'id': '10', 'name': 'Retro Donut', 'price_p': 275, 'category': SNACK, 'available': True},
        {'id': '11', 'name': 'Classic Brownie', 'price_p': 350, 'category': SNACK, 'available': True},
        {'id': '12', 'name': 'Vintage Cake Slice', 'price_p': 450, 'category': SNACK, 'available': True},
    ],
}


def iter_items(catalog):
    for group in GROUPS.values():
        yield from catalog.get(group, [])


def find_item(catalog, item_id):
    for item in iter_items(catalog):
        if item['id'] == item_id:
            return item
    return None


class CatalogService:
    """Menu items and their availability flags."""

    def __init__(self, store=None):
        self.store = store or get_store()

    def list_items(self):
        return self.store.read('catalog')

    def set_availability(self, actor, item_id, available):
        enforce(actor, required_role=STAFF)

        def toggle(catalog):
            item = find_item(catalog, item_id)
            if item is None:
                raise NotFound('Item not found')
            item['available'] = bool(available)
            return catalog

        catalog = self.store.update('catalog', toggle)
        logger.info("Item %s marked %s by %s", item_id, 'available' if available else 'unavailable', actor.id)
        return catalog

    def seed(self, reset=False):
        """Write the default menu if the catalog is empty (or always, with reset)."""

        def fill(catalog):
            if not reset and any(True for _ in iter_items(catalog)):
                return False
            catalog.clear()
            catalog.update({group: [dict(item) for item in items] for group, items in DEFAULT_MENU.items()})
            return True

        seeded = self.store.update('catalog', fill)
        if seeded:
            logger.info("Seeded catalog with %d items", sum(len(items) for items in DEFAULT_MENU.values()))
        return seeded
