import logging
from collections.abc import Mapping

from catalog.services import find_item
from coffeehouse.exceptions import NotFound, Unavailable, ValidationFailed
from coffeehouse.permissions import STAFF, enforce
from coffeehouse.store import get_store
from coffeehouse.utils import new_id, newest_first, timestamp

logger = logging.getLogger(__name__)

PENDING = 'pending'
PREPARING = 'preparing'
PAID = 'paid'
COMPLETED = 'completed'

STATUSES = (PENDING, PREPARING, PAID, COMPLETED)

# Status changes staff may make by hand. `paid` is only ever set by
# PaymentService, and `completed` is terminal.
STAFF_TRANSITIONS = {
    PENDING: (PREPARING, COMPLETED),
    PREPARING: (COMPLETED,),
    PAID: (PREPARING, COMPLETED),
    COMPLETED: (),
}

WALK_IN_CUSTOMER = 'Walk-in Customer'


def find_order(orders, order_id):
    for order in orders:
        if order['id'] == order_id:
            return order
    return None


def clean_lines(lines):
    """Validate requested lines, returning (item_id, quantity) pairs."""
    if isinstance(lines, (str, bytes)) or not lines:
        raise ValidationFailed('An order needs at least one item')

    cleaned = []
    for line in lines:
        if not isinstance(line, Mapping):
            raise ValidationFailed('Each order line needs an item_id and a quantity')
        item_id = line.get('item_id')
        quantity = line.get('quantity')
        if item_id in (None, ''):
            raise ValidationFailed('Each order line needs an item_id')
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationFailed('quantity must be a positive integer')
        cleaned.append((str(item_id), quantity))
    return cleaned


class OrderService:
    """Order creation and the order status state machine."""

    def __init__(self, store=None):
        self.store = store or get_store()

    def create_order(self, actor, lines, customer_name=None):
        """
        Price `lines` against the current catalog and persist a pending order.

        Prices always come from the catalog; anything the client sends
        besides item ids and quantities is ignored. The catalog read and the
        order append run as one store mutation, so nothing is written when an
        item is unknown or sold out.
        """
        enforce(actor)
        requested = clean_lines(lines)
        customer_name = (customer_name or '').strip() or actor.name or WALK_IN_CUSTOMER

        def place(data):
            items = []
            for item_id, quantity in requested:
                item = find_item(data['catalog'], item_id)
                if item is None:
                    raise NotFound(f'Item {item_id} not found')
                if not item['available']:
                    raise Unavailable(f"Item {item['name']} is not available")
                items.append({
                    'item_id': item['id'],
                    'name': item['name'],
                    'unit_price_p': item['price_p'],
                    'quantity': quantity,
                    'line_subtotal_p': item['price_p'] * quantity,
                })

            order = {
                'id': new_id(),
                'user_id': actor.id,
                'customer_name': customer_name,
                'items': items,
                'total_p': sum(line['line_subtotal_p'] for line in items),
                'status': PENDING,
                'created_at': timestamp(),
            }
            data['orders'].append(order)
            return order

        order = self.store.mutate(['catalog', 'orders'], place)
        logger.info("Order %s created for %s, total %d", order['id'], actor.id, order['total_p'])
        return order

    def list_orders(self, actor):
        enforce(actor)
        orders = self.store.read('orders')
        if actor.role != STAFF:
            orders = [order for order in orders if order['user_id'] == actor.id]
        return newest_first(orders)

    def get_order(self, actor, order_id):
        enforce(actor)
        order = find_order(self.store.read('orders'), order_id)
        if order is None:
            raise NotFound('Order not found')
        enforce(actor, owner_id=order['user_id'])
        return order

    def set_status(self, actor, order_id, new_status):
        enforce(actor, required_role=STAFF)
        if new_status not in STATUSES:
            raise ValidationFailed(f"'{new_status}' is not a valid order status")
        if new_status == PAID:
            raise ValidationFailed('Orders are marked paid by recording a payment')

        def apply(orders):
            order = find_order(orders, order_id)
            if order is None:
                raise NotFound('Order not found')
            current = order['status']
            if current == new_status:
                return order, current
            if new_status not in STAFF_TRANSITIONS.get(current, ()):
                raise ValidationFailed(f'Cannot transition order from {current} to {new_status}')
            order['status'] = new_status
            return order, current

        order, previous = self.store.update('orders', apply)
        if previous != new_status:
            logger.info("Order %s moved from %s to %s by %s", order_id, previous, new_status, actor.id)
        return order
