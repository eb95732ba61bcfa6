import logging

from coffeehouse.exceptions import NotFound, ValidationFailed
from coffeehouse.permissions import STAFF, enforce
from coffeehouse.store import get_store
from coffeehouse.utils import format_money, new_id, newest_first, timestamp
from invoices.services import amount_due
from orders.services import COMPLETED, PAID, find_order

logger = logging.getLogger(__name__)

METHODS = ('cash', 'card')

# Payments are confirmed in-house; there is no gateway round trip.
PAYMENT_COMPLETED = 'completed'


class PaymentService:
    """Append-only payment log; a recorded payment marks its order paid."""

    def __init__(self, store=None):
        self.store = store or get_store()

    def process_payment(self, actor, order_id, amount_p, method):
        """
        Record a payment for an order and move the order to `paid`.

        The amount must match what is due (order total plus tax), and an order
        that already has a payment, or is paid or completed, cannot be paid again. The payment
        append and the status change are written together or not at all.
        """
        enforce(actor)
        if method not in METHODS:
            raise ValidationFailed(f"Unknown payment method: {method}")
        if isinstance(amount_p, bool) or not isinstance(amount_p, int) or amount_p < 1:
            raise ValidationFailed('amount_p must be a positive integer')

        def record(data):
            order = find_order(data['orders'], order_id)
            if order is None:
                raise NotFound('Order not found')
            enforce(actor, owner_id=order['user_id'])

            if order['status'] in (PAID, COMPLETED):
                raise ValidationFailed(f"Order is already {order['status']}")
            if any(payment['order_id'] == order_id for payment in data['payments']):
                raise ValidationFailed('Order has already been paid')

            due = amount_due(order)
            if amount_p != due:
                raise ValidationFailed(
                    f'Payment of {format_money(amount_p)} does not match the amount due of {format_money(due)}'
                )

            payment = {
                'id': new_id(),
                'order_id': order_id,
                'user_id': actor.id,
                'amount_p': amount_p,
                'method': method,
                'status': PAYMENT_COMPLETED,
                'created_at': timestamp(),
            }
            data['payments'].append(payment)
            order['status'] = PAID
            return payment

        payment = self.store.mutate(['payments', 'orders'], record)
        logger.info("Payment %s of %d by %s recorded for order %s", payment['id'], amount_p, method, order_id)
        return {
            'payment': payment,
            'message': f"Payment of {format_money(amount_p)} by {method} received. Order is now paid.",
        }

    def list_payments(self, actor):
        enforce(actor)
        payments = self.store.read('payments')
        if actor.role != STAFF:
            payments = [payment for payment in payments if payment['user_id'] == actor.id]
        return newest_first(payments)
