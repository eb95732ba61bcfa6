import logging

from django.conf import settings
from django.utils import timezone

from coffeehouse.exceptions import Forbidden, NotFound
from coffeehouse.permissions import STAFF, enforce
from coffeehouse.store import get_store
from coffeehouse.utils import new_id, newest_first, percent_of, timestamp
from orders.services import find_order

logger = logging.getLogger(__name__)

INVOICE_PREFIX = 'INV-'


def invoice_totals(subtotal_p):
    """Return (subtotal_p, tax_p, total_p) for a subtotal in pence."""
    tax_p = percent_of(subtotal_p, settings.TAX_RATE)
    return subtotal_p, tax_p, subtotal_p + tax_p


def amount_due(order):
    """What a customer owes for an order: its total plus tax."""
    return invoice_totals(order['total_p'])[2]


def next_invoice_number(invoices):
    """Millisecond timestamp, bumped past the newest existing number if needed."""
    number = int(timezone.now().timestamp() * 1000)
    for invoice in invoices:
        suffix = invoice['invoice_number'][len(INVOICE_PREFIX):]
        if suffix.isdigit():
            number = max(number, int(suffix) + 1)
    return f'{INVOICE_PREFIX}{number}'


class InvoiceService:
    """Immutable invoices derived from orders."""

    def __init__(self, store=None):
        self.store = store or get_store()

    def issue(self, actor, order_id):
        """
        Invoice an order, returning (invoice, created).

        An order is invoiced at most once: asking again returns the invoice
        that already exists with created=False. Order status is not checked,
        so a pending order can be invoiced before it is paid.
        """
        enforce(actor, required_role=STAFF)

        def build(data):
            order = find_order(data['orders'], order_id)
            if order is None:
                raise NotFound('Order not found')

            for invoice in data['invoices']:
                if invoice['order_id'] == order_id:
                    return invoice, False

            subtotal_p, tax_p, total_p = invoice_totals(order['total_p'])
            invoice = {
                'id': new_id(),
                'order_id': order_id,
                'invoice_number': next_invoice_number(data['invoices']),
                'customer_name': order['customer_name'],
                'items': [dict(line) for line in order['items']],
                'subtotal_p': subtotal_p,
                'tax_p': tax_p,
                'total_p': total_p,
                'created_at': timestamp(),
            }
            data['invoices'].append(invoice)
            return invoice, True

        invoice, created = self.store.mutate(['invoices', 'orders'], build)
        if created:
            logger.info("Invoice %s generated for order %s", invoice['invoice_number'], order_id)
        else:
            logger.info("Order %s already invoiced as %s", order_id, invoice['invoice_number'])
        return invoice, created

    def generate(self, actor, order_id):
        return self.issue(actor, order_id)[0]

    def list_invoices(self, actor):
        enforce(actor)
        invoices = self.store.read('invoices')
        if actor.role != STAFF:
            own_orders = {
                order['id'] for order in self.store.read('orders') if order['user_id'] == actor.id
            }
            invoices = [invoice for invoice in invoices if invoice['order_id'] in own_orders]
        return newest_first(invoices)

    def get_invoice(self, actor, invoice_id):
        enforce(actor)
        invoice = next((i for i in self.store.read('invoices') if i['id'] == invoice_id), None)
        if invoice is None:
            raise NotFound('Invoice not found')

        if actor.role != STAFF:
            order = find_order(self.store.read('orders'), invoice['order_id'])
            if order is None:
                raise Forbidden('You do not own this resource')
            enforce(actor, owner_id=order['user_id'])
        return invoice
