from django.test import SimpleTestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APISimpleTestCase

from accounts.services import AuthService
from catalog.services import CatalogService
from coffeehouse.exceptions import Forbidden, NotFound, Unauthenticated
from coffeehouse.permissions import Actor, CUSTOMER, STAFF
from coffeehouse.store import get_store
from orders.services import OrderService
from .services import InvoiceService, amount_due, invoice_totals, next_invoice_number


class InvoiceCalculationTests(SimpleTestCase):
    """Test 8% tax and totals, rounded to the penny"""

    def test_ten_pounds(self):
        self.assertEqual(invoice_totals(1000), (1000, 80, 1080))

    def test_seven_pounds(self):
        self.assertEqual(invoice_totals(700), (700, 56, 756))

    def test_rounding(self):
        # 10.06 * 0.08 = 0.8048 -> 0.80; 10.19 * 0.08 = 0.8152 -> 0.82
        self.assertEqual(invoice_totals(1006), (1006, 80, 1086))
        self.assertEqual(invoice_totals(1019), (1019, 82, 1101))

    @override_settings(TAX_RATE='0.10')
    def test_tax_rate_from_settings(self):
        self.assertEqual(invoice_totals(1000), (1000, 100, 1100))

    def test_amount_due(self):
        self.assertEqual(amount_due({'total_p': 700}), 756)

    def test_invoice_numbers_increase(self):
        first = next_invoice_number([])
        far_future = {'invoice_number': 'INV-99999999999999'}

        self.assertTrue(first.startswith('INV-'))
        self.assertEqual(next_invoice_number([far_future]), 'INV-100000000000000')


class InvoiceServiceTests(SimpleTestCase):
    def setUp(self):
        CatalogService().seed()
        self.service = InvoiceService()
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.ada = Actor(id='cust-1', role=CUSTOMER, name='Ada')
        self.grace = Actor(id='cust-2', role=CUSTOMER, name='Grace')
        # 2x Vintage Mocha at 5.00
        self.order = OrderService().create_order(self.ada, [{'item_id': '5', 'quantity': 2}])

    def test_generate(self):
        invoice = self.service.generate(self.staff, self.order['id'])

        self.assertEqual(invoice['order_id'], self.order['id'])
        self.assertEqual(invoice['customer_name'], 'Ada')
        self.assertEqual(invoice['subtotal_p'], 1000)
        self.assertEqual(invoice['tax_p'], 80)
        self.assertEqual(invoice['total_p'], 1080)
        self.assertEqual(invoice['items'], self.order['items'])
        self.assertTrue(invoice['invoice_number'].startswith('INV-'))
        self.assertEqual(get_store().read('invoices'), [invoice])

    def test_pending_order_can_be_invoiced(self):
        invoice = self.service.generate(self.staff, self.order['id'])

        self.assertEqual(OrderService().get_order(self.staff, self.order['id'])['status'], 'pending')
        self.assertIsNotNone(invoice)

    def test_generate_is_idempotent(self):
        first, created = self.service.issue(self.staff, self.order['id'])
        second, created_again = self.service.issue(self.staff, self.order['id'])

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(first, second)
        self.assertEqual(len(get_store().read('invoices')), 1)

    def test_invoice_numbers_are_unique(self):
        other = OrderService().create_order(self.ada, [{'item_id': '1', 'quantity': 1}])

        first = self.service.generate(self.staff, self.order['id'])
        second = self.service.generate(self.staff, other['id'])

        self.assertLess(int(first['invoice_number'][4:]), int(second['invoice_number'][4:]))

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            self.service.generate(self.staff, 'missing')

    def test_customer_cannot_generate(self):
        with self.assertRaises(Forbidden):
            self.service.generate(self.ada, self.order['id'])
        self.assertEqual(get_store().read('invoices'), [])

    def test_list_invoices_is_scoped(self):
        grace_order = OrderService().create_order(self.grace, [{'item_id': '1', 'quantity': 1}])
        ada_invoice = self.service.generate(self.staff, self.order['id'])
        grace_invoice = self.service.generate(self.staff, grace_order['id'])

        self.assertEqual([i['id'] for i in self.service.list_invoices(self.ada)], [ada_invoice['id']])
        self.assertEqual([i['id'] for i in self.service.list_invoices(self.grace)], [grace_invoice['id']])
        self.assertEqual(
            [i['id'] for i in self.service.list_invoices(self.staff)],
            [grace_invoice['id'], ada_invoice['id']]
        )

    def test_get_invoice_ownership(self):
        invoice = self.service.generate(self.staff, self.order['id'])

        self.assertEqual(self.service.get_invoice(self.ada, invoice['id']), invoice)
        self.assertEqual(self.service.get_invoice(self.staff, invoice['id']), invoice)
        with self.assertRaises(Forbidden):
            self.service.get_invoice(self.grace, invoice['id'])
        with self.assertRaises(Unauthenticated):
            self.service.get_invoice(None, invoice['id'])
        with self.assertRaises(NotFound):
            self.service.get_invoice(self.staff, 'missing')


class InvoiceAPITests(APISimpleTestCase):
    """Test invoice API endpoints"""

    def setUp(self):
        CatalogService().seed()
        auth = AuthService()
        auth.create_user('Sam', 'sam@example.com', 'staff-password', role=STAFF)
        self.staff_token = auth.login('sam@example.com', 'staff-password')['token']
        self.ada_token = auth.signup('Ada', 'ada@example.com', 'ada-password')['token']

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.ada_token}')
        response = self.client.post(
            reverse('orders'), {'items': [{'item_id': '1', 'quantity': 2}]}, format='json'
        )
        self.order_id = response.data['id']

    def test_generate_invoice(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')

        response = self.client.post(reverse('invoices'), {'order_id': self.order_id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal_p'], 700)
        self.assertEqual(response.data['tax_p'], 56)
        self.assertEqual(response.data['total_p'], 756)

        again = self.client.post(reverse('invoices'), {'order_id': self.order_id}, format='json')
        self.assertEqual(again.status_code, status.HTTP_200_OK)
        self.assertEqual(again.data['id'], response.data['id'])

    def test_customer_cannot_generate(self):
        response = self.client.post(reverse('invoices'), {'order_id': self.order_id}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(get_store().read('invoices'), [])

    def test_unknown_order(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')

        response = self.client.post(reverse('invoices'), {'order_id': 'missing'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Order not found')

    def test_customer_reads_own_invoice(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')
        invoice_id = self.client.post(reverse('invoices'), {'order_id': self.order_id}, format='json').data['id']

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.ada_token}')
        listing = self.client.get(reverse('invoices'))
        detail = self.client.get(reverse('invoice_detail', kwargs={'invoice_id': invoice_id}))

        self.assertEqual([i['id'] for i in listing.data], [invoice_id])
        self.assertEqual(detail.status_code, status.HTTP_200_OK)
        self.assertEqual(detail.data['total_p'], 756)

    def test_anonymous_cannot_read_invoice(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')
        invoice_id = self.client.post(reverse('invoices'), {'order_id': self.order_id}, format='json').data['id']

        self.client.credentials()
        response = self.client.get(reverse('invoice_detail', kwargs={'invoice_id': invoice_id}))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
