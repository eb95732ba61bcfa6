from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework.test import APISimpleTestCase
from rest_framework import status

from accounts.services import AuthService
from catalog.services import CatalogService
from coffeehouse.exceptions import Forbidden, NotFound, Unauthenticated, ValidationFailed
from coffeehouse.permissions import Actor, CUSTOMER, STAFF
from coffeehouse.store import get_store
from orders.services import OrderService
from .services import PaymentService


class PaymentServiceTests(SimpleTestCase):
    """Test payment recording and the paid transition"""

    def setUp(self):
        CatalogService().seed()
        self.service = PaymentService()
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.ada = Actor(id='cust-1', role=CUSTOMER, name='Ada')
        self.grace = Actor(id='cust-2', role=CUSTOMER, name='Grace')
        # 2x Classic Espresso: 7.00, 7.56 with tax
        self.order = OrderService().create_order(self.ada, [{'item_id': '1', 'quantity': 2}])

    def order_status(self):
        return OrderService().get_order(self.staff, self.order['id'])['status']

    def test_payment_marks_order_paid(self):
        result = self.service.process_payment(self.ada, self.order['id'], 756, 'card')

        payment = result['payment']
        self.assertEqual(payment['order_id'], self.order['id'])
        self.assertEqual(payment['user_id'], 'cust-1')
        self.assertEqual(payment['amount_p'], 756)
        self.assertEqual(payment['method'], 'card')
        self.assertEqual(payment['status'], 'completed')
        self.assertIn('7.56', result['message'])
        self.assertEqual(self.order_status(), 'paid')
        self.assertEqual(get_store().read('payments'), [payment])

    def test_amount_must_match_amount_due(self):
        with self.assertRaises(ValidationFailed):
            self.service.process_payment(self.ada, self.order['id'], 700, 'card')

        self.assertEqual(self.order_status(), 'pending')
        self.assertEqual(get_store().read('payments'), [])

    def test_cannot_pay_twice(self):
        self.service.process_payment(self.ada, self.order['id'], 756, 'cash')

        with self.assertRaises(ValidationFailed):
            self.service.process_payment(self.ada, self.order['id'], 756, 'cash')
        self.assertEqual(len(get_store().read('payments')), 1)

    def test_cannot_pay_completed_order(self):
        OrderService().set_status(self.staff, self.order['id'], 'completed')

        with self.assertRaises(ValidationFailed):
            self.service.process_payment(self.ada, self.order['id'], 756, 'card')
        self.assertEqual(self.order_status(), 'completed')

    def test_cannot_pay_again_after_order_goes_back_to_preparing(self):
        self.service.process_payment(self.ada, self.order['id'], 756, 'card')
        OrderService().set_status(self.staff, self.order['id'], 'preparing')

        with self.assertRaises(ValidationFailed):
            self.service.process_payment(self.ada, self.order['id'], 756, 'card')
        self.assertEqual([p['amount_p'] for p in get_store().read('payments')], [756])
        self.assertEqual(self.order_status(), 'preparing')

    def test_staff_can_take_payment_for_customer(self):
        result = self.service.process_payment(self.staff, self.order['id'], 756, 'cash')

        self.assertEqual(result['payment']['user_id'], 'staff-1')
        self.assertEqual(self.order_status(), 'paid')

    def test_other_customer_cannot_pay(self):
        with self.assertRaises(Forbidden):
            self.service.process_payment(self.grace, self.order['id'], 756, 'card')
        self.assertEqual(self.order_status(), 'pending')

    def test_requires_actor(self):
        with self.assertRaises(Unauthenticated):
            self.service.process_payment(None, self.order['id'], 756, 'card')

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            self.service.process_payment(self.ada, 'missing', 756, 'card')

    def test_invalid_input(self):
        for amount_p, method in [(0, 'card'), (-5, 'card'), (True, 'card'), (756, 'cheque')]:
            with self.subTest(amount_p=amount_p, method=method):
                with self.assertRaises(ValidationFailed):
                    self.service.process_payment(self.ada, self.order['id'], amount_p, method)

    def test_list_payments_is_scoped(self):
        grace_order = OrderService().create_order(self.grace, [{'item_id': '7', 'quantity': 1}])
        self.service.process_payment(self.ada, self.order['id'], 756, 'card')
        self.service.process_payment(self.grace, grace_order['id'], 270, 'cash')

        self.assertEqual([p['user_id'] for p in self.service.list_payments(self.ada)], ['cust-1'])
        self.assertEqual(len(self.service.list_payments(self.staff)), 2)


class PaymentAPITests(APISimpleTestCase):
    """Test payment API endpoints"""

    def setUp(self):
        CatalogService().seed()
        self.ada_token = AuthService().signup('Ada', 'ada@example.com', 'ada-password')['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.ada_token}')
        response = self.client.post(
            reverse('orders'), {'items': [{'item_id': '1', 'quantity': 2}]}, format='json'
        )
        self.order_id = response.data['id']

    def test_take_payment(self):
        url = reverse('payments')
        data = {'order_id': self.order_id, 'amount_p': 756, 'method': 'card'}

        response = self.client.post(url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment']['status'], 'completed')
        self.assertIn('message', response.data)

    def test_take_payment_wrong_amount(self):
        url = reverse('payments')
        data = {'order_id': self.order_id, 'amount_p': 700}

        response = self.client.post(url, data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')
        self.assertIn('7.56', response.data['error'])

    def test_take_payment_requires_authentication(self):
        self.client.credentials()

        response = self.client.post(reverse('payments'), {'order_id': self.order_id, 'amount_p': 756}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(get_store().read('payments'), [])


class EndToEndPaymentTests(APISimpleTestCase):
    """End-to-end flow tests"""

    def setUp(self):
        CatalogService().seed()
        AuthService().create_user('Sam', 'sam@example.com', 'staff-password', role=STAFF)

    def test_complete_order_flow(self):
        """Signup -> login -> order -> invoice -> pay -> order is paid"""

        # Step 1: Sign up and log in as a customer
        response = self.client.post(
            reverse('signup'),
            {'name': 'Ada', 'email': 'ada@example.com', 'password': 'analytical-engine'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(
            reverse('login'), {'email': 'ada@example.com', 'password': 'analytical-engine'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ada_token = response.data['token']

        # Step 2: Order two Classic Espressos at 3.50
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {ada_token}')
        response = self.client.post(
            reverse('orders'), {'items': [{'item_id': '1', 'quantity': 2}]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_p'], 700)
        self.assertEqual(response.data['status'], 'pending')
        order_id = response.data['id']

        # Step 3: Staff generate the invoice
        staff_token = self.client.post(
            reverse('login'), {'email': 'sam@example.com', 'password': 'staff-password'}, format='json'
        ).data['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {staff_token}')
        response = self.client.post(reverse('invoices'), {'order_id': order_id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subtotal_p'], 700)
        self.assertEqual(response.data['tax_p'], 56)
        self.assertEqual(response.data['total_p'], 756)

        # Step 4: Customer pays the invoice total
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {ada_token}')
        response = self.client.post(
            reverse('payments'), {'order_id': order_id, 'amount_p': 756, 'method': 'card'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        # Step 5: The order is now paid
        response = self.client.get(reverse('order_detail', kwargs={'order_id': order_id}))
        self.assertEqual(response.data['status'], 'paid')
