import tempfile
import threading

from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APISimpleTestCase

from accounts.services import AuthService
from catalog.services import CatalogService
from coffeehouse.exceptions import Forbidden, NotFound, Unauthenticated, Unavailable, ValidationFailed
from coffeehouse.permissions import Actor, CUSTOMER, STAFF
from coffeehouse.store import JsonFileStore, MemoryStore, get_store
from payment.services import PaymentService
from .services import OrderService, WALK_IN_CUSTOMER


class OrderCreationTests(SimpleTestCase):
    """Test pricing, availability checks and persistence of new orders"""

    def setUp(self):
        CatalogService().seed()
        self.service = OrderService()
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.ada = Actor(id='cust-1', role=CUSTOMER, name='Ada')

    def test_total_is_sum_of_line_subtotals(self):
        # 2x Classic Espresso at 3.50 + 3x Old Time Cookie at 2.25
        order = self.service.create_order(self.ada, [
            {'item_id': '1', 'quantity': 2},
            {'item_id': '9', 'quantity': 3},
        ])

        self.assertEqual([line['line_subtotal_p'] for line in order['items']], [700, 675])
        self.assertEqual(order['total_p'], 1375)
        self.assertEqual(order['total_p'], sum(l['unit_price_p'] * l['quantity'] for l in order['items']))
        self.assertEqual(order['status'], 'pending')
        self.assertEqual(order['user_id'], 'cust-1')
        self.assertEqual(get_store().read('orders'), [order])

    def test_client_prices_are_ignored(self):
        order = self.service.create_order(self.ada, [
            {'item_id': '5', 'quantity': 1, 'price_p': 1, 'unit_price_p': 1},
        ])

        self.assertEqual(order['items'][0]['unit_price_p'], 500)
        self.assertEqual(order['total_p'], 500)

    def test_total_is_frozen_after_price_change(self):
        order = self.service.create_order(self.ada, [{'item_id': '1', 'quantity': 2}])

        def reprice(catalog):
            catalog['coffee'][0]['price_p'] = 999
        get_store().update('catalog', reprice)

        stored = self.service.get_order(self.ada, order['id'])
        self.assertEqual(stored['total_p'], 700)
        self.assertEqual(stored['items'][0]['unit_price_p'], 350)

    def test_customer_name_defaults(self):
        named = self.service.create_order(self.ada, [{'item_id': '1', 'quantity': 1}])
        explicit = self.service.create_order(self.ada, [{'item_id': '1', 'quantity': 1}], customer_name='Grace')
        blank = self.service.create_order(self.ada, [{'item_id': '1', 'quantity': 1}], customer_name='  ')
        nameless = self.service.create_order(Actor(id='cust-2', role=CUSTOMER), [{'item_id': '1', 'quantity': 1}])

        self.assertEqual(named['customer_name'], 'Ada')
        self.assertEqual(explicit['customer_name'], 'Grace')
        self.assertEqual(blank['customer_name'], 'Ada')
        self.assertEqual(nameless['customer_name'], WALK_IN_CUSTOMER)

    def test_unavailable_item_persists_nothing(self):
        CatalogService().set_availability(self.staff, '7', False)

        with self.assertRaises(Unavailable):
            self.service.create_order(self.ada, [
                {'item_id': '1', 'quantity': 1},
                {'item_id': '7', 'quantity': 1},
            ])
        self.assertEqual(get_store().read('orders'), [])

    def test_availability_toggle_is_seen_immediately(self):
        CatalogService().set_availability(self.staff, '2', False)
        with self.assertRaises(Unavailable):
            self.service.create_order(self.ada, [{'item_id': '2', 'quantity': 1}])

        CatalogService().set_availability(self.staff, '2', True)
        order = self.service.create_order(self.ada, [{'item_id': '2', 'quantity': 1}])
        self.assertEqual(order['total_p'], 425)

    def test_unknown_item_persists_nothing(self):
        with self.assertRaises(NotFound):
            self.service.create_order(self.ada, [
                {'item_id': '1', 'quantity': 1},
                {'item_id': '404', 'quantity': 1},
            ])
        self.assertEqual(get_store().read('orders'), [])

    def test_invalid_lines(self):
        bad_inputs = [
            [],
            None,
            [{'item_id': '1', 'quantity': 0}],
            [{'item_id': '1', 'quantity': -2}],
            [{'item_id': '1', 'quantity': True}],
            [{'item_id': '1'}],
            [{'quantity': 1}],
            ['1'],
        ]
        for lines in bad_inputs:
            with self.subTest(lines=lines):
                with self.assertRaises(ValidationFailed):
                    self.service.create_order(self.ada, lines)
        self.assertEqual(get_store().read('orders'), [])

    def test_requires_actor(self):
        with self.assertRaises(Unauthenticated):
            self.service.create_order(None, [{'item_id': '1', 'quantity': 1}])


class ConcurrentOrderTests(SimpleTestCase):
    """Concurrent createOrder calls must all be persisted"""

    callers = 25

    def place_concurrently(self, store):
        CatalogService(store=store).seed()
        service = OrderService(store=store)
        barrier = threading.Barrier(self.callers)
        errors = []

        def place(n):
            actor = Actor(id=f'cust-{n}', role=CUSTOMER, name=f'Customer {n}')
            barrier.wait()
            try:
                service.create_order(actor, [{'item_id': '1', 'quantity': 1}])
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=place, args=(n,)) for n in range(self.callers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        orders = store.read('orders')
        self.assertEqual(len(orders), self.callers)
        self.assertEqual(len({order['user_id'] for order in orders}), self.callers)

    def test_memory_store(self):
        self.place_concurrently(MemoryStore())

    def test_json_file_store(self):
        with tempfile.TemporaryDirectory() as data_dir:
            self.place_concurrently(JsonFileStore(data_dir))


class OrderQueryTests(SimpleTestCase):
    def setUp(self):
        CatalogService().seed()
        self.service = OrderService()
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.ada = Actor(id='cust-1', role=CUSTOMER, name='Ada')
        self.grace = Actor(id='cust-2', role=CUSTOMER, name='Grace')
        self.ada_order = self.service.create_order(self.ada, [{'item_id': '1', 'quantity': 1}])
        self.grace_order = self.service.create_order(self.grace, [{'item_id': '2', 'quantity': 1}])

    def test_customer_sees_only_own_orders(self):
        orders = self.service.list_orders(self.ada)

        self.assertEqual([order['id'] for order in orders], [self.ada_order['id']])
        self.assertTrue(all(order['user_id'] == self.ada.id for order in orders))

    def test_staff_sees_all_orders_newest_first(self):
        orders = self.service.list_orders(self.staff)

        self.assertEqual(
            [order['id'] for order in orders],
            [self.grace_order['id'], self.ada_order['id']]
        )

    def test_get_order_ownership(self):
        self.assertEqual(self.service.get_order(self.ada, self.ada_order['id'])['id'], self.ada_order['id'])
        self.assertEqual(self.service.get_order(self.staff, self.ada_order['id'])['id'], self.ada_order['id'])
        with self.assertRaises(Forbidden):
            self.service.get_order(self.grace, self.ada_order['id'])
        with self.assertRaises(NotFound):
            self.service.get_order(self.ada, 'missing')

    def test_list_requires_actor(self):
        with self.assertRaises(Unauthenticated):
            self.service.list_orders(None)


class OrderStatusTests(SimpleTestCase):
    """Test the staff status state machine"""

    def setUp(self):
        CatalogService().seed()
        self.service = OrderService()
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.ada = Actor(id='cust-1', role=CUSTOMER, name='Ada')
        self.order = self.service.create_order(self.ada, [{'item_id': '1', 'quantity': 1}])

    def set_raw_status(self, value):
        def apply(orders):
            orders[0]['status'] = value
        get_store().update('orders', apply)

    def test_pending_to_preparing_to_completed(self):
        order = self.service.set_status(self.staff, self.order['id'], 'preparing')
        self.assertEqual(order['status'], 'preparing')

        order = self.service.set_status(self.staff, self.order['id'], 'completed')
        self.assertEqual(order['status'], 'completed')
        self.assertEqual(self.service.get_order(self.staff, self.order['id'])['status'], 'completed')

    def test_pending_straight_to_completed(self):
        order = self.service.set_status(self.staff, self.order['id'], 'completed')
        self.assertEqual(order['status'], 'completed')

    def test_paid_order_can_be_prepared(self):
        self.set_raw_status('paid')

        order = self.service.set_status(self.staff, self.order['id'], 'preparing')
        self.assertEqual(order['status'], 'preparing')

    def test_prepared_after_payment_cannot_be_paid_again(self):
        PaymentService().process_payment(self.ada, self.order['id'], 378, 'cash')
        self.service.set_status(self.staff, self.order['id'], 'preparing')

        with self.assertRaises(ValidationFailed):
            PaymentService().process_payment(self.ada, self.order['id'], 378, 'cash')
        self.assertEqual(len(get_store().read('payments')), 1)

    def test_completed_is_terminal(self):
        self.service.set_status(self.staff, self.order['id'], 'completed')

        with self.assertRaises(ValidationFailed):
            self.service.set_status(self.staff, self.order['id'], 'preparing')

    def test_preparing_cannot_go_back_to_pending(self):
        self.service.set_status(self.staff, self.order['id'], 'preparing')

        with self.assertRaises(ValidationFailed):
            self.service.set_status(self.staff, self.order['id'], 'pending')

    def test_same_status_is_a_no_op(self):
        self.service.set_status(self.staff, self.order['id'], 'preparing')
        order = self.service.set_status(self.staff, self.order['id'], 'preparing')

        self.assertEqual(order['status'], 'preparing')

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValidationFailed):
            self.service.set_status(self.staff, self.order['id'], 'cancelled')

    def test_staff_cannot_mark_paid(self):
        with self.assertRaises(ValidationFailed):
            self.service.set_status(self.staff, self.order['id'], 'paid')
        self.assertEqual(self.service.get_order(self.staff, self.order['id'])['status'], 'pending')

    def test_customer_is_forbidden(self):
        with self.assertRaises(Forbidden):
            self.service.set_status(self.ada, self.order['id'], 'completed')
        self.assertEqual(self.service.get_order(self.staff, self.order['id'])['status'], 'pending')

    def test_unknown_order(self):
        with self.assertRaises(NotFound):
            self.service.set_status(self.staff, 'missing', 'preparing')


class OrderAPITests(APISimpleTestCase):
    """Test order API endpoints"""

    def setUp(self):
        CatalogService().seed()
        auth = AuthService()
        auth.create_user('Sam', 'sam@example.com', 'staff-password', role=STAFF)
        self.staff_token = auth.login('sam@example.com', 'staff-password')['token']
        self.ada_token = auth.signup('Ada', 'ada@example.com', 'ada-password')['token']
        self.grace_token = auth.signup('Grace', 'grace@example.com', 'grace-password')['token']

    def authenticate(self, token):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def place(self, token, items):
        self.authenticate(token)
        return self.client.post(reverse('orders'), {'items': items}, format='json')

    def test_create_order(self):
        response = self.place(self.ada_token, [{'item_id': '1', 'quantity': 2}])

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_p'], 700)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['customer_name'], 'Ada')
        self.assertEqual(response.data['items'][0]['name'], 'Classic Espresso')

    def test_create_order_requires_authentication(self):
        response = self.client.post(reverse('orders'), {'items': [{'item_id': '1', 'quantity': 1}]}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_invalid_token(self):
        response = self.place('not-a-token', [{'item_id': '1', 'quantity': 1}])

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['kind'], 'unauthenticated')

    def test_empty_order_rejected(self):
        response = self.place(self.ada_token, [])

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')

    def test_zero_quantity_rejected(self):
        response = self.place(self.ada_token, [{'item_id': '1', 'quantity': 0}])

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(get_store().read('orders'), [])

    def test_unavailable_item(self):
        CatalogService().set_availability(Actor(id='staff', role=STAFF), '4', False)

        response = self.place(self.ada_token, [{'item_id': '4', 'quantity': 1}])

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['kind'], 'unavailable')
        self.assertEqual(get_store().read('orders'), [])

    def test_unknown_item(self):
        response = self.place(self.ada_token, [{'item_id': '99', 'quantity': 1}])

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['kind'], 'not_found')

    def test_list_orders_is_scoped(self):
        self.place(self.ada_token, [{'item_id': '1', 'quantity': 1}])
        self.place(self.grace_token, [{'item_id': '2', 'quantity': 1}])

        self.authenticate(self.ada_token)
        response = self.client.get(reverse('orders'))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['customer_name'], 'Ada')

        self.authenticate(self.staff_token)
        response = self.client.get(reverse('orders'))
        self.assertEqual(len(response.data), 2)

    def test_get_other_customers_order_forbidden(self):
        order_id = self.place(self.ada_token, [{'item_id': '1', 'quantity': 1}]).data['id']

        self.authenticate(self.grace_token)
        response = self.client.get(reverse('order_detail', kwargs={'order_id': order_id}))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_updates_status(self):
        order_id = self.place(self.ada_token, [{'item_id': '1', 'quantity': 1}]).data['id']

        self.authenticate(self.staff_token)
        url = reverse('order_detail', kwargs={'order_id': order_id})
        response = self.client.put(url, {'status': 'preparing'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'preparing')

    def test_customer_cannot_update_status(self):
        order_id = self.place(self.ada_token, [{'item_id': '1', 'quantity': 1}]).data['id']

        url = reverse('order_detail', kwargs={'order_id': order_id})
        response = self.client.put(url, {'status': 'completed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['kind'], 'forbidden')
        self.assertEqual(get_store().read('orders')[0]['status'], 'pending')

    def test_invalid_status_value(self):
        order_id = self.place(self.ada_token, [{'item_id': '1', 'quantity': 1}]).data['id']

        self.authenticate(self.staff_token)
        url = reverse('order_detail', kwargs={'order_id': order_id})
        response = self.client.put(url, {'status': 'shipped'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')
