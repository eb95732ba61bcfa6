from io import StringIO

from django.core.management import call_command
from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APISimpleTestCase

from accounts.services import AuthService
from coffeehouse.exceptions import Forbidden, NotFound, Unauthenticated
from coffeehouse.permissions import Actor, CUSTOMER, STAFF
from .services import CatalogService, find_item


class CatalogServiceTests(SimpleTestCase):
    """Test listing, seeding and availability toggles"""

    def setUp(self):
        self.service = CatalogService()
        self.service.seed()
        self.staff = Actor(id='staff-1', role=STAFF, name='Sam')
        self.customer = Actor(id='cust-1', role=CUSTOMER, name='Ada')

    def test_seeded_menu(self):
        catalog = self.service.list_items()

        self.assertEqual(len(catalog['coffee']), 6)
        self.assertEqual(len(catalog['snacks']), 6)
        espresso = find_item(catalog, '1')
        self.assertEqual(espresso['name'], 'Classic Espresso')
        self.assertEqual(espresso['price_p'], 350)
        self.assertEqual(find_item(catalog, '7')['category'], 'snack')

    def test_seed_does_not_overwrite(self):
        self.service.set_availability(self.staff, '1', False)

        self.assertFalse(self.service.seed())
        self.assertFalse(find_item(self.service.list_items(), '1')['available'])

        self.assertTrue(self.service.seed(reset=True))
        self.assertTrue(find_item(self.service.list_items(), '1')['available'])

    def test_staff_can_toggle_availability(self):
        catalog = self.service.set_availability(self.staff, '8', False)

        self.assertFalse(find_item(catalog, '8')['available'])
        self.assertFalse(find_item(self.service.list_items(), '8')['available'])

    def test_toggle_is_idempotent(self):
        first = self.service.set_availability(self.staff, '2', False)
        second = self.service.set_availability(self.staff, '2', False)

        self.assertEqual(first, second)
        self.assertEqual(second, self.service.list_items())

    def test_unknown_item(self):
        with self.assertRaises(NotFound):
            self.service.set_availability(self.staff, '99', False)

    def test_customer_cannot_toggle(self):
        before = self.service.list_items()

        with self.assertRaises(Forbidden):
            self.service.set_availability(self.customer, '1', False)
        with self.assertRaises(Unauthenticated):
            self.service.set_availability(None, '1', False)

        self.assertEqual(self.service.list_items(), before)


class CatalogAPITests(APISimpleTestCase):
    """Test menu API endpoints"""

    def setUp(self):
        CatalogService().seed()
        auth = AuthService()
        auth.create_user('Sam', 'sam@example.com', 'staff-password', role=STAFF)
        self.staff_token = auth.login('sam@example.com', 'staff-password')['token']
        self.customer_token = auth.signup('Ada', 'ada@example.com', 'ada-password')['token']

    def test_menu_is_public(self):
        response = self.client.get(reverse('menu'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['coffee']), 6)
        self.assertEqual(response.data['snacks'][0]['name'], 'Vintage Croissant')

    def test_staff_sets_availability(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')
        url = reverse('menu_item', kwargs={'item_id': '3'})

        response = self.client.put(url, {'available': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        latte = next(item for item in response.data['coffee'] if item['id'] == '3')
        self.assertFalse(latte['available'])

    def test_customer_is_forbidden(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.customer_token}')
        url = reverse('menu_item', kwargs={'item_id': '3'})

        response = self.client.put(url, {'available': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['kind'], 'forbidden')
        self.assertTrue(find_item(CatalogService().list_items(), '3')['available'])

    def test_anonymous_is_unauthenticated(self):
        url = reverse('menu_item', kwargs={'item_id': '3'})

        response = self.client.put(url, {'available': False}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['kind'], 'unauthenticated')

    def test_unknown_item_is_not_found(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')
        url = reverse('menu_item', kwargs={'item_id': '42'})

        response = self.client.put(url, {'available': True}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Item not found', 'kind': 'not_found'})

    def test_missing_flag_is_invalid(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.staff_token}')
        url = reverse('menu_item', kwargs={'item_id': '3'})

        response = self.client.put(url, {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')
        self.assertIn('available', response.data['fields'])


class SeedMenuCommandTests(SimpleTestCase):
    def test_seed_menu(self):
        out = StringIO()
        call_command('seed_menu', stdout=out)

        self.assertIn('Seeded the default menu', out.getvalue())
        self.assertIn('Classic Espresso', out.getvalue())
        self.assertEqual(len(CatalogService().list_items()['coffee']), 6)

    def test_seed_menu_twice(self):
        call_command('seed_menu', stdout=StringIO())
        out = StringIO()
        call_command('seed_menu', stdout=out)

        self.assertIn('already has items', out.getvalue())
