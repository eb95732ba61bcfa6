from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APISimpleTestCase

from coffeehouse.exceptions import Unauthenticated, ValidationFailed
from coffeehouse.permissions import CUSTOMER, STAFF
from coffeehouse.store import get_store
from .services import AuthService


class AuthServiceTests(SimpleTestCase):
    """Test signup, login and token verification"""

    def setUp(self):
        self.service = AuthService()

    def test_signup_creates_customer(self):
        result = self.service.signup('Ada', 'Ada@Example.com', 'analytical-engine')

        self.assertEqual(result['user']['role'], CUSTOMER)
        self.assertEqual(result['user']['email'], 'ada@example.com')
        self.assertNotIn('password', result['user'])
        stored = get_store().read('users')[0]
        self.assertNotEqual(stored['password'], 'analytical-engine')

    def test_email_is_unique_ignoring_case(self):
        self.service.signup('Ada', 'ada@example.com', 'analytical-engine')

        with self.assertRaises(ValidationFailed):
            self.service.signup('Other Ada', 'ADA@example.com', 'different-pass')
        self.assertEqual(len(get_store().read('users')), 1)

    def test_signup_validation(self):
        for name, email, password in [
            ('', 'ada@example.com', 'analytical-engine'),
            ('Ada', 'not-an-email', 'analytical-engine'),
            ('Ada', 'ada@example.com', 'short'),
        ]:
            with self.subTest(name=name, email=email, password=password):
                with self.assertRaises(ValidationFailed):
                    self.service.signup(name, email, password)

    def test_login_and_verify(self):
        self.service.signup('Ada', 'ada@example.com', 'analytical-engine')

        result = self.service.login('ADA@example.com', 'analytical-engine')
        actor = self.service.verify(result['token'])

        self.assertEqual(actor.id, result['user']['id'])
        self.assertEqual(actor.role, CUSTOMER)
        self.assertEqual(actor.name, 'Ada')

    def test_login_wrong_password(self):
        self.service.signup('Ada', 'ada@example.com', 'analytical-engine')

        with self.assertRaises(Unauthenticated):
            self.service.login('ada@example.com', 'difference-engine')
        with self.assertRaises(Unauthenticated):
            self.service.login('nobody@example.com', 'analytical-engine')

    def test_tampered_token(self):
        token = self.service.signup('Ada', 'ada@example.com', 'analytical-engine')['token']

        with self.assertRaises(Unauthenticated):
            self.service.verify(token + 'x')
        with self.assertRaises(Unauthenticated):
            self.service.verify('garbage')

    def test_expired_token(self):
        token = self.service.signup('Ada', 'ada@example.com', 'analytical-engine')['token']

        with override_settings(AUTH_TOKEN_MAX_AGE=-1):
            with self.assertRaises(Unauthenticated):
                self.service.verify(token)

    def test_token_for_deleted_user(self):
        token = self.service.signup('Ada', 'ada@example.com', 'analytical-engine')['token']
        get_store().write('users', [])

        with self.assertRaises(Unauthenticated):
            self.service.verify(token)

    def test_create_staff(self):
        user = self.service.create_user('Sam', 'sam@example.com', 'staff-password', role=STAFF)
        self.assertEqual(user['role'], STAFF)

        with self.assertRaises(ValidationFailed):
            self.service.create_user('Root', 'root@example.com', 'root-password', role='admin')


class AuthAPITests(APISimpleTestCase):
    """Test account API endpoints"""

    def test_signup(self):
        data = {'name': 'Ada', 'email': 'ada@example.com', 'password': 'analytical-engine'}

        response = self.client.post(reverse('signup'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('token', response.data)
        self.assertEqual(response.data['user']['name'], 'Ada')
        self.assertNotIn('password', response.data['user'])

    def test_signup_duplicate_email(self):
        data = {'name': 'Ada', 'email': 'ada@example.com', 'password': 'analytical-engine'}
        self.client.post(reverse('signup'), data, format='json')

        response = self.client.post(reverse('signup'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {'error': 'Email already registered', 'kind': 'validation'})

    def test_login_failure(self):
        response = self.client.post(
            reverse('login'), {'email': 'ada@example.com', 'password': 'analytical-engine'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['kind'], 'unauthenticated')

    def test_me(self):
        token = AuthService().signup('Ada', 'ada@example.com', 'analytical-engine')['token']

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get(reverse('me'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'ada@example.com')

    def test_me_requires_token(self):
        response = self.client.get(reverse('me'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CreateStaffCommandTests(SimpleTestCase):
    def test_create_staff(self):
        out = StringIO()
        call_command('create_staff', name='Sam', email='sam@example.com', password='staff-password', stdout=out)

        self.assertIn('Created staff account sam@example.com', out.getvalue())
        self.assertEqual(get_store().read('users')[0]['role'], STAFF)

    def test_duplicate_email(self):
        call_command('create_staff', name='Sam', email='sam@example.com', password='staff-password', stdout=StringIO())

        with self.assertRaises(CommandError):
            call_command('create_staff', name='Sam', email='sam@example.com', password='staff-password')
