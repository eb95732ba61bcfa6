from django.test import SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APISimpleTestCase

from accounts.services import AuthService
from coffeehouse.exceptions import Forbidden, Unauthenticated, ValidationFailed
from coffeehouse.permissions import Actor, CUSTOMER, STAFF
from .services import ReviewService


class ReviewServiceTests(SimpleTestCase):
    def setUp(self):
        self.service = ReviewService()
        self.ada = Actor(id='cust-1', role=CUSTOMER, name='Ada')

    def test_submit_and_list(self):
        first = self.service.submit(self.ada, 4, 'Lovely latte')
        second = self.service.submit(self.ada, 5)

        self.assertEqual(first['customer_name'], 'Ada')
        self.assertEqual(second['comment'], '')
        self.assertEqual([r['id'] for r in self.service.list_reviews()], [second['id'], first['id']])

    def test_only_customers_review(self):
        with self.assertRaises(Forbidden):
            self.service.submit(Actor(id='staff-1', role=STAFF), 5)
        with self.assertRaises(Unauthenticated):
            self.service.submit(None, 5)
        self.assertEqual(self.service.list_reviews(), [])

    def test_rating_range(self):
        for rating in (0, 6, -1, True, '5'):
            with self.subTest(rating=rating):
                with self.assertRaises(ValidationFailed):
                    self.service.submit(self.ada, rating)


class ReviewAPITests(APISimpleTestCase):
    def test_public_list(self):
        response = self.client.get(reverse('reviews'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_customer_submits_review(self):
        token = AuthService().signup('Ada', 'ada@example.com', 'analytical-engine')['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.post(reverse('reviews'), {'rating': 5, 'comment': 'Great'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['rating'], 5)

    def test_out_of_range_rating(self):
        token = AuthService().signup('Ada', 'ada@example.com', 'analytical-engine')['token']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.post(reverse('reviews'), {'rating': 9}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation')

    def test_anonymous_cannot_submit(self):
        response = self.client.post(reverse('reviews'), {'rating': 5}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
