"""
Test suite for the parties module
Tests: customer CRUD, search, customer order history
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.parties.models import Customer


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        response = self.client.post('/api/v1/customers/', {
            'name': '  Ana Souza ',
            'phone': '11988887777',
            'address': 'Rua das Flores, 10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Ana Souza')
        self.assertTrue(Customer.objects.filter(name='Ana Souza').exists())

    def test_create_customer_without_name(self):
        response = self.client.post('/api/v1/customers/', {'name': '', 'phone': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_list_sorted_by_name(self):
        TestDataFactory.create_customer(name='Bruno')
        TestDataFactory.create_customer(name='Ana')
        response = self.client.get('/api/v1/customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Ana', 'Bruno'])
        self.assertEqual(response['Cache-Control'], 'private, max-age=60')

    def test_search_by_name_or_phone(self):
        TestDataFactory.create_customer(name='Ana', phone='1111')
        TestDataFactory.create_customer(name='Bruno', phone='2222')
        response = self.client.get('/api/v1/customers/?search=ana')
        self.assertEqual([c['name'] for c in response.data], ['Ana'])
        response = self.client.get('/api/v1/customers/?search=2222')
        self.assertEqual([c['name'] for c in response.data], ['Bruno'])

    def test_list_refreshes_after_create(self):
        self.client.get('/api/v1/customers/')
        self.client.post('/api/v1/customers/', {'name': 'Carla'}, format='json')
        response = self.client.get('/api/v1/customers/')
        self.assertEqual([c['name'] for c in response.data], ['Carla'])

    def test_update_customer(self):
        customer = TestDataFactory.create_customer(name='Ana')
        response = self.client.patch(f'/api/v1/customers/{customer.id}/', {'address': 'Av. Brasil, 200'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        customer.refresh_from_db()
        self.assertEqual(customer.address, 'Av. Brasil, 200')

    def test_replace_customer(self):
        customer = TestDataFactory.create_customer(name='Ana', phone='1111')
        response = self.client.put(f'/api/v1/customers/{customer.id}/', {
            'name': 'Ana Lima', 'phone': '3333', 'address': ''
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Ana Lima')

    def test_delete_customer_keeps_order_snapshot(self):
        customer = TestDataFactory.create_customer(name='Ana')
        order = TestDataFactory.create_order(customer=customer)
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        order.refresh_from_db()
        self.assertIsNone(order.customer)
        self.assertEqual(order.customer_name, 'Ana')

    def test_get_missing_customer(self):
        response = self.client.get('/api/v1/customers/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_orders(self):
        customer = TestDataFactory.create_customer(name='Ana')
        other = TestDataFactory.create_customer(name='Bruno')
        first = TestDataFactory.create_order(customer=customer)
        second = TestDataFactory.create_order(customer=customer)
        TestDataFactory.create_order(customer=other)
        response = self.client.get(f'/api/v1/customers/{customer.id}/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({o['id'] for o in response.data}, {first.id, second.id})
