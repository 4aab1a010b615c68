"""
Test suite for the inventory module
Tests: stock history log and its endpoints
"""
from django.test import TestCase
from rest_framework import status
from backoffice.catalog.utils import adjust_product_quantity, ADJUST_ADD, ADJUST_SUBTRACT
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.inventory.models import StockHistory
from backoffice.inventory.utils import log_stock_change


class LogStockChangeTests(TestCase):
    """Test the history writer"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='estoque@test.com')
        self.product = TestDataFactory.create_product(name='Marcador', quantity=8)

    def test_entry_captures_names(self):
        entry = log_stock_change(
            self.product, StockHistory.ACTION_QUANTITY_ADDED, user=self.user,
            quantity_change=2, old_quantity=8, new_quantity=10,
        )
        self.assertEqual(entry.product_name, 'Marcador')
        self.assertEqual(entry.user_email, 'estoque@test.com')
        self.assertEqual(entry.user, self.user)

    def test_entry_without_user(self):
        entry = log_stock_change(self.product, StockHistory.ACTION_ARCHIVED)
        self.assertIsNone(entry.user)
        self.assertEqual(entry.user_email, '')

    def test_entry_survives_product_deletion(self):
        entry = log_stock_change(self.product, StockHistory.ACTION_EDITED, details='Price changed')
        self.product.delete()
        entry.refresh_from_db()
        self.assertIsNone(entry.product)
        self.assertEqual(entry.product_name, 'Marcador')


class StockHistoryAPITests(TestCase):
    """Test stock history endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='caixa@test.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.pen = TestDataFactory.create_product(name='Caneta', quantity=10)
        self.glue = TestDataFactory.create_product(name='Cola', quantity=10)
        adjust_product_quantity(self.pen.id, ADJUST_ADD, 5, user=self.user)
        adjust_product_quantity(self.pen.id, ADJUST_SUBTRACT, 3, user=self.user)
        adjust_product_quantity(self.glue.id, ADJUST_ADD, 1, user=self.user)

    def test_list_newest_first(self):
        response = self.client.get('/api/v1/stock-history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)
        self.assertEqual(response.data[0]['product_name'], 'Cola')

    def test_filter_by_product(self):
        response = self.client.get(f'/api/v1/stock-history/?product={self.pen.id}')
        self.assertEqual(len(response.data), 2)
        self.assertEqual([e['quantity_change'] for e in response.data], [-3, 5])

    def test_filter_by_action(self):
        response = self.client.get(f'/api/v1/stock-history/?action={StockHistory.ACTION_QUANTITY_REMOVED}')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['old_quantity'], 15)
        self.assertEqual(response.data[0]['new_quantity'], 12)

    def test_search_by_user_email(self):
        response = self.client.get('/api/v1/stock-history/?search=caixa@')
        self.assertEqual(len(response.data), 3)
        response = self.client.get('/api/v1/stock-history/?search=ninguem')
        self.assertEqual(len(response.data), 0)

    def test_invalid_action_filter(self):
        response = self.client.get('/api/v1/stock-history/?action=stolen')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail(self):
        entry = StockHistory.objects.filter(product=self.glue).get()
        response = self.client.get(f'/api/v1/stock-history/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['action'], StockHistory.ACTION_QUANTITY_ADDED)
        self.assertEqual(response.data['user_email'], 'caixa@test.com')

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/stock-history/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
