"""
Test suite for the catalog module
Tests: stock status, product CRUD, quantity adjustments, archiving, low stock report
"""
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from backoffice.catalog.exceptions import InsufficientStockError
from backoffice.catalog.models import (
    Product, derive_stock_status, stock_status_q, STATUS_OK, STATUS_LOW, STATUS_CRITICAL,
)
from backoffice.catalog.utils import adjust_product_quantity, ADJUST_ADD, ADJUST_SUBTRACT
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.inventory.models import StockHistory


class StockStatusTests(TestCase):
    """Test stock status derivation"""

    def test_derive_stock_status(self):
        self.assertEqual(derive_stock_status(0, 5), STATUS_CRITICAL)
        self.assertEqual(derive_stock_status(3, 5), STATUS_LOW)
        self.assertEqual(derive_stock_status(5, 5), STATUS_LOW)
        self.assertEqual(derive_stock_status(6, 5), STATUS_OK)

    def test_zero_minimum(self):
        self.assertEqual(derive_stock_status(0, 0), STATUS_CRITICAL)
        self.assertEqual(derive_stock_status(1, 0), STATUS_OK)

    def test_queryset_filter_matches_property(self):
        TestDataFactory.create_product(name='Vazio', quantity=0, min_quantity=5)
        TestDataFactory.create_product(name='Pouco', quantity=5, min_quantity=5)
        TestDataFactory.create_product(name='Cheio', quantity=50, min_quantity=5)
        for stock_status in (STATUS_OK, STATUS_LOW, STATUS_CRITICAL):
            matched = Product.objects.filter(stock_status_q(stock_status))
            self.assertEqual(matched.count(), 1)
            self.assertEqual(matched.get().stock_status, stock_status)


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product_logs_creation(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Caderno',
            'barcode': '7891234567890',
            'price': '10.00',
            'cost_price': '6.50',
            'quantity': 20,
            'min_quantity': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], STATUS_OK)

        entry = StockHistory.objects.get(product_id=response.data['id'])
        self.assertEqual(entry.action, StockHistory.ACTION_CREATED)
        self.assertEqual(entry.quantity_change, 20)
        self.assertEqual(entry.user_email, self.user.email)

    def test_create_product_blank_barcode_stored_as_null(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Borracha', 'barcode': '', 'price': '1.50',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(Product.objects.get(pk=response.data['id']).barcode)

    def test_create_product_invalid_barcode(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Lapis', 'barcode': '12ab', 'price': '1.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('barcode', response.data)

    def test_create_product_blank_name(self):
        response = self.client.post('/api/v1/products/', {'name': '   ', 'price': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_product_negative_quantity(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Cola', 'price': '4.00', 'quantity': -1,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_excludes_archived(self):
        TestDataFactory.create_product(name='Ativo')
        TestDataFactory.create_product(name='Arquivado', is_archived=True)
        response = self.client.get('/api/v1/products/')
        self.assertEqual([p['name'] for p in response.data], ['Ativo'])

        response = self.client.get('/api/v1/products/?include_archived=true')
        self.assertEqual(len(response.data), 2)

    def test_list_search_and_status(self):
        TestDataFactory.create_product(name='Caneta Azul', quantity=0, min_quantity=2)
        TestDataFactory.create_product(name='Caneta Preta', quantity=30, min_quantity=2)
        TestDataFactory.create_product(name='Grampeador', quantity=30, min_quantity=2)

        response = self.client.get('/api/v1/products/?search=caneta')
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/products/?search=caneta&status=critical')
        self.assertEqual([p['name'] for p in response.data], ['Caneta Azul'])

    def test_list_invalid_status(self):
        response = self.client.get('/api/v1/products/?status=empty')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_reflects_new_product(self):
        self.client.get('/api/v1/products/')
        TestDataFactory.create_product(name='Novo')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(len(response.data), 1)

    def test_edit_min_quantity_logs_single_entry(self):
        product = TestDataFactory.create_product(quantity=10, min_quantity=10)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'min_quantity': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        entries = StockHistory.objects.filter(product=product)
        self.assertEqual(entries.count(), 1)
        entry = entries.get()
        self.assertEqual(entry.action, StockHistory.ACTION_EDITED)
        self.assertEqual(entry.quantity_change, 0)
        self.assertIn('Min. quantity: 10 -> 5', entry.details)

    def test_edit_without_changes_logs_nothing(self):
        product = TestDataFactory.create_product(name='Regua', quantity=10)
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'name': 'Regua'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(StockHistory.objects.filter(product=product).exists())

    def test_edit_quantity_records_delta(self):
        product = TestDataFactory.create_product(quantity=10)
        self.client.patch(f'/api/v1/products/{product.id}/', {'quantity': 4}, format='json')
        entry = StockHistory.objects.get(product=product)
        self.assertEqual(entry.quantity_change, -6)
        self.assertEqual(entry.old_quantity, 10)
        self.assertEqual(entry.new_quantity, 4)
        self.assertEqual(entry.details, 'Only the quantity was changed.')

    def test_delete_unreferenced_product(self):
        self.client.authenticate_user(TestDataFactory.create_manager())
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())

    def test_delete_keeps_history(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Apontador', 'price': '3.00', 'quantity': 4,
        }, format='json')
        product_id = response.data['id']
        self.assertEqual(StockHistory.objects.filter(product_id=product_id).count(), 1)

        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.delete(f'/api/v1/products/{product_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product_id).exists())

        entry = StockHistory.objects.get(product_name='Apontador')
        self.assertIsNone(entry.product)
        self.assertEqual(entry.action, StockHistory.ACTION_CREATED)

    def test_employee_cannot_delete(self):
        product = TestDataFactory.create_product()
        TestDataFactory.create_order(items=[(product, 1)])
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)
        product.refresh_from_db()
        self.assertFalse(product.is_archived)
        self.assertFalse(StockHistory.objects.filter(product=product).exists())

    def test_employee_cannot_delete_unreferenced(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Product.objects.filter(pk=product.pk).exists())

    def test_delete_referenced_product_archives(self):
        self.client.authenticate_user(TestDataFactory.create_manager())
        product = TestDataFactory.create_product()
        TestDataFactory.create_order(items=[(product, 1)])
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_archived'])
        product.refresh_from_db()
        self.assertTrue(product.is_archived)

    def test_delete_product_with_activity_archives(self):
        product = TestDataFactory.create_product(quantity=10)
        adjust_product_quantity(product.id, ADJUST_ADD, 1, user=self.user)
        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Product.objects.get(pk=product.pk).is_archived)


class StockAdjustmentTests(TestCase):
    """Test quantity adjustments"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(name='Caderno', quantity=5)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_add_quantity(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust/', {
            'type': 'add', 'amount': 7
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quantity'], 12)
        entry = StockHistory.objects.get(product=self.product)
        self.assertEqual(entry.action, StockHistory.ACTION_QUANTITY_ADDED)
        self.assertEqual((entry.old_quantity, entry.new_quantity), (5, 12))

    def test_subtract_quantity(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust/', {
            'type': 'subtract', 'amount': 5
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quantity'], 0)
        self.assertEqual(response.data['status'], STATUS_CRITICAL)
        entry = StockHistory.objects.get(product=self.product)
        self.assertEqual(entry.action, StockHistory.ACTION_QUANTITY_REMOVED)
        self.assertEqual(entry.quantity_change, -5)

    def test_subtract_below_zero_rejected(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust/', {
            'type': 'subtract', 'amount': 6
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock for "Caderno". Available: 5')
        self.product.refresh_from_db()
        self.assertEqual(self.product.quantity, 5)
        self.assertFalse(StockHistory.objects.filter(product=self.product).exists())

    def test_zero_amount_rejected(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/adjust/', {
            'type': 'add', 'amount': 0
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_adjust_function_raises(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            adjust_product_quantity(self.product.id, ADJUST_SUBTRACT, 50)
        self.assertEqual(ctx.exception.available, 5)


class ArchiveAPITests(TestCase):
    """Test archive/restore permissions"""

    def setUp(self):
        cache.clear()
        self.product = TestDataFactory.create_product()
        self.client = AuthenticatedAPIClient()

    def test_employee_cannot_archive(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/products/{self.product.id}/archive/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.product.refresh_from_db()
        self.assertFalse(self.product.is_archived)

    def test_manager_archives_and_restores(self):
        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.post(f'/api/v1/products/{self.product.id}/archive/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_archived'])

        response = self.client.post(f'/api/v1/products/{self.product.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_archived'])

        actions = list(StockHistory.objects.filter(product=self.product)
                       .order_by('created_at', 'id').values_list('action', flat=True))
        self.assertEqual(actions, [StockHistory.ACTION_ARCHIVED, StockHistory.ACTION_RESTORED])


class LowStockTests(TestCase):
    """Test the low stock endpoint and management command"""

    def setUp(self):
        TestDataFactory.create_product(name='Papel A4', quantity=0, min_quantity=10)
        TestDataFactory.create_product(name='Clips', quantity=3, min_quantity=10)
        TestDataFactory.create_product(name='Tesoura', quantity=40, min_quantity=10)
        TestDataFactory.create_product(name='Antigo', quantity=0, min_quantity=10, is_archived=True)

    def test_low_stock_endpoint(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/products/low-stock/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ['Papel A4', 'Clips'])

    def test_check_stock_levels_command(self):
        out = StringIO()
        call_command('check_stock_levels', stdout=out)
        output = out.getvalue()
        self.assertIn('Papel A4', output)
        self.assertIn('Clips', output)
        self.assertNotIn('Tesoura', output)
        self.assertNotIn('Antigo', output)
        self.assertIn('2 product(s) need restocking', output)

    def test_check_stock_levels_show_all(self):
        out = StringIO()
        call_command('check_stock_levels', '--show-all', stdout=out)
        self.assertIn('Tesoura', out.getvalue())
