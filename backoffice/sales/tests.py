"""
Test suite for the sales module
Tests: sequence codes, line item drafts, order workflow, budgets and conversion
"""
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest import mock

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.catalog.models import Product
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.inventory.models import StockHistory
from backoffice.sales.codes import get_max_number, next_code, generate_next_code
from backoffice.sales.drafts import LineItemDraft
from backoffice.sales.exceptions import DraftError, InsufficientStockError
from backoffice.sales.models import Order, Budget, PAYMENT_PIX, PAYMENT_CASH


def make_stock_item(product_id, name, price, quantity):
    return SimpleNamespace(id=product_id, name=name, price=Decimal(price), quantity=quantity)


class CodeGenerationTests(TestCase):
    """Test sequence code helpers"""

    def test_next_code_after_gap(self):
        self.assertEqual(next_code('PED', {'PED-0001', 'PED-0003'}), 'PED-0004')

    def test_next_code_empty(self):
        self.assertEqual(next_code('PED', set()), 'PED-0001')
        self.assertEqual(next_code('ORC', []), 'ORC-0001')

    def test_unparseable_codes_ignored(self):
        self.assertEqual(get_max_number(['PED-0002', 'PED-abc', 'legacy', None]), 2)

    def test_padding_grows_past_four_digits(self):
        self.assertEqual(next_code('PED', ['PED-9999']), 'PED-10000')

    def test_generate_counts_deleted_budgets(self):
        budget = TestDataFactory.create_budget(code='ORC-0005')
        budget.deleted_at = timezone.now()
        budget.save()
        self.assertEqual(generate_next_code(Budget, 'ORC'), 'ORC-0006')


class LineItemDraftTests(TestCase):
    """Test the in-memory line item list"""

    def setUp(self):
        self.notebook = make_stock_item(1, 'Caderno', '10.00', 5)
        self.pen = make_stock_item(2, 'Caneta', '2.50', 100)

    def test_total_with_delivery_fee(self):
        draft = LineItemDraft([self.notebook, self.pen])
        draft.add_item(1, 3)
        draft.add_item(2, 4)
        self.assertEqual(draft.subtotal(), Decimal('40.00'))
        self.assertEqual(draft.total(Decimal('5.00')), Decimal('45.00'))
        self.assertEqual(draft.total(), Decimal('40.00'))

    def test_same_product_merges(self):
        draft = LineItemDraft([self.notebook])
        draft.add_item(1, 2)
        draft.add_item(1, 1)
        self.assertEqual(len(draft), 1)
        self.assertEqual(draft.get_line(1).quantity, 3)

    def test_merge_keeps_first_price(self):
        draft = LineItemDraft([self.notebook])
        draft.add_item(1, 1, unit_price=Decimal('8.00'))
        draft.add_item(1, 1)
        self.assertEqual(draft.get_line(1).unit_price, Decimal('8.00'))

    def test_add_over_stock_leaves_draft_unchanged(self):
        draft = LineItemDraft([self.notebook], enforce_stock=True)
        draft.add_item(1, 4)
        with self.assertRaises(InsufficientStockError) as ctx:
            draft.add_item(1, 2)
        self.assertEqual(str(ctx.exception), 'Insufficient stock for "Caderno". Available: 5')
        self.assertEqual(len(draft), 1)
        self.assertEqual(draft.get_line(1).quantity, 4)

    def test_budget_draft_ignores_stock(self):
        draft = LineItemDraft([self.notebook])
        draft.add_item(1, 50)
        self.assertEqual(draft.total(), Decimal('500.00'))

    def test_unknown_product(self):
        draft = LineItemDraft([self.notebook])
        with self.assertRaises(DraftError):
            draft.add_item(99, 1)
        self.assertTrue(draft.is_empty)

    def test_non_positive_quantity_rejected(self):
        draft = LineItemDraft([self.notebook])
        with self.assertRaises(DraftError):
            draft.add_item(1, 0)

    def test_update_quantity(self):
        draft = LineItemDraft([self.notebook, self.pen], enforce_stock=True)
        draft.add_item(1, 1)
        draft.add_item(2, 1)
        draft.update_quantity(1, 5)
        self.assertEqual(draft.get_line(1).quantity, 5)
        with self.assertRaises(InsufficientStockError):
            draft.update_quantity(1, 6)
        self.assertEqual(draft.get_line(1).quantity, 5)

        draft.update_quantity(2, 0)
        self.assertIsNone(draft.get_line(2))

    def test_remove_and_clear(self):
        draft = LineItemDraft([self.notebook, self.pen])
        draft.add_item(1, 1)
        draft.add_item(2, 1)
        draft.remove_item(1)
        self.assertEqual([line.product_id for line in draft], [2])
        draft.clear()
        self.assertTrue(draft.is_empty)
        self.assertEqual(draft.total(Decimal('3.00')), Decimal('3.00'))


class OrderAPITests(TestCase):
    """Test the order workflow"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='vendedor@test.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Ana', address='Rua A, 1')
        self.notebook = TestDataFactory.create_product(name='Caderno', price=Decimal('10.00'), quantity=10)

    def order_payload(self, items, **extra):
        payload = {
            'customer': self.customer.id,
            'payment_method': PAYMENT_PIX,
            'delivery_fee': '5.00',
            'items': items,
        }
        payload.update(extra)
        return payload

    def test_create_order(self):
        response = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 3},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '35.00')
        self.assertEqual(response.data['code'], 'PED-0001')
        self.assertEqual(response.data['status'], Order.STATUS_PENDING)
        self.assertEqual(response.data['customer_name'], 'Ana')
        self.assertEqual(response.data['delivery_address'], 'Rua A, 1')
        self.assertEqual(response.data['employee_name'], 'vendedor@test.com')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['product_name'], 'Caderno')

        self.notebook.refresh_from_db()
        self.assertEqual(self.notebook.quantity, 7)

        entry = StockHistory.objects.get(product=self.notebook, action=StockHistory.ACTION_SALE)
        self.assertEqual(entry.quantity_change, -3)
        self.assertEqual((entry.old_quantity, entry.new_quantity), (10, 7))
        self.assertIn('PED-0001', entry.details)

    def test_codes_increase(self):
        TestDataFactory.create_order(code='PED-0007')
        response = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 1},
        ]), format='json')
        self.assertEqual(response.data['code'], 'PED-0008')

    def test_next_code_preview(self):
        TestDataFactory.create_order(code='PED-0001')
        TestDataFactory.create_order(code='PED-0003')
        response = self.client.get('/api/v1/orders/next-code/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['code'], 'PED-0004')

    def test_insufficient_stock_saves_nothing(self):
        response = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 11},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock for "Caderno". Available: 10')
        self.assertFalse(Order.objects.exists())
        self.notebook.refresh_from_db()
        self.assertEqual(self.notebook.quantity, 10)

    def test_repeated_product_lines_merge_before_stock_check(self):
        response = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 6},
            {'product': self.notebook.id, 'quantity': 6},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_empty_items_rejected(self):
        response = self.client.post('/api/v1/orders/', self.order_payload([]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_customer_required(self):
        payload = self.order_payload([{'product': self.notebook.id, 'quantity': 1}])
        del payload['customer']
        response = self.client.post('/api/v1/orders/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer', response.data)

    def test_archived_product_rejected(self):
        self.notebook.is_archived = True
        self.notebook.save()
        response = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 1},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_product_rejected(self):
        response = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': 9999, 'quantity': 1},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_code_taken_between_preview_and_insert_is_retried(self):
        TestDataFactory.create_order(code='PED-0001')
        with mock.patch('backoffice.sales.services.generate_next_code', side_effect=['PED-0001', 'PED-0002']):
            response = self.client.post('/api/v1/orders/', self.order_payload([
                {'product': self.notebook.id, 'quantity': 1},
            ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'PED-0002')

    def test_code_conflict_gives_up(self):
        TestDataFactory.create_order(code='PED-0001')
        with mock.patch('backoffice.sales.services.generate_next_code', return_value='PED-0001'):
            response = self.client.post('/api/v1/orders/', self.order_payload([
                {'product': self.notebook.id, 'quantity': 1},
            ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.notebook.refresh_from_db()
        self.assertEqual(self.notebook.quantity, 10)

    def test_update_order_leaves_stock(self):
        order = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 2},
        ]), format='json').data
        response = self.client.put(f"/api/v1/orders/{order['id']}/", self.order_payload([
            {'product': self.notebook.id, 'quantity': 4},
        ], delivery_fee='0.00', payment_method=PAYMENT_CASH), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '40.00')
        self.assertEqual(response.data['code'], order['code'])
        self.assertEqual(response.data['items'][0]['quantity'], 4)
        self.notebook.refresh_from_db()
        self.assertEqual(self.notebook.quantity, 8)

    def test_update_order_blank_address_uses_customer_address(self):
        order = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 1},
        ], delivery_address='Rua B, 2'), format='json').data
        self.assertEqual(order['delivery_address'], 'Rua B, 2')

        response = self.client.put(f"/api/v1/orders/{order['id']}/", self.order_payload([
            {'product': self.notebook.id, 'quantity': 1},
        ], delivery_address=''), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['delivery_address'], 'Rua A, 1')

    def test_update_order_increase_beyond_stock_rejected(self):
        order = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 2},
        ]), format='json').data
        response = self.client.put(f"/api/v1/orders/{order['id']}/", self.order_payload([
            {'product': self.notebook.id, 'quantity': 11},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient stock for "Caderno". Available: 8')
        saved = Order.objects.get(pk=order['id'])
        self.assertEqual([item.quantity for item in saved.items.all()], [2])
        self.assertEqual(saved.total_amount, Decimal('25.00'))

    def test_update_order_increase_within_stock(self):
        order = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 2},
        ]), format='json').data
        response = self.client.put(f"/api/v1/orders/{order['id']}/", self.order_payload([
            {'product': self.notebook.id, 'quantity': 10},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['quantity'], 10)

    def test_update_order_keeps_quantities_above_stock(self):
        order = TestDataFactory.create_order(customer=self.customer, items=[(self.notebook, 30)])
        response = self.client.put(f'/api/v1/orders/{order.id}/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 30},
        ]), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_update_status(self):
        order = TestDataFactory.create_order(customer=self.customer)
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {
            'status': Order.STATUS_DELIVERED
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status_display'], 'Delivered')

    def test_update_status_invalid(self):
        order = TestDataFactory.create_order(customer=self.customer)
        response = self.client.patch(f'/api/v1/orders/{order.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_order_does_not_restore_stock(self):
        order = self.client.post('/api/v1/orders/', self.order_payload([
            {'product': self.notebook.id, 'quantity': 3},
        ]), format='json').data
        response = self.client.delete(f"/api/v1/orders/{order['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.filter(pk=order['id']).exists())
        self.notebook.refresh_from_db()
        self.assertEqual(self.notebook.quantity, 7)

    def test_list_filters(self):
        TestDataFactory.create_order(customer=self.customer, status=Order.STATUS_DELIVERED)
        TestDataFactory.create_order(customer=self.customer)
        other = TestDataFactory.create_customer(name='Bruno')
        TestDataFactory.create_order(customer=other)

        response = self.client.get('/api/v1/orders/')
        self.assertEqual(len(response.data), 3)
        response = self.client.get(f'/api/v1/orders/?status={Order.STATUS_PENDING}')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/orders/?search=bruno')
        self.assertEqual([o['customer_name'] for o in response.data], ['Bruno'])

    def test_list_ordering(self):
        first = TestDataFactory.create_order(customer=self.customer)
        second = TestDataFactory.create_order(customer=self.customer)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual([o['id'] for o in response.data], [second.id, first.id])
        response = self.client.get('/api/v1/orders/?ordering=asc')
        self.assertEqual([o['id'] for o in response.data], [first.id, second.id])


class BudgetAPITests(TestCase):
    """Test budgets and their conversion into orders"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Ana')
        self.pen = TestDataFactory.create_product(name='Caneta', price=Decimal('2.00'), quantity=5)

    def test_create_budget_ignores_stock(self):
        response = self.client.post('/api/v1/budgets/', {
            'customer': self.customer.id,
            'items': [{'product': self.pen.id, 'quantity': 50}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'ORC-0001')
        self.assertEqual(response.data['total_amount'], '100.00')
        expected = (timezone.localdate() + timedelta(days=30)).isoformat()
        self.assertEqual(response.data['valid_until'], expected)
        self.pen.refresh_from_db()
        self.assertEqual(self.pen.quantity, 5)

    def test_create_budget_without_customer(self):
        response = self.client.post('/api/v1/budgets/', {
            'items': [{'product': self.pen.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['customer'])

    def test_soft_delete(self):
        budget = TestDataFactory.create_budget(customer=self.customer, items=[(self.pen, 1)])
        response = self.client.delete(f'/api/v1/budgets/{budget.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.get('/api/v1/budgets/')
        self.assertEqual(response.data, [])

        response = self.client.get(f'/api/v1/budgets/{budget.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_deleted'])

        response = self.client.get('/api/v1/budgets/?include_deleted=true')
        self.assertEqual(len(response.data), 1)

    def test_restore(self):
        budget = TestDataFactory.create_budget(customer=self.customer, deleted_at=timezone.now())
        response = self.client.post(f'/api/v1/budgets/{budget.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_deleted'])
        self.assertEqual(len(self.client.get('/api/v1/budgets/').data), 1)

    def test_edit_deleted_budget_rejected(self):
        budget = TestDataFactory.create_budget(customer=self.customer, deleted_at=timezone.now())
        response = self.client.put(f'/api/v1/budgets/{budget.id}/', {
            'customer': self.customer.id,
            'items': [{'product': self.pen.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_budget(self):
        budget = TestDataFactory.create_budget(customer=self.customer, items=[(self.pen, 1)])
        response = self.client.put(f'/api/v1/budgets/{budget.id}/', {
            'customer': self.customer.id,
            'items': [{'product': self.pen.id, 'quantity': 3}],
            'notes': 'Entregar na escola',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '6.00')
        self.assertEqual(len(response.data['items']), 1)

    def test_next_code(self):
        TestDataFactory.create_budget(code='ORC-0012')
        response = self.client.get('/api/v1/budgets/next-code/')
        self.assertEqual(response.data['code'], 'ORC-0013')

    def test_convert_uses_quoted_prices(self):
        budget = TestDataFactory.create_budget(customer=self.customer, items=[(self.pen, 2)])
        Product.objects.filter(pk=self.pen.pk).update(price=Decimal('3.00'))

        response = self.client.post(f'/api/v1/budgets/{budget.id}/convert/', {
            'payment_method': PAYMENT_PIX, 'delivery_fee': '1.00'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '5.00')
        self.assertEqual(response.data['customer_name'], 'Ana')
        self.assertTrue(response.data['code'].startswith('PED-'))
        self.pen.refresh_from_db()
        self.assertEqual(self.pen.quantity, 3)

    def test_convert_over_stock_rejected(self):
        budget = TestDataFactory.create_budget(customer=self.customer, items=[(self.pen, 6)])
        response = self.client.post(f'/api/v1/budgets/{budget.id}/convert/', {
            'payment_method': PAYMENT_PIX
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_convert_without_customer_rejected(self):
        budget = TestDataFactory.create_budget(items=[(self.pen, 1)])
        response = self.client.post(f'/api/v1/budgets/{budget.id}/convert/', {
            'payment_method': PAYMENT_PIX
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_convert_deleted_budget_rejected(self):
        budget = TestDataFactory.create_budget(customer=self.customer, items=[(self.pen, 1)],
                                               deleted_at=timezone.now())
        response = self.client.post(f'/api/v1/budgets/{budget.id}/convert/', {
            'payment_method': PAYMENT_PIX
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
