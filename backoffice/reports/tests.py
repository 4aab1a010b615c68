"""
Test suite for the reports module
Tests: dashboard KPIs, delivery schedule
"""
from datetime import time, timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.sales.models import Order


class DashboardAPITests(TestCase):
    """Test dashboard KPIs"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        self.product = TestDataFactory.create_product(price=Decimal('10.00'), quantity=1, min_quantity=5)
        TestDataFactory.create_product(quantity=50, min_quantity=5)

    def test_dashboard_totals(self):
        TestDataFactory.create_order(items=[(self.product, 3)], delivery_fee=Decimal('5.00'))
        TestDataFactory.create_order(items=[(self.product, 1)], status=Order.STATUS_DELIVERED)
        TestDataFactory.create_order(items=[(self.product, 2)], status=Order.STATUS_CANCELED)

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], timezone.localdate().isoformat())
        self.assertEqual(response.data['orders_today'], 3)
        self.assertEqual(response.data['revenue_today'], Decimal('45.00'))
        self.assertEqual(response.data['revenue_month'], Decimal('45.00'))
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['low_stock_count'], 1)
        self.assertEqual(len(response.data['revenue_by_day']), 1)
        self.assertEqual(response.data['revenue_by_day'][0]['orders'], 2)

    def test_dashboard_empty(self):
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['orders_today'], 0)
        self.assertEqual(response.data['revenue_today'], Decimal('0.00'))
        self.assertEqual(response.data['revenue_by_day'], [])

    def test_dashboard_refreshes_after_new_order(self):
        self.client.get('/api/v1/reports/dashboard/')
        TestDataFactory.create_order(items=[(self.product, 1)])
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['orders_today'], 1)


class OrdersScheduleAPITests(TestCase):
    """Test the delivery schedule"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())
        self.product = TestDataFactory.create_product()
        today = timezone.localdate()
        self.afternoon = TestDataFactory.create_order(
            items=[(self.product, 2), (TestDataFactory.create_product(), 1)],
            delivery_date=today, delivery_time=time(14, 0),
        )
        self.morning = TestDataFactory.create_order(
            items=[(self.product, 1)], delivery_date=today, delivery_time=time(9, 30),
        )
        self.anytime = TestDataFactory.create_order(delivery_date=today)
        self.tomorrow = TestDataFactory.create_order(delivery_date=today + timedelta(days=1))
        self.next_week = TestDataFactory.create_order(delivery_date=today + timedelta(days=7))
        self.yesterday = TestDataFactory.create_order(delivery_date=today - timedelta(days=1))
        self.last_month = TestDataFactory.create_order(delivery_date=today - timedelta(days=30))
        TestDataFactory.create_order()

    def ids(self, response):
        return [order['id'] for order in response.data]

    def test_today_by_delivery_time(self):
        response = self.client.get('/api/v1/reports/orders-schedule/?view=today')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.ids(response), [self.morning.id, self.afternoon.id, self.anytime.id])

    def test_today_is_default(self):
        response = self.client.get('/api/v1/reports/orders-schedule/')
        self.assertEqual(len(response.data), 3)

    def test_item_counts(self):
        response = self.client.get('/api/v1/reports/orders-schedule/?view=today')
        afternoon = next(o for o in response.data if o['id'] == self.afternoon.id)
        self.assertEqual(afternoon['item_count'], 2)
        self.assertEqual(afternoon['total_quantity'], 3)
        anytime = next(o for o in response.data if o['id'] == self.anytime.id)
        self.assertEqual(anytime['total_quantity'], 0)

    def test_future_soonest_first(self):
        response = self.client.get('/api/v1/reports/orders-schedule/?view=future')
        self.assertEqual(self.ids(response), [self.tomorrow.id, self.next_week.id])

    def test_past_most_recent_first(self):
        response = self.client.get('/api/v1/reports/orders-schedule/?view=past')
        self.assertEqual(self.ids(response), [self.yesterday.id, self.last_month.id])

    def test_invalid_view(self):
        response = self.client.get('/api/v1/reports/orders-schedule/?view=someday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
