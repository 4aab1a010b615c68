"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backoffice.catalog.models import Product
from backoffice.parties.models import Customer
from backoffice.sales.models import Order, OrderItem, Budget, BudgetItem, PAYMENT_PIX
from decimal import Decimal
import itertools
import random
import string

User = get_user_model()

# Factory codes never parse as numbers, so they do not move the generated sequence
_code_sequence = itertools.count(1)


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='testpass123', name=None, role=User.ROLE_EMPLOYEE, is_superuser=False):
        """Create a test user"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email,
            password=password,
            name=name if name is not None else f'User {TestDataFactory.random_string(4)}',
            role=role,
            is_superuser=is_superuser,
            is_staff=is_superuser,
        )

    @staticmethod
    def create_administrator(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_ADMINISTRATOR, **kwargs)

    @staticmethod
    def create_manager(**kwargs):
        return TestDataFactory.create_user(role=User.ROLE_MANAGER, **kwargs)

    @staticmethod
    def create_product(name=None, price=Decimal('10.00'), quantity=10, min_quantity=2, **kwargs):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        return Product.objects.create(
            name=name,
            price=price,
            quantity=quantity,
            min_quantity=min_quantity,
            **kwargs
        )

    @staticmethod
    def create_customer(name=None, phone=None, address=''):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        return Customer.objects.create(name=name, phone=phone, address=address)

    @staticmethod
    def create_order(customer=None, code=None, items=None, user=None, delivery_fee=Decimal('0.00'), **kwargs):
        """
        Create an order row directly, without touching stock.

        `items` is a list of (product, quantity) pairs.
        """
        customer = customer or TestDataFactory.create_customer()
        if not code:
            code = f'PED-T{next(_code_sequence)}'
        order = Order.objects.create(
            code=code,
            customer=customer,
            customer_name=customer.name,
            payment_method=kwargs.pop('payment_method', PAYMENT_PIX),
            delivery_fee=delivery_fee,
            created_by=user,
            employee_name=user.email if user else '',
            **kwargs
        )
        total = delivery_fee
        for product, quantity in items or []:
            OrderItem.objects.create(
                order=order, product=product, product_name=product.name,
                quantity=quantity, unit_price=product.price,
            )
            total += product.price * quantity
        order.total_amount = total
        order.save(update_fields=['total_amount'])
        return order

    @staticmethod
    def create_budget(customer=None, code=None, items=None, user=None, **kwargs):
        """Create a budget row directly; `items` is a list of (product, quantity) pairs"""
        if not code:
            code = f'ORC-T{next(_code_sequence)}'
        budget = Budget.objects.create(
            code=code,
            customer=customer,
            customer_name=customer.name if customer else '',
            created_by=user,
            employee_name=user.email if user else '',
            **kwargs
        )
        total = Decimal('0.00')
        for product, quantity in items or []:
            BudgetItem.objects.create(
                budget=budget, product=product, product_name=product.name,
                quantity=quantity, unit_price=product.price,
            )
            total += product.price * quantity
        budget.total_amount = total
        budget.save(update_fields=['total_amount'])
        return budget


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
