from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from backoffice.catalog.models import Product
from backoffice.parties.models import Customer

PAYMENT_PIX = 'pix'
PAYMENT_CREDIT = 'credit'
PAYMENT_DEBIT = 'debit'
PAYMENT_CASH = 'cash'
PAYMENT_METHOD_CHOICES = [
    (PAYMENT_PIX, 'PIX'),
    (PAYMENT_CREDIT, 'Credit card'),
    (PAYMENT_DEBIT, 'Debit card'),
    (PAYMENT_CASH, 'Cash'),
]


class Order(models.Model):
    """Committed sale with delivery details"""
    STATUS_PENDING = 'pending'
    STATUS_IN_PRODUCTION = 'in_production'
    STATUS_READY = 'ready'
    STATUS_OUT_FOR_DELIVERY = 'out_for_delivery'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELED = 'canceled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PRODUCTION, 'In production'),
        (STATUS_READY, 'Ready'),
        (STATUS_OUT_FOR_DELIVERY, 'Out for delivery'),
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_CANCELED, 'Canceled'),
    ]

    code = models.CharField(max_length=20, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=200)
    delivery_address = models.TextField(blank=True)
    delivery_date = models.DateField(null=True, blank=True)
    delivery_time = models.TimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                       validators=[MinValueValidator(Decimal('0.00'))])
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='orders')
    employee_name = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} - {self.customer_name}"

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='orders_status_idx'),
            models.Index(fields=['delivery_date'], name='orders_delivery_date_idx'),
            models.Index(fields=['-created_at'], name='orders_created_idx'),
        ]


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    # Snapshots taken when the item was added; later product edits do not touch them
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self):
        return f"{self.order.code} - {self.product_name} x {self.quantity}"

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    class Meta:
        db_table = 'order_items'
        ordering = ['id']


class BudgetQuerySet(models.QuerySet):
    def active(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)


class Budget(models.Model):
    """Quote handed to a customer; not a sale until converted"""
    code = models.CharField(max_length=20, unique=True)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='budgets')
    customer_name = models.CharField(max_length=200, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    valid_until = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='budgets')
    employee_name = models.CharField(max_length=255, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BudgetQuerySet.as_manager()

    def __str__(self):
        return self.code

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def is_expired(self):
        return self.valid_until is not None and self.valid_until < timezone.localdate()

    class Meta:
        db_table = 'budgets'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['deleted_at'], name='budgets_deleted_at_idx'),
            models.Index(fields=['-created_at'], name='budgets_created_idx'),
        ]


class BudgetItem(models.Model):
    budget = models.ForeignKey(Budget, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='budget_items')
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    def __str__(self):
        return f"{self.budget.code} - {self.product_name} x {self.quantity}"

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    class Meta:
        db_table = 'budget_items'
        ordering = ['id']
