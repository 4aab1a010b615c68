from decimal import Decimal

from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.db.models import F, Q

STATUS_OK = 'ok'
STATUS_LOW = 'low'
STATUS_CRITICAL = 'critical'
STATUS_CHOICES = [
    (STATUS_OK, 'OK'),
    (STATUS_LOW, 'Low'),
    (STATUS_CRITICAL, 'Critical'),
]

barcode_validator = RegexValidator(
    regex=r'^\d{1,13}$',
    message='Barcode must contain only digits (at most 13).',
)


def derive_stock_status(quantity, min_quantity):
    """critical when nothing is on hand, low up to the minimum, ok above it"""
    if quantity <= 0:
        return STATUS_CRITICAL
    if quantity <= min_quantity:
        return STATUS_LOW
    return STATUS_OK


def stock_status_q(status):
    """Database filter equivalent of derive_stock_status"""
    if status == STATUS_CRITICAL:
        return Q(quantity__lte=0)
    if status == STATUS_LOW:
        return Q(quantity__gt=0, quantity__lte=F('min_quantity'))
    if status == STATUS_OK:
        return Q(quantity__gt=0) & Q(quantity__gt=F('min_quantity'))
    raise ValueError(f"Unknown stock status: {status}")


class Product(models.Model):
    """Stock item sold by the store"""
    name = models.CharField(max_length=255)
    barcode = models.CharField(max_length=13, blank=True, null=True, validators=[barcode_validator])
    supplier = models.CharField(max_length=255, blank=True)
    unit = models.CharField(max_length=20, default='un')
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                validators=[MinValueValidator(Decimal('0.00'))])
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                     validators=[MinValueValidator(Decimal('0.00'))])
    quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    min_quantity = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def stock_status(self):
        return derive_stock_status(self.quantity, self.min_quantity)

    class Meta:
        db_table = 'stock'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name='stock_quantity_non_negative'),
            models.CheckConstraint(condition=Q(min_quantity__gte=0), name='stock_min_quantity_non_negative'),
        ]
        indexes = [
            models.Index(fields=['name'], name='stock_name_idx'),
            models.Index(fields=['barcode'], name='stock_barcode_idx'),
            models.Index(fields=['is_archived'], name='stock_is_archived_idx'),
        ]
