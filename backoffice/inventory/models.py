from django.conf import settings
from django.db import models
from backoffice.catalog.models import Product


class StockHistory(models.Model):
    """Append-only log of product mutations"""
    ACTION_CREATED = 'created'
    ACTION_EDITED = 'edited'
    ACTION_QUANTITY_ADDED = 'quantity_added'
    ACTION_QUANTITY_REMOVED = 'quantity_removed'
    ACTION_ARCHIVED = 'archived'
    ACTION_RESTORED = 'restored'
    ACTION_SALE = 'sale'
    ACTION_CHOICES = [
        (ACTION_CREATED, 'Product Created'),
        (ACTION_EDITED, 'Product Edited'),
        (ACTION_QUANTITY_ADDED, 'Quantity Added'),
        (ACTION_QUANTITY_REMOVED, 'Quantity Removed'),
        (ACTION_ARCHIVED, 'Product Archived'),
        (ACTION_RESTORED, 'Product Restored'),
        (ACTION_SALE, 'Sale'),
    ]

    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='history')
    # Snapshot so entries stay readable after the product is renamed or deleted
    product_name = models.CharField(max_length=255)
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    details = models.TextField(blank=True)
    quantity_change = models.IntegerField(default=0)
    old_quantity = models.IntegerField(null=True, blank=True)
    new_quantity = models.IntegerField(null=True, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='stock_history')
    user_email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_action_display()} - {self.product_name}"

    class Meta:
        db_table = 'stock_history'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'stock history'
        indexes = [
            models.Index(fields=['-created_at'], name='stock_histo_created_idx'),
            models.Index(fields=['action'], name='stock_histo_action_idx'),
        ]
