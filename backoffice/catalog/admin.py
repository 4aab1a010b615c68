from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'barcode', 'supplier', 'quantity', 'min_quantity', 'price', 'is_archived', 'updated_at']
    list_filter = ['is_archived', 'supplier']
    search_fields = ['name', 'barcode', 'supplier']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']
