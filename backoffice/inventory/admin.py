from django.contrib import admin
from .models import StockHistory


@admin.register(StockHistory)
class StockHistoryAdmin(admin.ModelAdmin):
    list_display = ['product_name', 'action', 'quantity_change', 'old_quantity', 'new_quantity', 'user_email', 'created_at']
    list_filter = ['action', 'created_at']
    search_fields = ['product_name', 'user_email', 'details']
    ordering = ['-created_at']
    readonly_fields = ['product', 'product_name', 'action', 'details', 'quantity_change',
                       'old_quantity', 'new_quantity', 'user', 'user_email', 'created_at']
