from django.contrib import admin
from .models import Order, OrderItem, Budget, BudgetItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'unit_price']


class BudgetItemInline(admin.TabularInline):
    model = BudgetItem
    extra = 0
    readonly_fields = ['product', 'product_name', 'quantity', 'unit_price']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['code', 'customer_name', 'status', 'payment_method', 'total_amount', 'delivery_date', 'created_at']
    list_filter = ['status', 'payment_method', 'delivery_date']
    search_fields = ['code', 'customer_name']
    ordering = ['-created_at']
    readonly_fields = ['code', 'total_amount', 'created_by', 'employee_name', 'created_at', 'updated_at']
    inlines = [OrderItemInline]


@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ['code', 'customer_name', 'total_amount', 'valid_until', 'deleted_at', 'created_at']
    list_filter = ['valid_until', 'deleted_at']
    search_fields = ['code', 'customer_name']
    ordering = ['-created_at']
    readonly_fields = ['code', 'total_amount', 'created_by', 'employee_name', 'created_at', 'updated_at']
    inlines = [BudgetItemInline]
