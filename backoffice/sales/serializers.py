from decimal import Decimal

from rest_framework import serializers
from backoffice.parties.models import Customer
from .models import Order, OrderItem, Budget, BudgetItem, PAYMENT_METHOD_CHOICES


class LineItemInputSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'),
                                          required=False, allow_null=True)


class OrderItemSerializer(serializers.ModelSerializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'quantity', 'unit_price', 'subtotal']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    payment_method_display = serializers.CharField(source='get_payment_method_display', read_only=True)
    customer_phone = serializers.CharField(source='customer.phone', read_only=True, default=None)

    class Meta:
        model = Order
        fields = [
            'id', 'code', 'customer', 'customer_name', 'customer_phone', 'delivery_address',
            'delivery_date', 'delivery_time', 'payment_method', 'payment_method_display',
            'delivery_fee', 'total_amount', 'status', 'status_display', 'notes',
            'created_by', 'employee_name', 'items', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderWriteSerializer(serializers.Serializer):
    """Input for creating or editing an order"""
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all())
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default='')
    delivery_date = serializers.DateField(required=False, allow_null=True)
    delivery_time = serializers.TimeField(required=False, allow_null=True)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'),
                                            required=False, default=Decimal('0.00'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    items = LineItemInputSerializer(many=True, allow_empty=False)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class BudgetItemSerializer(serializers.ModelSerializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = BudgetItem
        fields = ['id', 'product', 'product_name', 'quantity', 'unit_price', 'subtotal']


class BudgetSerializer(serializers.ModelSerializer):
    items = BudgetItemSerializer(many=True, read_only=True)
    is_deleted = serializers.BooleanField(read_only=True)
    is_expired = serializers.BooleanField(read_only=True)

    class Meta:
        model = Budget
        fields = [
            'id', 'code', 'customer', 'customer_name', 'total_amount', 'valid_until', 'notes',
            'created_by', 'employee_name', 'is_expired', 'is_deleted', 'deleted_at', 'items',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class BudgetWriteSerializer(serializers.Serializer):
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    valid_until = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = LineItemInputSerializer(many=True, allow_empty=False)


class BudgetConvertSerializer(serializers.Serializer):
    """Order details a budget does not carry"""
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES)
    delivery_address = serializers.CharField(required=False, allow_blank=True, default='')
    delivery_date = serializers.DateField(required=False, allow_null=True)
    delivery_time = serializers.TimeField(required=False, allow_null=True)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'),
                                            required=False, default=Decimal('0.00'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')
