from rest_framework import serializers
from .models import Product
from .utils import ADJUST_ADD, ADJUST_SUBTRACT


class ProductSerializer(serializers.ModelSerializer):
    status = serializers.CharField(source='stock_status', read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'barcode', 'supplier', 'unit', 'price', 'cost_price',
                  'quantity', 'min_quantity', 'status', 'is_archived', 'created_at', 'updated_at']
        read_only_fields = ['is_archived', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required.')
        return value

    def validate_barcode(self, value):
        return value or None


class StockAdjustmentSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=[(ADJUST_ADD, 'Add'), (ADJUST_SUBTRACT, 'Subtract')])
    amount = serializers.IntegerField(min_value=1)
