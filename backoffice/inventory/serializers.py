from rest_framework import serializers
from .models import StockHistory


class StockHistorySerializer(serializers.ModelSerializer):
    action_display = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = StockHistory
        fields = ['id', 'product', 'product_name', 'action', 'action_display', 'details',
                  'quantity_change', 'old_quantity', 'new_quantity', 'user', 'user_email', 'created_at']
        read_only_fields = fields
