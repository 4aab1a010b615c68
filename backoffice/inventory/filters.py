import django_filters
from django.db.models import Q
from .models import StockHistory


class StockHistoryFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    product = django_filters.NumberFilter(field_name='product_id')
    action = django_filters.ChoiceFilter(choices=StockHistory.ACTION_CHOICES)
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = StockHistory
        fields = ['search', 'product', 'action', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        """Match product name, user email or action"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(product_name__icontains=value) | Q(user_email__icontains=value) | Q(action__icontains=value)
        )
