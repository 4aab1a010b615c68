import django_filters
from django.db.models import Q
from .models import Product, STATUS_CHOICES, stock_status_q


class ProductFilter(django_filters.FilterSet):
    """Filter for the product list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=STATUS_CHOICES, method='filter_status', label='Stock status')
    supplier = django_filters.CharFilter(field_name='supplier', lookup_expr='icontains')

    class Meta:
        model = Product
        fields = ['search', 'status', 'supplier']

    def filter_search(self, queryset, name, value):
        """Match name, barcode or supplier"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(barcode__icontains=value) | Q(supplier__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        return queryset.filter(stock_status_q(value))
