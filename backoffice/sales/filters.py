import django_filters
from django.db.models import Q
from .models import Order, Budget, PAYMENT_METHOD_CHOICES


class OrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    payment_method = django_filters.ChoiceFilter(choices=PAYMENT_METHOD_CHOICES)
    customer = django_filters.NumberFilter(field_name='customer_id')
    delivery_from = django_filters.DateFilter(field_name='delivery_date', lookup_expr='gte')
    delivery_to = django_filters.DateFilter(field_name='delivery_date', lookup_expr='lte')
    ordering = django_filters.ChoiceFilter(
        choices=[('asc', 'Oldest first'), ('desc', 'Newest first')],
        method='filter_ordering',
    )

    class Meta:
        model = Order
        fields = ['search', 'status', 'payment_method', 'customer', 'delivery_from', 'delivery_to', 'ordering']

    def filter_search(self, queryset, name, value):
        """Match order code or customer name"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(code__icontains=value) | Q(customer_name__icontains=value))

    def filter_ordering(self, queryset, name, value):
        if value == 'asc':
            return queryset.order_by('created_at', 'id')
        return queryset.order_by('-created_at', '-id')


class BudgetFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    customer = django_filters.NumberFilter(field_name='customer_id')

    class Meta:
        model = Budget
        fields = ['search', 'customer']

    def filter_search(self, queryset, name, value):
        """Match budget code or customer name"""
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(code__icontains=value) | Q(customer_name__icontains=value))
