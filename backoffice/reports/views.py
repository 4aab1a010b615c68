import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, F, DecimalField
from django.db.models.functions import TruncDate
from django.utils import timezone
from decimal import Decimal

from backoffice.catalog.models import Product, STATUS_LOW, STATUS_CRITICAL, stock_status_q
from backoffice.core.cache_utils import versioned_cache_key, get_cached, set_cached, DASHBOARD_CACHE_TTL
from backoffice.sales.models import Order

logger = logging.getLogger(__name__)

SCHEDULE_VIEWS = ('today', 'future', 'past')


def revenue(orders):
    return orders.aggregate(
        total=Sum('total_amount', output_field=DecimalField())
    )['total'] or Decimal('0.00')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Orders and revenue for today and the current month, plus the low stock count"""
    today = timezone.localdate()
    cache_key = versioned_cache_key('dashboard', ['orders', 'stock'], today=today.isoformat())
    cached_data = get_cached(cache_key)
    if cached_data is not None:
        return Response(cached_data)

    month_start = today.replace(day=1)
    orders_today = Order.objects.filter(created_at__date=today)
    billable = Order.objects.exclude(status=Order.STATUS_CANCELED)
    billable_month = billable.filter(created_at__date__gte=month_start, created_at__date__lte=today)

    daily = (
        billable_month.annotate(day=TruncDate('created_at'))
        .values('day')
        .annotate(revenue=Sum('total_amount'), orders=Count('id'))
        .order_by('day')
    )

    data = {
        'date': today.isoformat(),
        'orders_today': orders_today.count(),
        'revenue_today': revenue(billable.filter(created_at__date=today)),
        'revenue_month': revenue(billable_month),
        'pending_orders': Order.objects.filter(status=Order.STATUS_PENDING).count(),
        'low_stock_count': Product.objects.filter(is_archived=False).filter(
            stock_status_q(STATUS_LOW) | stock_status_q(STATUS_CRITICAL)
        ).count(),
        'revenue_by_day': [
            {'date': row['day'].isoformat(), 'revenue': row['revenue'], 'orders': row['orders']}
            for row in daily
        ],
    }
    set_cached(cache_key, data, DASHBOARD_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def orders_schedule(request):
    """
    Orders grouped by delivery date relative to today.

    today: delivered today, by delivery time; future: soonest first;
    past: most recent first.
    """
    view = request.query_params.get('view', 'today')
    if view not in SCHEDULE_VIEWS:
        return Response(
            {'error': f"view must be one of: {', '.join(SCHEDULE_VIEWS)}"},
            status=status.HTTP_400_BAD_REQUEST
        )

    today = timezone.localdate()
    orders = Order.objects.annotate(item_count=Count('items'), total_quantity=Sum('items__quantity'))
    if view == 'today':
        orders = orders.filter(delivery_date=today).order_by(F('delivery_time').asc(nulls_last=True), 'id')
    elif view == 'future':
        orders = orders.filter(delivery_date__gt=today).order_by('delivery_date', F('delivery_time').asc(nulls_last=True), 'id')
    else:
        orders = orders.filter(delivery_date__lt=today).order_by('-delivery_date', F('delivery_time').desc(nulls_last=True), '-id')

    data = [
        {
            'id': order.id,
            'code': order.code,
            'customer_name': order.customer_name,
            'delivery_address': order.delivery_address,
            'delivery_date': order.delivery_date,
            'delivery_time': order.delivery_time,
            'status': order.status,
            'status_display': order.get_status_display(),
            'total_amount': order.total_amount,
            'item_count': order.item_count,
            'total_quantity': order.total_quantity or 0,
        }
        for order in orders
    ]
    return Response(data)
