from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
import logging

from backoffice.core.cache_utils import versioned_cache_key, get_cached, set_cached, CUSTOMER_LIST_CACHE_TTL
from .models import Customer
from .serializers import CustomerSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        search = request.query_params.get('search', '').strip()

        cache_key = versioned_cache_key('customer_list', ['customers'], search=search)
        cached_data = get_cached(cache_key)
        if cached_data is not None:
            response = Response(cached_data)
            response['Cache-Control'] = 'private, max-age=60'
            return response

        queryset = Customer.objects.all().order_by('name')
        if search:
            queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
        serializer = CustomerSerializer(queryset, many=True)
        response_data = serializer.data
        set_cached(cache_key, response_data, CUSTOMER_LIST_CACHE_TTL)

        response = Response(response_data)
        response['Cache-Control'] = 'private, max-age=60'
        return response
    else:
        serializer = CustomerSerializer(data=request.data)
        if serializer.is_valid():
            customer = serializer.save()
            logger.info(f"Customer created: {customer.name} (ID: {customer.id})")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)

    if request.method == 'GET':
        serializer = CustomerSerializer(customer)
        return Response(serializer.data)
    elif request.method == 'PUT':
        serializer = CustomerSerializer(customer, data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    elif request.method == 'PATCH':
        serializer = CustomerSerializer(customer, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        # Orders and budgets keep the customer name snapshot
        logger.info(f"Customer deleted: {customer.name} (ID: {customer.id})")
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_orders(request, pk):
    """Orders placed by a customer, newest first"""
    from backoffice.sales.models import Order
    from backoffice.sales.serializers import OrderSerializer

    customer = get_object_or_404(Customer, pk=pk)
    orders = Order.objects.filter(customer=customer).prefetch_related('items').order_by('-created_at')
    serializer = OrderSerializer(orders, many=True)
    return Response(serializer.data)
