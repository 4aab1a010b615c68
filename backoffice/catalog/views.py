from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
import logging

from backoffice.core.cache_utils import versioned_cache_key, get_cached, set_cached, PRODUCTS_LIST_CACHE_TTL
from backoffice.core.permissions import IsManagerOrAdministrator
from .exceptions import InsufficientStockError
from .filters import ProductFilter
from .models import Product, STATUS_LOW, STATUS_CRITICAL, stock_status_q
from .serializers import ProductSerializer, StockAdjustmentSerializer
from .utils import (
    create_product, update_product, adjust_product_quantity,
    set_archived, delete_or_archive_product,
)

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List active products or create a new product"""
    if request.method == 'GET':
        include_archived = request.query_params.get('include_archived') == 'true'
        cache_key = versioned_cache_key(
            'products_list', ['stock'],
            search=request.query_params.get('search', ''),
            status=request.query_params.get('status', ''),
            supplier=request.query_params.get('supplier', ''),
            include_archived=include_archived,
        )
        cached_data = get_cached(cache_key)
        if cached_data is not None:
            return Response(cached_data)

        queryset = Product.objects.all()
        if not include_archived:
            queryset = queryset.filter(is_archived=False)
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProductSerializer(filterset.qs.order_by('name'), many=True)
        response_data = serializer.data
        set_cached(cache_key, response_data, PRODUCTS_LIST_CACHE_TTL)
        return Response(response_data)
    else:
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = create_product(serializer, request.user)
            return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            product = update_product(serializer, request.user)
            return Response(ProductSerializer(product).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not request.user.is_manager_or_above:
            logger.warning(f"User {request.user.email} tried to delete product {product.name} (ID: {product.id})")
            return Response(
                {'error': 'Only managers and administrators can delete or archive products.'},
                status=status.HTTP_403_FORBIDDEN
            )
        deleted = delete_or_archive_product(product, user=request.user)
        if deleted:
            return Response(status=status.HTTP_204_NO_CONTENT)
        # Referenced products are archived instead
        return Response(ProductSerializer(product).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManagerOrAdministrator])
def product_archive(request, pk):
    product = get_object_or_404(Product, pk=pk)
    set_archived(product, True, user=request.user)
    return Response(ProductSerializer(product).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManagerOrAdministrator])
def product_restore(request, pk):
    product = get_object_or_404(Product, pk=pk)
    set_archived(product, False, user=request.user)
    return Response(ProductSerializer(product).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_adjust(request, pk):
    """Add to or subtract from a product's on-hand quantity"""
    product = get_object_or_404(Product, pk=pk)
    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        product = adjust_product_quantity(
            product.pk,
            serializer.validated_data['type'],
            serializer.validated_data['amount'],
            user=request.user,
        )
    except InsufficientStockError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(ProductSerializer(product).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_low_stock(request):
    """Active products whose status is low or critical, emptiest first"""
    queryset = Product.objects.filter(is_archived=False).filter(
        stock_status_q(STATUS_LOW) | stock_status_q(STATUS_CRITICAL)
    ).order_by('quantity', 'name')
    serializer = ProductSerializer(queryset, many=True)
    return Response(serializer.data)
