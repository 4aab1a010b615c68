from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.shortcuts import get_object_or_404
import logging

from .codes import generate_next_code
from .exceptions import DraftError, CodeConflictError, InsufficientStockError
from .filters import OrderFilter, BudgetFilter
from .models import Order, Budget
from .serializers import (
    OrderSerializer, OrderWriteSerializer, OrderStatusSerializer,
    BudgetSerializer, BudgetWriteSerializer, BudgetConvertSerializer,
)
from .services import (
    create_order, update_order, update_order_status, delete_order,
    create_budget, update_budget, soft_delete_budget, restore_budget,
    convert_budget_to_order,
)

logger = logging.getLogger(__name__)


def workflow_error_response(error):
    """Map a workflow exception to its HTTP answer"""
    if isinstance(error, CodeConflictError):
        return Response({'error': str(error)}, status=status.HTTP_409_CONFLICT)
    return Response({'error': str(error)}, status=status.HTTP_400_BAD_REQUEST)


WORKFLOW_ERRORS = (DraftError, InsufficientStockError, CodeConflictError)


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders or create a new one (stock is taken out in the same transaction)"""
    if request.method == 'GET':
        queryset = Order.objects.select_related('customer').prefetch_related('items')
        filterset = OrderFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs
        if 'ordering' not in request.query_params:
            queryset = queryset.order_by('-created_at', '-id')
        serializer = OrderSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = OrderWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            order = create_order(serializer.validated_data, request.user)
        except WORKFLOW_ERRORS as e:
            return workflow_error_response(e)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve, replace or delete an order"""
    order = get_object_or_404(Order, pk=pk)

    if request.method == 'GET':
        serializer = OrderSerializer(order)
        return Response(serializer.data)
    elif request.method == 'PUT':
        serializer = OrderWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            order = update_order(order, serializer.validated_data, request.user)
        except WORKFLOW_ERRORS as e:
            return workflow_error_response(e)
        return Response(OrderSerializer(order).data)
    else:  # DELETE
        delete_order(order, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def order_status_update(request, pk):
    order = get_object_or_404(Order, pk=pk)
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    order = update_order_status(order, serializer.validated_data['status'], request.user)
    return Response(OrderSerializer(order).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_next_code(request):
    """Preview of the code the next order will get; the final code is assigned on save"""
    return Response({'code': generate_next_code(Order, settings.ORDER_CODE_PREFIX)})


# Budget views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def budget_list_create(request):
    """List active budgets or create a new one"""
    if request.method == 'GET':
        queryset = Budget.objects.select_related('customer').prefetch_related('items')
        if request.query_params.get('include_deleted') != 'true':
            queryset = queryset.active()
        filterset = BudgetFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = BudgetSerializer(filterset.qs.order_by('-created_at', '-id'), many=True)
        return Response(serializer.data)
    else:
        serializer = BudgetWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            budget = create_budget(serializer.validated_data, request.user)
        except WORKFLOW_ERRORS as e:
            return workflow_error_response(e)
        return Response(BudgetSerializer(budget).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def budget_detail(request, pk):
    """Retrieve, replace or soft delete a budget (deleted budgets stay retrievable)"""
    budget = get_object_or_404(Budget, pk=pk)

    if request.method == 'GET':
        serializer = BudgetSerializer(budget)
        return Response(serializer.data)
    elif request.method == 'PUT':
        if budget.is_deleted:
            return Response({'error': 'Deleted budgets cannot be edited.'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = BudgetWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            budget = update_budget(budget, serializer.validated_data, request.user)
        except WORKFLOW_ERRORS as e:
            return workflow_error_response(e)
        return Response(BudgetSerializer(budget).data)
    else:  # DELETE
        soft_delete_budget(budget, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def budget_restore(request, pk):
    budget = get_object_or_404(Budget, pk=pk)
    budget = restore_budget(budget, request.user)
    return Response(BudgetSerializer(budget).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def budget_next_code(request):
    return Response({'code': generate_next_code(Budget, settings.BUDGET_CODE_PREFIX)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def budget_convert(request, pk):
    """Create an order from a budget's customer and items"""
    budget = get_object_or_404(Budget, pk=pk)
    if budget.is_deleted:
        return Response({'error': 'Deleted budgets cannot be converted.'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = BudgetConvertSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        order = convert_budget_to_order(budget, serializer.validated_data, request.user)
    except WORKFLOW_ERRORS as e:
        return workflow_error_response(e)
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
