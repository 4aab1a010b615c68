from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from .filters import StockHistoryFilter
from .models import StockHistory
from .serializers import StockHistorySerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_history_list(request):
    """Stock history, newest first"""
    filterset = StockHistoryFilter(request.query_params, queryset=StockHistory.objects.all())
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('-created_at', '-id')
    serializer = StockHistorySerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_history_detail(request, pk):
    entry = get_object_or_404(StockHistory, pk=pk)
    return Response(StockHistorySerializer(entry).data)
