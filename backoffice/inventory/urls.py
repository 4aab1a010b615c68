from django.urls import path
from .views import stock_history_list, stock_history_detail

urlpatterns = [
    path('stock-history/', stock_history_list, name='stock-history-list'),
    path('stock-history/<int:pk>/', stock_history_detail, name='stock-history-detail'),
]
