from django.urls import path
from .views import (
    order_list_create, order_detail, order_status_update, order_next_code,
    budget_list_create, budget_detail, budget_restore, budget_next_code, budget_convert,
)

urlpatterns = [
    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/next-code/', order_next_code, name='order-next-code'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/status/', order_status_update, name='order-status-update'),

    # Budget endpoints
    path('budgets/', budget_list_create, name='budget-list-create'),
    path('budgets/next-code/', budget_next_code, name='budget-next-code'),
    path('budgets/<int:pk>/', budget_detail, name='budget-detail'),
    path('budgets/<int:pk>/restore/', budget_restore, name='budget-restore'),
    path('budgets/<int:pk>/convert/', budget_convert, name='budget-convert'),
]
