from django.urls import path
from .views import dashboard, orders_schedule

urlpatterns = [
    path('reports/dashboard/', dashboard, name='reports-dashboard'),
    path('reports/orders-schedule/', orders_schedule, name='reports-orders-schedule'),
]
