from django.urls import path
from .views import (
    product_list_create, product_detail, product_archive, product_restore,
    product_adjust, product_low_stock,
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/low-stock/', product_low_stock, name='product-low-stock'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/archive/', product_archive, name='product-archive'),
    path('products/<int:pk>/restore/', product_restore, name='product-restore'),
    path('products/<int:pk>/adjust/', product_adjust, name='product-adjust'),
]
