from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='report-dashboard'),
    path('reports/sales-chart/', views.sales_chart, name='report-sales-chart'),
    path('reports/top-products/', views.top_products, name='report-top-products'),
    path('reports/category-sales/', views.category_sales, name='report-category-sales'),
]
