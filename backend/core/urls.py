"""
Rentas — API URL Configuration
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'properties', views.PropertyViewSet, basename='properties')
router.register(r'documents', views.DocumentViewSet, basename='documents')

urlpatterns = [
    path('', include(router.urls)),

    # Dashboard & currency
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('currency/convert/', views.CurrencyConvertView.as_view(), name='currency-convert'),
]
