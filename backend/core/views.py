"""
Rentas — API Views
All endpoints for the rental management system.
"""
import io
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.http import FileResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from .currency import convert_currency, format_currency, get_exchange_rate
from .models import Property, Document
from .payments import expires_within_window, is_overdue
from .serializers import (
    PropertySerializer, PropertyDetailSerializer, PaymentStatusSerializer,
    DocumentSerializer, DocumentUploadSerializer,
    DashboardSerializer, CurrencyConversionSerializer,
)
from .storage import upload_document, download_document
from . import repository


# ═══════════════════════════════════════════════════════════
#  PROPERTIES
# ═══════════════════════════════════════════════════════════

class PropertyViewSet(viewsets.ModelViewSet):
    """CRUD /api/properties/"""
    error_messages = {
        'create': 'Error al crear la propiedad',
        'update': 'Error al actualizar la propiedad',
        'partial_update': 'Error al actualizar la propiedad',
        'destroy': 'Error al eliminar la propiedad',
        'mark_paid': 'Error al actualizar el estado de pago',
        'cancel_payment': 'Error al actualizar el estado de pago',
        'payment_status': 'Error al actualizar el estado de pago',
        'documents': 'Error al subir el documento',
        'delete_document': 'Error al eliminar el documento',
    }

    def get_queryset(self):
        return repository.with_children()

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return PropertyDetailSerializer
        return PropertySerializer

    def list(self, request):
        """GET /api/properties/?search=texto"""
        properties = repository.list_properties(request.query_params.get('search'))
        serializer = self.get_serializer(properties, many=True)
        return Response(serializer.data)

    def perform_destroy(self, instance):
        repository.delete_property(instance)

    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        """POST /api/properties/{id}/mark-paid/"""
        prop = repository.mark_paid(self.get_object())
        return Response(PropertySerializer(prop).data)

    @action(detail=True, methods=['post'], url_path='cancel-payment')
    def cancel_payment(self, request, pk=None):
        """POST /api/properties/{id}/cancel-payment/"""
        prop = repository.cancel_payment(self.get_object())
        return Response(PropertySerializer(prop).data)

    @action(detail=True, methods=['patch'], url_path='payment-status')
    def payment_status(self, request, pk=None):
        """PATCH /api/properties/{id}/payment-status/"""
        prop = self.get_object()
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        repository.update_payment_status(prop, data['payment_status'],
                                         data.get('next_payment_date'))
        return Response(PropertySerializer(prop).data)

    @action(detail=True, methods=['get', 'post'])
    def documents(self, request, pk=None):
        """GET/POST /api/properties/{id}/documents/ (multipart upload)"""
        prop = self.get_object()
        if request.method == 'GET':
            documents = prop.documents.order_by('-created_at')
            return Response(DocumentSerializer(documents, many=True).data)

        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        document = upload_document(prop, data['file'], data['type'], data['document_owner'])
        return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'],
            url_path='documents/(?P<document_id>[^/.]+)')
    def delete_document(self, request, pk=None, document_id=None):
        """DELETE /api/properties/{id}/documents/{document_id}/"""
        prop = self.get_object()
        document = get_object_or_404(Document, id=document_id, property=prop)
        repository.delete_document(document)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ═══════════════════════════════════════════════════════════
#  DOCUMENTS
# ═══════════════════════════════════════════════════════════

class DocumentViewSet(viewsets.ReadOnlyModelViewSet):
    """GET /api/documents/"""
    serializer_class = DocumentSerializer
    queryset = Document.objects.all()
    filterset_fields = ['property', 'type', 'document_owner']
    error_messages = {'download': 'Error al descargar el documento'}

    @action(detail=True, methods=['get'])
    def download(self, request, pk=None):
        """GET /api/documents/{id}/download/"""
        file_name, content = download_document(self.get_object())
        return FileResponse(io.BytesIO(content), as_attachment=True, filename=file_name)


# ═══════════════════════════════════════════════════════════
#  DASHBOARD
# ═══════════════════════════════════════════════════════════

def _compute_dashboard(properties, today):
    occupied = [p for p in properties if p.is_occupied]

    # Rent is normalized to RD$ before applying the commission
    total_rent = sum(
        (convert_currency(p.monthly_rent, p.currency, Property.CURRENCY_DOP) for p in occupied),
        Decimal('0'),
    )
    commission = Decimal(str(settings.COMMISSION_RATE))
    monthly_income = (total_rent * commission).quantize(Decimal('0.01'))

    expiring = sorted(
        (p for p in properties
         if p.tenant and expires_within_window(p.tenant.contract_end, today)),
        key=lambda p: p.tenant.contract_end,
    )

    week_ahead = today + timedelta(days=7)
    activity = sorted(
        (p for p in occupied
         if p.next_payment_date and (
             is_overdue(p.next_payment_date, today)
             or (p.next_payment_date < week_ahead
                 and p.payment_status != Property.PAYMENT_PAID))),
        key=lambda p: p.next_payment_date,
    )

    return {
        'total_properties': len(properties),
        'total_tenants': len(occupied),
        'monthly_income': monthly_income,
        'monthly_income_display': format_currency(monthly_income, Property.CURRENCY_DOP),
        'expiring_contracts': len(expiring),
        'expiring_contracts_list': [
            {
                'property_id': p.id,
                'property_name': p.name,
                'tenant_name': p.tenant.name,
                'contract_end': p.tenant.contract_end,
            }
            for p in expiring
        ],
        'recent_activity': [
            {
                'property_id': p.id,
                'property_name': p.name,
                'tenant_name': p.tenant.name if p.tenant else None,
                'next_payment_date': p.next_payment_date,
                'monthly_rent_display': format_currency(p.monthly_rent, p.currency),
                'is_overdue': is_overdue(p.next_payment_date, today),
            }
            for p in activity
        ],
    }


class DashboardView(APIView):
    """GET /api/dashboard/"""

    def get(self, request):
        data = _compute_dashboard(repository.list_properties(), timezone.localdate())
        return Response(DashboardSerializer(data).data)


# ═══════════════════════════════════════════════════════════
#  CURRENCY
# ═══════════════════════════════════════════════════════════

class CurrencyConvertView(APIView):
    """GET /api/currency/convert/?amount=100&from=USD&to=RD$"""

    def get(self, request):
        serializer = CurrencyConversionSerializer(data={
            'amount': request.query_params.get('amount'),
            'from_currency': request.query_params.get('from'),
            'to_currency': request.query_params.get('to'),
        })
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        converted = convert_currency(data['amount'], data['from_currency'], data['to_currency'])
        return Response({
            'amount': str(data['amount']),
            'from': data['from_currency'],
            'to': data['to_currency'],
            'rate': str(get_exchange_rate()),
            'converted': str(converted.quantize(Decimal('0.01'))),
            'display': format_currency(converted, data['to_currency']),
        })
