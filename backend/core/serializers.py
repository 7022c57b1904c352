"""
Rentas — REST API Serializers
"""
import re

from rest_framework import serializers

from .currency import format_currency
from .models import Property, Tenant, Guarantor, Document
from .payments import payment_badge, contract_expiration
from . import repository


def format_phone(value):
    """Dominican format: 809-555-1234 (at most ten digits kept)."""
    digits = re.sub(r'\D', '', value or '')[:10]
    if not digits:
        return None
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f'{digits[:3]}-{digits[3:]}'
    return f'{digits[:3]}-{digits[3:6]}-{digits[6:]}'


# ═══════════════════════════════════════════════════════════
#  TENANT / GUARANTOR
# ═══════════════════════════════════════════════════════════

class ContactSerializerMixin:
    def validate_phone(self, value):
        return format_phone(value)

    def validate_email(self, value):
        return value or None


class TenantSerializer(ContactSerializerMixin, serializers.ModelSerializer):
    contract_flag = serializers.SerializerMethodField()

    class Meta:
        model = Tenant
        fields = ['id', 'property', 'name', 'phone', 'email', 'contract_start',
                  'contract_end', 'contract_flag', 'created_at', 'updated_at']
        read_only_fields = ['id', 'property', 'created_at', 'updated_at']
        extra_kwargs = {
            'phone': {'allow_blank': True},
            'email': {'allow_blank': True},
        }

    def get_contract_flag(self, obj):
        flag = contract_expiration(obj.contract_end, self.context.get('today'))
        return flag._asdict() if flag else None

    def validate(self, data):
        start, end = data.get('contract_start'), data.get('contract_end')
        if start and end and end < start:
            raise serializers.ValidationError(
                {'contract_end': 'El fin del contrato debe ser posterior al inicio.'}
            )
        return data


class GuarantorSerializer(ContactSerializerMixin, serializers.ModelSerializer):
    class Meta:
        model = Guarantor
        fields = ['id', 'property', 'name', 'phone', 'email', 'created_at', 'updated_at']
        read_only_fields = ['id', 'property', 'created_at', 'updated_at']
        extra_kwargs = {
            'phone': {'allow_blank': True},
            'email': {'allow_blank': True},
        }


# ═══════════════════════════════════════════════════════════
#  DOCUMENTS
# ═══════════════════════════════════════════════════════════

class DocumentSerializer(serializers.ModelSerializer):
    type_label = serializers.CharField(source='get_type_display', read_only=True)

    class Meta:
        model = Document
        fields = ['id', 'property', 'type', 'type_label', 'file_url', 'file_name',
                  'document_owner', 'created_at']
        read_only_fields = fields


class DocumentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    type = serializers.ChoiceField(choices=Document.TYPE_CHOICES)
    document_owner = serializers.ChoiceField(choices=Document.OWNER_CHOICES,
                                             default=Document.OWNER_TENANT)


# ═══════════════════════════════════════════════════════════
#  PROPERTIES
# ═══════════════════════════════════════════════════════════

class PropertySerializer(serializers.ModelSerializer):
    """
    Property with its tenant, guarantor and documents. Writes go through
    core.repository so the children and payment fields follow the status.
    """
    tenant = TenantSerializer(required=False, allow_null=True)
    guarantor = GuarantorSerializer(required=False, allow_null=True)
    documents = serializers.SerializerMethodField()
    payment_badge = serializers.SerializerMethodField()
    monthly_rent_display = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = ['id', 'name', 'address', 'rooms', 'monthly_rent', 'currency',
                  'monthly_rent_display', 'status', 'payment_day', 'next_payment_date',
                  'payment_status', 'payment_badge', 'tenant', 'guarantor', 'documents',
                  'created_at', 'updated_at']
        read_only_fields = ['id', 'next_payment_date', 'payment_status',
                            'created_at', 'updated_at']

    def get_documents(self, obj):
        documents = getattr(obj, 'document_list', None)
        if documents is None:
            documents = obj.documents.all()
        return DocumentSerializer(documents, many=True).data

    def get_payment_badge(self, obj):
        if not obj.is_occupied:
            return None
        return payment_badge(obj.payment_status, obj.next_payment_date,
                             self.context.get('today'))._asdict()

    def get_monthly_rent_display(self, obj):
        return format_currency(obj.monthly_rent, obj.currency)

    def validate(self, data):
        instance = self.instance
        status = data.get('status', instance.status if instance else Property.STATUS_AVAILABLE)
        if status != Property.STATUS_OCCUPIED:
            return data

        payment_day = data.get('payment_day', instance.payment_day if instance else None)
        if not payment_day:
            raise serializers.ValidationError(
                {'payment_day': 'El día de pago es obligatorio para propiedades ocupadas.'}
            )
        # Without a stored tenant the payload must name the new one
        tenant_data = data.get('tenant') or {}
        has_tenant = bool(instance and instance.tenant) or bool(tenant_data.get('name'))
        if not has_tenant:
            raise serializers.ValidationError(
                {'tenant': 'Los datos del inquilino son obligatorios para propiedades ocupadas.'}
            )
        return data

    def create(self, validated_data):
        tenant = validated_data.pop('tenant', None)
        guarantor = validated_data.pop('guarantor', None)
        prop = repository.create_property(validated_data, tenant, guarantor,
                                          today=self.context.get('today'))
        return repository.with_children().get(pk=prop.pk)

    def update(self, instance, validated_data):
        tenant = validated_data.pop('tenant', None)
        guarantor = validated_data.pop('guarantor', None)
        repository.update_property(instance, validated_data, tenant, guarantor,
                                   today=self.context.get('today'))
        return repository.with_children().get(pk=instance.pk)


class PropertyDetailSerializer(PropertySerializer):
    latest_documents = serializers.SerializerMethodField()

    class Meta(PropertySerializer.Meta):
        fields = PropertySerializer.Meta.fields + ['latest_documents']

    def get_latest_documents(self, obj):
        """Newest document per (document_owner, type)."""
        documents = getattr(obj, 'document_list', None)
        if documents is None:
            documents = obj.documents.order_by('-created_at')
        latest = {}
        for doc in documents:
            latest.setdefault((doc.document_owner, doc.type), doc)
        return DocumentSerializer(list(latest.values()), many=True).data


class PaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Property.PAYMENT_STATUS_CHOICES)
    next_payment_date = serializers.DateField(required=False, allow_null=True)


# ═══════════════════════════════════════════════════════════
#  DASHBOARD / CURRENCY
# ═══════════════════════════════════════════════════════════

class ExpiringContractSerializer(serializers.Serializer):
    property_id = serializers.UUIDField()
    property_name = serializers.CharField()
    tenant_name = serializers.CharField()
    contract_end = serializers.DateField()


class PaymentActivitySerializer(serializers.Serializer):
    property_id = serializers.UUIDField()
    property_name = serializers.CharField()
    tenant_name = serializers.CharField(allow_null=True)
    next_payment_date = serializers.DateField()
    monthly_rent_display = serializers.CharField()
    is_overdue = serializers.BooleanField()


class DashboardSerializer(serializers.Serializer):
    """Read-only serializer for dashboard data."""
    total_properties = serializers.IntegerField()
    total_tenants = serializers.IntegerField()
    monthly_income = serializers.DecimalField(max_digits=14, decimal_places=2)
    monthly_income_display = serializers.CharField()
    expiring_contracts = serializers.IntegerField()
    expiring_contracts_list = ExpiringContractSerializer(many=True)
    recent_activity = PaymentActivitySerializer(many=True)


class CurrencyConversionSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    from_currency = serializers.ChoiceField(choices=Property.CURRENCY_CHOICES)
    to_currency = serializers.ChoiceField(choices=Property.CURRENCY_CHOICES)
