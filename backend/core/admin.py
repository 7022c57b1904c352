from django.contrib import admin
from .models import Property, Tenant, Guarantor, Document


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ['name', 'address', 'status', 'monthly_rent', 'currency',
                    'payment_day', 'next_payment_date', 'payment_status']
    list_filter = ['status', 'payment_status', 'currency']
    search_fields = ['name', 'address']

@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['name', 'property', 'phone', 'email', 'contract_end']
    search_fields = ['name', 'email']

@admin.register(Guarantor)
class GuarantorAdmin(admin.ModelAdmin):
    list_display = ['name', 'property', 'phone', 'email']
    search_fields = ['name']

@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'type', 'document_owner', 'property', 'created_at']
    list_filter = ['type', 'document_owner']
