"""
Rentas — Data Models

Model hierarchy:
  Property (rental unit, aggregate root)
  ├── Tenant (current occupant, at most one)
  ├── Guarantor (optional co-signer, at most one)
  └── Document (uploaded files for tenant or guarantor)

Children reference the property through a nullable column. Cascading
deletes are performed by core.repository, not by the database.
"""

import uuid
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator


# ═══════════════════════════════════════════════════════════
#  PROPERTY
# ═══════════════════════════════════════════════════════════

class Property(models.Model):
    """
    A rental unit tracked by the system.
    Payment fields are only meaningful while the property is Ocupado.
    """
    STATUS_AVAILABLE = 'Disponible'
    STATUS_OCCUPIED = 'Ocupado'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Disponible'),
        (STATUS_OCCUPIED, 'Ocupado'),
    ]

    PAYMENT_PAID = 'Pagado'
    PAYMENT_PENDING = 'Pendiente'
    PAYMENT_OVERDUE = 'Atrasado'
    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PAID, 'Pagado'),
        (PAYMENT_PENDING, 'Pendiente'),
        (PAYMENT_OVERDUE, 'Atrasado'),
    ]

    CURRENCY_DOP = 'RD$'
    CURRENCY_USD = 'USD'
    CURRENCY_CHOICES = [
        (CURRENCY_DOP, 'Peso Dominicano'),
        (CURRENCY_USD, 'US Dollar'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=300, db_index=True)
    address = models.CharField(max_length=500)
    rooms = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    monthly_rent = models.DecimalField(max_digits=12, decimal_places=2, default=0,
                                       validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default=CURRENCY_DOP)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES,
                              default=STATUS_AVAILABLE, db_index=True)
    payment_day = models.PositiveSmallIntegerField(
        null=True, blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(31)],
        help_text='Day of month the rent is due (1-31)',
    )
    next_payment_date = models.DateField(null=True, blank=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES,
                                      null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'properties'
        ordering = ['-created_at']
        verbose_name_plural = 'properties'
        indexes = [
            models.Index(fields=['status', 'next_payment_date'], name='properties_status_due_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def is_occupied(self):
        return self.status == self.STATUS_OCCUPIED

    @property
    def tenant(self):
        if hasattr(self, 'tenant_list'):
            return self.tenant_list[0] if self.tenant_list else None
        return self.tenants.order_by('created_at').first()

    @property
    def guarantor(self):
        if hasattr(self, 'guarantor_list'):
            return self.guarantor_list[0] if self.guarantor_list else None
        return self.guarantors.order_by('created_at').first()

    def clear_payment_fields(self):
        self.payment_day = None
        self.next_payment_date = None
        self.payment_status = None


# ═══════════════════════════════════════════════════════════
#  TENANT / GUARANTOR
# ═══════════════════════════════════════════════════════════

class Tenant(models.Model):
    """Current occupant of an Ocupado property."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    property = models.ForeignKey(Property, on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='tenants')
    name = models.CharField(max_length=300)
    phone = models.CharField(max_length=30, null=True, blank=True)
    email = models.EmailField(null=True, blank=True)
    contract_start = models.DateField(null=True, blank=True)
    contract_end = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'tenants'
        ordering = ['created_at']

    def __str__(self):
        return self.name


class Guarantor(models.Model):
    """Optional co-signer of a tenancy."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    property = models.ForeignKey(Property, on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='guarantors')
    name = models.CharField(max_length=300)
    phone = models.CharField(max_length=30, null=True, blank=True)
    email = models.EmailField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'guarantors'
        ordering = ['created_at']

    def __str__(self):
        return self.name


# ═══════════════════════════════════════════════════════════
#  DOCUMENT
# ═══════════════════════════════════════════════════════════

class Document(models.Model):
    """
    Uploaded file attached to the tenant or guarantor of a property.
    One row per (property, type, document_owner) is expected but not enforced.
    """
    TYPE_CHOICES = [
        ('CEDULA', 'Cédula'),
        ('CARTA_TRABAJO', 'Carta de Trabajo'),
        ('DATA_CREDITO', 'Data Crédito'),
        ('MOVIMIENTOS_BANCARIOS', 'Movimientos Bancarios'),
        ('CONTRATO', 'Contrato'),
        ('OTROS', 'Otros'),
    ]
    OWNER_TENANT = 'tenant'
    OWNER_GUARANTOR = 'guarantor'
    OWNER_CHOICES = [
        (OWNER_TENANT, 'Inquilino'),
        (OWNER_GUARANTOR, 'Garante'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    property = models.ForeignKey(Property, on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='documents')
    type = models.CharField(max_length=25, choices=TYPE_CHOICES)
    file_url = models.TextField()
    file_name = models.CharField(max_length=255, null=True, blank=True)
    document_owner = models.CharField(max_length=10, choices=OWNER_CHOICES,
                                      default=OWNER_TENANT)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'documents'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['property', 'type', 'document_owner'],
                         name='documents_prop_type_owner_idx'),
        ]

    def __str__(self):
        return f'{self.get_type_display()} ({self.document_owner})'
