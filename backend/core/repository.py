"""
Rentas — Property repository

Reads and writes for the Property aggregate. Tenant, guarantor and
document rows only point at their property, so every cascade happens
here explicitly. Multi-row writes share one transaction.

The full listing is cached under a single collection key and dropped on
any write to the four tables (see core.signals).
"""
import logging

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Prefetch

from .exceptions import PaymentCycleError
from .models import Property, Tenant, Guarantor, Document
from .payments import compute_initial_due_date, advance_after_payment
from .storage import delete_document_file

logger = logging.getLogger(__name__)

PROPERTIES_CACHE_KEY = 'properties'
PROPERTY_FIELDS = ('name', 'address', 'rooms', 'monthly_rent', 'currency',
                   'status', 'payment_day')


def _drop_listing():
    cache.delete(PROPERTIES_CACHE_KEY)


def invalidate_properties_cache():
    """Drop the listing now and again once the surrounding transaction commits."""
    _drop_listing()
    transaction.on_commit(_drop_listing)


def with_children(queryset=None):
    """Attach tenants, guarantors and documents in three extra queries."""
    if queryset is None:
        queryset = Property.objects.all()
    return queryset.prefetch_related(
        Prefetch('tenants', queryset=Tenant.objects.order_by('created_at'),
                 to_attr='tenant_list'),
        Prefetch('guarantors', queryset=Guarantor.objects.order_by('created_at'),
                 to_attr='guarantor_list'),
        Prefetch('documents', queryset=Document.objects.order_by('-created_at'),
                 to_attr='document_list'),
    )


def _matches(prop, query):
    tenant = prop.tenant
    return (
        query in prop.name.lower()
        or query in prop.address.lower()
        or bool(tenant and query in tenant.name.lower())
    )


def list_properties(search=None):
    """All properties, newest first, optionally filtered by name, address or tenant."""
    properties = cache.get(PROPERTIES_CACHE_KEY)
    if properties is None:
        properties = list(with_children())
        cache.set(PROPERTIES_CACHE_KEY, properties,
                  timeout=settings.PROPERTIES_CACHE_TIMEOUT)

    query = (search or '').strip().lower()
    if not query:
        return properties
    return [p for p in properties if _matches(p, query)]


# ═══════════════════════════════════════════════════════════
#  WRITES
# ═══════════════════════════════════════════════════════════

def _start_payment_cycle(prop, today=None):
    if prop.payment_day:
        prop.next_payment_date = compute_initial_due_date(prop.payment_day, today)
    else:
        prop.next_payment_date = None
    prop.payment_status = Property.PAYMENT_PENDING


def _upsert_child(model, prop, values):
    existing = model.objects.filter(property=prop).order_by('created_at').first()
    if existing is None:
        return model.objects.create(property=prop, **values)
    for field, value in values.items():
        setattr(existing, field, value)
    existing.save()
    return existing


@transaction.atomic
def create_property(data, tenant=None, guarantor=None, today=None):
    prop = Property(**{f: data[f] for f in PROPERTY_FIELDS if f in data})
    if prop.is_occupied:
        _start_payment_cycle(prop, today)
    else:
        prop.clear_payment_fields()
    prop.save()

    if prop.is_occupied:
        if tenant:
            Tenant.objects.create(property=prop, **tenant)
        if guarantor:
            Guarantor.objects.create(property=prop, **guarantor)

    logger.info('Property %s created (%s)', prop.id, prop.status)
    return prop


@transaction.atomic
def update_property(prop, data, tenant=None, guarantor=None, today=None):
    """
    Apply a property patch and keep its children in step with the status:
    Ocupado upserts the tenant (and guarantor when given), Disponible
    removes both and clears the payment fields.
    """
    was_occupied = prop.is_occupied
    previous_day = prop.payment_day
    for field in PROPERTY_FIELDS:
        if field in data:
            setattr(prop, field, data[field])

    if prop.is_occupied:
        if not was_occupied or prop.payment_day != previous_day or not prop.payment_status:
            _start_payment_cycle(prop, today)
        prop.save()
        if tenant:
            _upsert_child(Tenant, prop, tenant)
        if guarantor:
            _upsert_child(Guarantor, prop, guarantor)
    else:
        prop.clear_payment_fields()
        prop.save()
        removed, _ = Tenant.objects.filter(property=prop).delete()
        Guarantor.objects.filter(property=prop).delete()
        if removed:
            logger.info('Property %s available, tenant removed', prop.id)

    return prop


def delete_property(prop):
    """Delete a property with its tenant, guarantor, documents and stored files."""
    documents = list(Document.objects.filter(property=prop))
    prop_id = prop.id
    with transaction.atomic():
        Document.objects.filter(property=prop).delete()
        Tenant.objects.filter(property=prop).delete()
        Guarantor.objects.filter(property=prop).delete()
        prop.delete()
    for document in documents:
        delete_document_file(document)
    logger.info('Property %s deleted with %d documents', prop_id, len(documents))


def delete_document(document):
    document_id = document.id
    document.delete()
    delete_document_file(document)
    logger.info('Document %s deleted from property %s', document_id, document.property_id)


# ═══════════════════════════════════════════════════════════
#  PAYMENT STATUS
# ═══════════════════════════════════════════════════════════

def update_payment_status(prop, payment_status, next_payment_date=None):
    """Direct status patch; only Ocupado properties carry payment fields."""
    if not prop.is_occupied:
        raise PaymentCycleError()
    prop.payment_status = payment_status
    if next_payment_date:
        prop.next_payment_date = next_payment_date
    prop.save(update_fields=['payment_status', 'next_payment_date', 'updated_at'])
    return prop


def mark_paid(prop, today=None):
    """Pagado, with the due date moved to next month's payment day."""
    if not prop.is_occupied or not prop.payment_day:
        raise PaymentCycleError()
    next_date = advance_after_payment(prop.payment_day, today)
    logger.info('Property %s paid, next payment %s', prop.id, next_date)
    return update_payment_status(prop, Property.PAYMENT_PAID, next_date)


def cancel_payment(prop):
    """Back to Pendiente, keeping the stored due date."""
    if not prop.is_occupied:
        raise PaymentCycleError()
    return update_payment_status(prop, Property.PAYMENT_PENDING, prop.next_payment_date)
