"""
Rentas — Tests
Payment rules, repository cascades, document storage and the REST API.
"""
import shutil
import tempfile
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import ANY, patch

from django.core.cache import cache
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from core import repository
from core.currency import convert_currency, format_currency
from core.exceptions import PaymentCycleError, StorageLocationError
from core.models import Property, Tenant, Guarantor, Document
from core.payments import (
    compute_initial_due_date, advance_after_payment, payment_badge,
    contract_expiration, months_remaining,
)
from core.serializers import format_phone
from core.storage import parse_storage_url, upload_document

TODAY = date(2024, 6, 20)


def _last_day(year, month):
    nxt = date(year + month // 12, month % 12 + 1, 1)
    return (nxt - timedelta(days=1)).day


class BaseTestCase(TestCase):
    """Shared demo data: one available and one occupied property."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.today = timezone.localdate()

        self.available = repository.create_property({
            'name': 'Estudio Naco',
            'address': 'Calle Fantino Falco #12',
            'rooms': 1,
            'monthly_rent': Decimal('22000.00'),
            'status': Property.STATUS_AVAILABLE,
        })
        self.occupied = repository.create_property(
            {
                'name': 'Apartamento Centro',
                'address': 'Calle El Conde #45',
                'rooms': 2,
                'monthly_rent': Decimal('35000.00'),
                'status': Property.STATUS_OCCUPIED,
                'payment_day': 15,
            },
            tenant={'name': 'Juan Pérez', 'phone': '809-555-1234',
                    'contract_end': self.today + timedelta(days=40)},
            guarantor={'name': 'María López'},
        )

    def use_temp_media(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        settings_override = override_settings(MEDIA_ROOT=media_root)
        settings_override.enable()
        self.addCleanup(settings_override.disable)
        return media_root


# ═══════════════════════════════════════════════════════════
#  PAYMENT CYCLE
# ═══════════════════════════════════════════════════════════

class PaymentCycleTests(TestCase):

    def test_initial_due_date_next_month_when_day_passed(self):
        self.assertEqual(compute_initial_due_date(15, TODAY), date(2024, 7, 15))

    def test_initial_due_date_this_month_when_day_ahead(self):
        self.assertEqual(compute_initial_due_date(25, TODAY), date(2024, 6, 25))

    def test_initial_due_date_same_day_moves_forward(self):
        self.assertEqual(compute_initial_due_date(20, TODAY), date(2024, 7, 20))

    def test_day_31_clamps_to_short_month(self):
        self.assertEqual(compute_initial_due_date(31, date(2024, 2, 10)), date(2024, 2, 29))
        self.assertEqual(compute_initial_due_date(31, date(2024, 4, 5)), date(2024, 4, 30))

    def test_clamped_date_keeps_anchor_day(self):
        # 28-Feb is already today, so the next occurrence is 31-Mar
        self.assertEqual(compute_initial_due_date(31, date(2023, 2, 28)), date(2023, 3, 31))
        self.assertEqual(advance_after_payment(31, date(2024, 1, 31)), date(2024, 3, 31))

    def test_advance_after_payment(self):
        self.assertEqual(advance_after_payment(15, TODAY), date(2024, 8, 15))
        self.assertEqual(advance_after_payment(25, TODAY), date(2024, 7, 25))

    def test_year_rollover(self):
        self.assertEqual(compute_initial_due_date(10, date(2024, 12, 15)), date(2025, 1, 10))
        self.assertEqual(advance_after_payment(10, date(2024, 12, 15)), date(2025, 2, 10))

    def test_invalid_payment_day(self):
        with self.assertRaises(ValueError):
            compute_initial_due_date(0, TODAY)
        with self.assertRaises(ValueError):
            compute_initial_due_date(32, TODAY)

    def test_every_day_of_month(self):
        for today in [date(2024, 1, 31), date(2024, 2, 29), date(2023, 2, 28),
                      date(2024, 6, 20), date(2024, 12, 31)]:
            for day in range(1, 32):
                due = compute_initial_due_date(day, today)
                advanced = advance_after_payment(day, today)
                self.assertGreater(due, today)
                self.assertEqual(due.day, min(day, _last_day(due.year, due.month)))
                months_apart = (advanced.year * 12 + advanced.month) - (due.year * 12 + due.month)
                self.assertEqual(months_apart, 1)
                self.assertEqual(advanced.day,
                                 min(day, _last_day(advanced.year, advanced.month)))


# ═══════════════════════════════════════════════════════════
#  STATUS BADGE / CONTRACT FLAG
# ═══════════════════════════════════════════════════════════

class PaymentBadgeTests(TestCase):

    def test_explicit_overdue_wins_over_future_date(self):
        badge = payment_badge('Atrasado', TODAY + timedelta(days=20), TODAY)
        self.assertEqual(badge.label, 'Atrasado')
        self.assertEqual(badge.css_class, 'destructive')

    def test_paid(self):
        badge = payment_badge('Pagado', TODAY - timedelta(days=3), TODAY)
        self.assertEqual(badge.label, 'Pagado')
        self.assertEqual(badge.css_class, 'success')

    def test_pending_past_due_is_overdue(self):
        badge = payment_badge('Pendiente', TODAY - timedelta(days=1), TODAY)
        self.assertEqual(badge.label, 'Atrasado')
        self.assertEqual(badge.css_class, 'destructive')

    def test_null_status_past_due_is_overdue(self):
        self.assertEqual(payment_badge(None, TODAY - timedelta(days=10), TODAY).label, 'Atrasado')

    def test_one_day_singular_and_urgent(self):
        badge = payment_badge('Pendiente', TODAY + timedelta(days=1), TODAY)
        self.assertEqual(badge.label, 'Vence en 1 día')
        self.assertTrue(badge.urgent)
        self.assertEqual(badge.css_class, 'urgent-payment')

    def test_five_days_is_still_urgent(self):
        badge = payment_badge(None, TODAY + timedelta(days=5), TODAY)
        self.assertEqual(badge.label, 'Vence en 5 días')
        self.assertTrue(badge.urgent)

    def test_six_days_is_not_urgent(self):
        badge = payment_badge('Pendiente', TODAY + timedelta(days=6), TODAY)
        self.assertEqual(badge.label, 'Vence en 6 días')
        self.assertFalse(badge.urgent)
        self.assertEqual(badge.css_class, 'warning')

    def test_no_date_is_pending(self):
        badge = payment_badge(None, None, TODAY)
        self.assertEqual((badge.label, badge.css_class), ('Pendiente', 'warning'))

    def test_due_today_is_pending(self):
        self.assertEqual(payment_badge('Pendiente', TODAY, TODAY).label, 'Pendiente')

    def test_idempotent(self):
        args = ('Pendiente', TODAY + timedelta(days=3), TODAY)
        self.assertEqual(payment_badge(*args), payment_badge(*args))


class ContractExpirationTests(TestCase):

    def test_no_contract_end(self):
        self.assertIsNone(contract_expiration(None, TODAY))

    def test_within_three_months(self):
        flag = contract_expiration(date(2024, 9, 20), TODAY)
        self.assertEqual(flag.label, 'vence en 3 meses')
        self.assertEqual(flag.months_remaining, 3)
        self.assertFalse(flag.expired)

    def test_partial_fourth_month_still_flagged(self):
        self.assertEqual(contract_expiration(date(2024, 10, 19), TODAY).months_remaining, 3)

    def test_singular_month(self):
        self.assertEqual(contract_expiration(date(2024, 7, 25), TODAY).label, 'vence en 1 mes')

    def test_less_than_a_month(self):
        self.assertEqual(contract_expiration(date(2024, 6, 25), TODAY).months_remaining, 0)

    def test_beyond_window(self):
        self.assertIsNone(contract_expiration(date(2024, 10, 20), TODAY))
        self.assertIsNone(contract_expiration(date(2025, 6, 20), TODAY))

    def test_expired_not_flagged_by_default(self):
        self.assertIsNone(contract_expiration(date(2024, 6, 19), TODAY))

    def test_expired_flag_when_enabled(self):
        flag = contract_expiration(date(2024, 5, 1), TODAY, include_expired=True)
        self.assertEqual(flag.label, 'vencido')
        self.assertTrue(flag.expired)

    @override_settings(CONTRACT_EXPIRATION_FLAG_EXPIRED=True)
    def test_expired_flag_from_settings(self):
        self.assertTrue(contract_expiration(date(2024, 6, 1), TODAY).expired)

    def test_months_remaining(self):
        self.assertEqual(months_remaining(date(2025, 8, 21), TODAY), 14)
        self.assertEqual(months_remaining(date(2024, 4, 20), TODAY), -2)


# ═══════════════════════════════════════════════════════════
#  CURRENCY / FORMATTING
# ═══════════════════════════════════════════════════════════

class CurrencyTests(TestCase):

    def test_convert(self):
        self.assertEqual(convert_currency(100, 'USD', 'RD$'), Decimal('5600'))
        self.assertEqual(convert_currency(5600, 'RD$', 'USD'), Decimal('100'))
        self.assertEqual(convert_currency(250, 'USD', 'USD'), Decimal('250'))

    @override_settings(EXCHANGE_RATE='60')
    def test_rate_from_settings(self):
        self.assertEqual(convert_currency(2, 'USD', 'RD$'), Decimal('120'))

    def test_format(self):
        self.assertEqual(format_currency(Decimal('1234.5'), 'USD'), 'USD $1,234.50')
        self.assertEqual(format_currency(45000, 'RD$'), 'RD$ 45,000.00')


class PhoneFormatTests(TestCase):

    def test_format_phone(self):
        self.assertEqual(format_phone('8095551234'), '809-555-1234')
        self.assertEqual(format_phone('(809) 555'), '809-555')
        self.assertEqual(format_phone('80'), '80')
        self.assertEqual(format_phone('809555123499'), '809-555-1234')
        self.assertIsNone(format_phone(''))


# ═══════════════════════════════════════════════════════════
#  REPOSITORY
# ═══════════════════════════════════════════════════════════

class RepositoryTests(BaseTestCase):

    def test_create_available_clears_payment_fields(self):
        prop = repository.create_property(
            {'name': 'Local', 'address': 'Av. Churchill', 'status': 'Disponible',
             'payment_day': 10, 'monthly_rent': Decimal('1000')},
            tenant={'name': 'Nadie'},
            today=TODAY,
        )
        self.assertIsNone(prop.payment_day)
        self.assertIsNone(prop.next_payment_date)
        self.assertIsNone(prop.payment_status)
        self.assertFalse(Tenant.objects.filter(property=prop).exists())

    def test_create_occupied_starts_cycle(self):
        prop = repository.create_property(
            {'name': 'Casa', 'address': 'Calle 1', 'status': 'Ocupado', 'payment_day': 15,
             'monthly_rent': Decimal('30000')},
            tenant={'name': 'Pedro Sánchez'},
            today=TODAY,
        )
        self.assertEqual(prop.next_payment_date, date(2024, 7, 15))
        self.assertEqual(prop.payment_status, 'Pendiente')
        self.assertEqual(prop.tenant.name, 'Pedro Sánchez')

    def test_mark_paid_advances_one_month(self):
        prop = repository.create_property(
            {'name': 'Casa', 'address': 'Calle 1', 'status': 'Ocupado', 'payment_day': 15},
            tenant={'name': 'Pedro Sánchez'},
            today=TODAY,
        )
        repository.mark_paid(prop, today=TODAY)
        prop.refresh_from_db()
        self.assertEqual(prop.payment_status, 'Pagado')
        self.assertEqual(prop.next_payment_date, date(2024, 8, 15))

    def test_mark_paid_requires_occupied(self):
        with self.assertRaises(PaymentCycleError):
            repository.mark_paid(self.available)

    def test_cancel_payment_keeps_due_date(self):
        repository.mark_paid(self.occupied)
        due = self.occupied.next_payment_date
        repository.cancel_payment(self.occupied)
        self.occupied.refresh_from_db()
        self.assertEqual(self.occupied.payment_status, 'Pendiente')
        self.assertEqual(self.occupied.next_payment_date, due)

    def test_update_payment_status_without_date(self):
        due = self.occupied.next_payment_date
        repository.update_payment_status(self.occupied, 'Atrasado')
        self.occupied.refresh_from_db()
        self.assertEqual(self.occupied.payment_status, 'Atrasado')
        self.assertEqual(self.occupied.next_payment_date, due)

    def test_update_payment_status_requires_occupied(self):
        with self.assertRaises(PaymentCycleError):
            repository.update_payment_status(self.available, 'Pagado', date(2024, 7, 15))
        self.available.refresh_from_db()
        self.assertIsNone(self.available.payment_status)
        self.assertIsNone(self.available.next_payment_date)

    def test_to_available_removes_tenant_and_guarantor(self):
        repository.update_property(self.occupied, {'status': 'Disponible'})
        self.occupied.refresh_from_db()
        self.assertFalse(Tenant.objects.filter(property=self.occupied).exists())
        self.assertFalse(Guarantor.objects.filter(property=self.occupied).exists())
        self.assertIsNone(self.occupied.payment_day)
        self.assertIsNone(self.occupied.next_payment_date)
        self.assertIsNone(self.occupied.payment_status)

    def test_update_upserts_existing_tenant(self):
        repository.update_property(self.occupied, {'status': 'Ocupado'},
                                   tenant={'name': 'Juan Pérez Hijo'})
        tenants = Tenant.objects.filter(property=self.occupied)
        self.assertEqual(tenants.count(), 1)
        self.assertEqual(tenants.get().name, 'Juan Pérez Hijo')

    def test_update_to_occupied_inserts_tenant(self):
        repository.update_property(
            self.available, {'status': 'Ocupado', 'payment_day': 15},
            tenant={'name': 'Ana García'}, guarantor={'name': 'Luis García'}, today=TODAY,
        )
        self.available.refresh_from_db()
        self.assertEqual(self.available.tenant.name, 'Ana García')
        self.assertEqual(self.available.guarantor.name, 'Luis García')
        self.assertEqual(self.available.next_payment_date, date(2024, 7, 15))
        self.assertEqual(self.available.payment_status, 'Pendiente')

    def test_update_keeps_paid_state_when_day_unchanged(self):
        repository.mark_paid(self.occupied)
        due = self.occupied.next_payment_date
        repository.update_property(self.occupied, {'name': 'Apartamento Centro II'})
        self.occupied.refresh_from_db()
        self.assertEqual(self.occupied.payment_status, 'Pagado')
        self.assertEqual(self.occupied.next_payment_date, due)

    def test_update_payment_day_restarts_cycle(self):
        repository.mark_paid(self.occupied)
        repository.update_property(self.occupied, {'payment_day': 25}, today=TODAY)
        self.occupied.refresh_from_db()
        self.assertEqual(self.occupied.payment_status, 'Pendiente')
        self.assertEqual(self.occupied.next_payment_date, date(2024, 6, 25))

    def test_delete_cascades_children(self):
        Document.objects.create(property=self.occupied, type='CEDULA',
                                file_url='https://example.com/no-storage.pdf')
        repository.delete_property(self.occupied)
        self.assertFalse(Property.objects.filter(name='Apartamento Centro').exists())
        self.assertEqual(Tenant.objects.count(), 0)
        self.assertEqual(Guarantor.objects.count(), 0)
        self.assertEqual(Document.objects.count(), 0)

    def test_failed_tenant_insert_rolls_back_property(self):
        before = Property.objects.count()
        with self.assertRaises(TypeError):
            repository.create_property(
                {'name': 'Roto', 'address': 'X', 'status': 'Ocupado', 'payment_day': 1},
                tenant={'name': 'Alguien', 'unknown_field': 1},
            )
        self.assertEqual(Property.objects.count(), before)

    def test_search(self):
        names = [p.name for p in repository.list_properties('centro')]
        self.assertEqual(names, ['Apartamento Centro'])
        self.assertEqual(len(repository.list_properties('juan')), 1)
        self.assertEqual(len(repository.list_properties('FANTINO')), 1)
        self.assertEqual(len(repository.list_properties('')), 2)

    def test_listing_cache_dropped_on_write(self):
        repository.list_properties()
        self.assertIsNotNone(cache.get(repository.PROPERTIES_CACHE_KEY))
        Tenant.objects.filter(property=self.occupied).update(name='Otro')
        # bulk update bypasses signals; cached listing stays as it was
        self.assertEqual(repository.list_properties('juan')[0].tenant.name, 'Juan Pérez')
        tenant = self.occupied.tenant
        tenant.name = 'Otro Nombre'
        tenant.save()
        self.assertIsNone(cache.get(repository.PROPERTIES_CACHE_KEY))
        self.assertEqual(len(repository.list_properties('otro nombre')), 1)

    def test_listing_refilled_before_commit_is_dropped(self):
        repository.list_properties()
        tenant = self.occupied.tenant
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            tenant.name = 'Pedro Gómez'
            tenant.save()
            repository.list_properties()
            self.assertIsNotNone(cache.get(repository.PROPERTIES_CACHE_KEY))
        self.assertTrue(callbacks)
        self.assertIsNone(cache.get(repository.PROPERTIES_CACHE_KEY))

    @override_settings(PROPERTIES_CACHE_TIMEOUT=60)
    def test_listing_cached_with_finite_timeout(self):
        with patch('core.repository.cache') as listing_cache:
            listing_cache.get.return_value = None
            repository.list_properties()
        listing_cache.set.assert_called_once_with(
            repository.PROPERTIES_CACHE_KEY, ANY, timeout=60,
        )


# ═══════════════════════════════════════════════════════════
#  PROPERTY API
# ═══════════════════════════════════════════════════════════

class PropertyApiTests(BaseTestCase):

    def test_list_properties(self):
        resp = self.client.get('/api/properties/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data), 2)
        occupied = next(p for p in resp.data if p['status'] == 'Ocupado')
        self.assertEqual(occupied['tenant']['name'], 'Juan Pérez')
        self.assertEqual(occupied['guarantor']['name'], 'María López')
        self.assertEqual(occupied['monthly_rent_display'], 'RD$ 35,000.00')
        self.assertEqual(occupied['tenant']['contract_flag']['months_remaining'], 1)

    def test_search_by_tenant_name(self):
        resp = self.client.get('/api/properties/', {'search': 'pérez'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([p['name'] for p in resp.data], ['Apartamento Centro'])

    def test_create_available_property(self):
        resp = self.client.post('/api/properties/', {
            'name': 'Local Comercial',
            'address': 'Av. 27 de Febrero #200',
            'rooms': 1,
            'monthly_rent': '50000.00',
            'status': 'Disponible',
            'payment_day': 5,
        }, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertIsNone(resp.data['tenant'])
        self.assertIsNone(resp.data['guarantor'])
        self.assertIsNone(resp.data['payment_day'])
        self.assertIsNone(resp.data['next_payment_date'])
        self.assertIsNone(resp.data['payment_status'])
        self.assertIsNone(resp.data['payment_badge'])

    def test_create_occupied_property(self):
        resp = self.client.post('/api/properties/', {
            'name': 'Casa Piantini',
            'address': 'Av. Gustavo Mejía Ricart #102',
            'rooms': 4,
            'monthly_rent': '1200.00',
            'currency': 'USD',
            'status': 'Ocupado',
            'payment_day': 15,
            'tenant': {
                'name': 'Ana García',
                'phone': '8495554567',
                'email': 'ana@email.com',
                'contract_start': '2024-01-01',
                'contract_end': '2025-01-01',
            },
            'guarantor': {'name': 'Luis García', 'phone': '', 'email': ''},
        }, format='json')
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['payment_status'], 'Pendiente')
        self.assertEqual(resp.data['next_payment_date'],
                         compute_initial_due_date(15, self.today).isoformat())
        self.assertEqual(resp.data['tenant']['phone'], '849-555-4567')
        self.assertIsNone(resp.data['guarantor']['email'])
        self.assertEqual(resp.data['monthly_rent_display'], 'USD $1,200.00')

    def test_occupied_requires_tenant(self):
        resp = self.client.post('/api/properties/', {
            'name': 'Sin inquilino', 'address': 'Calle 2', 'monthly_rent': '100',
            'status': 'Ocupado', 'payment_day': 1,
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('tenant', resp.data)

    def test_occupied_requires_payment_day(self):
        resp = self.client.post('/api/properties/', {
            'name': 'Sin día', 'address': 'Calle 3', 'monthly_rent': '100',
            'status': 'Ocupado', 'tenant': {'name': 'Alguien'},
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('payment_day', resp.data)

    def test_occupying_requires_tenant_name(self):
        resp = self.client.patch(f'/api/properties/{self.available.id}/', {
            'status': 'Ocupado', 'payment_day': 10, 'tenant': {'phone': '8095551234'},
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('tenant', resp.data)
        self.assertFalse(Tenant.objects.filter(property_id=self.available.id).exists())
        self.available.refresh_from_db()
        self.assertEqual(self.available.status, 'Disponible')

    def test_partial_tenant_patch_keeps_existing_name(self):
        resp = self.client.patch(f'/api/properties/{self.occupied.id}/', {
            'tenant': {'phone': '8295550000'},
        }, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['tenant']['name'], 'Juan Pérez')
        self.assertEqual(resp.data['tenant']['phone'], '829-555-0000')

    def test_missing_name_rejected(self):
        resp = self.client.post('/api/properties/', {
            'address': 'Calle 4', 'monthly_rent': '100', 'status': 'Disponible',
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(Property.objects.count(), 2)

    def test_invalid_tenant_email_rejected(self):
        resp = self.client.patch(f'/api/properties/{self.occupied.id}/', {
            'tenant': {'name': 'Juan Pérez', 'email': 'no-es-email'},
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_contract_end_before_start_rejected(self):
        resp = self.client.patch(f'/api/properties/{self.occupied.id}/', {
            'tenant': {'name': 'Juan', 'contract_start': '2024-05-01', 'contract_end': '2024-01-01'},
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_retrieve_includes_latest_documents(self):
        older = Document.objects.create(property=self.occupied, type='CEDULA', file_url='u1',
                                        file_name='vieja.pdf')
        Document.objects.filter(pk=older.pk).update(
            created_at=timezone.now() - timedelta(days=1),
        )
        newest = Document.objects.create(property=self.occupied, type='CEDULA', file_url='u2',
                                         file_name='nueva.pdf')
        Document.objects.create(property=self.occupied, type='CEDULA', file_url='u3',
                                file_name='garante.pdf', document_owner='guarantor')
        resp = self.client.get(f'/api/properties/{self.occupied.id}/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data['documents']), 3)
        self.assertEqual(len(resp.data['latest_documents']), 2)
        tenant_doc = next(d for d in resp.data['latest_documents']
                          if d['document_owner'] == 'tenant')
        self.assertEqual(tenant_doc['id'], str(newest.id))

    def test_overdue_pending_shows_overdue_badge(self):
        Property.objects.filter(pk=self.occupied.pk).update(
            next_payment_date=self.today - timedelta(days=1),
            payment_status='Pendiente',
        )
        cache.clear()
        resp = self.client.get(f'/api/properties/{self.occupied.id}/')
        self.assertEqual(resp.data['payment_badge']['label'], 'Atrasado')
        self.assertEqual(resp.data['payment_badge']['css_class'], 'destructive')
        listed = self.client.get('/api/properties/?search=centro').data[0]
        self.assertEqual(listed['payment_badge'], resp.data['payment_badge'])

    def test_change_to_available_removes_tenant(self):
        resp = self.client.patch(f'/api/properties/{self.occupied.id}/',
                                 {'status': 'Disponible'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertIsNone(resp.data['tenant'])
        self.assertIsNone(resp.data['next_payment_date'])
        self.assertIsNone(resp.data['payment_status'])
        self.assertFalse(Tenant.objects.filter(property_id=self.occupied.id).exists())

    def test_mark_paid(self):
        resp = self.client.post(f'/api/properties/{self.occupied.id}/mark-paid/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['payment_status'], 'Pagado')
        self.assertEqual(resp.data['next_payment_date'],
                         advance_after_payment(15, self.today).isoformat())
        self.assertEqual(resp.data['payment_badge']['label'], 'Pagado')

    def test_mark_paid_on_available_rejected(self):
        resp = self.client.post(f'/api/properties/{self.available.id}/mark-paid/')
        self.assertEqual(resp.status_code, 400)

    def test_cancel_payment(self):
        self.client.post(f'/api/properties/{self.occupied.id}/mark-paid/')
        due = Property.objects.get(pk=self.occupied.pk).next_payment_date
        resp = self.client.post(f'/api/properties/{self.occupied.id}/cancel-payment/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['payment_status'], 'Pendiente')
        self.assertEqual(resp.data['next_payment_date'], due.isoformat())

    def test_set_payment_status(self):
        resp = self.client.patch(f'/api/properties/{self.occupied.id}/payment-status/',
                                 {'payment_status': 'Atrasado'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['payment_badge']['label'], 'Atrasado')

    def test_invalid_payment_status(self):
        resp = self.client.patch(f'/api/properties/{self.occupied.id}/payment-status/',
                                 {'payment_status': 'Perdido'}, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_payment_status_rejected_for_available(self):
        resp = self.client.patch(f'/api/properties/{self.available.id}/payment-status/', {
            'payment_status': 'Pagado', 'next_payment_date': '2024-07-15',
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.available.refresh_from_db()
        self.assertIsNone(self.available.payment_status)
        self.assertIsNone(self.available.next_payment_date)

    def test_delete_property(self):
        resp = self.client.delete(f'/api/properties/{self.occupied.id}/')
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(Tenant.objects.count(), 0)
        self.assertEqual(Guarantor.objects.count(), 0)
        self.assertEqual(len(self.client.get('/api/properties/').data), 1)

    def test_store_error_reported_and_rolled_back(self):
        with patch.object(Tenant.objects, 'create',
                          side_effect=DatabaseError('conexión perdida')):
            resp = self.client.post('/api/properties/', {
                'name': 'Casa Nueva', 'address': 'Calle 9', 'monthly_rent': '100',
                'status': 'Ocupado', 'payment_day': 3, 'tenant': {'name': 'Alguien'},
            }, format='json')
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.data['detail'], 'Error al crear la propiedad: conexión perdida')
        self.assertFalse(Property.objects.filter(name='Casa Nueva').exists())


# ═══════════════════════════════════════════════════════════
#  DOCUMENTS
# ═══════════════════════════════════════════════════════════

class StorageUrlTests(TestCase):

    def test_parse_public_url(self):
        bucket, path = parse_storage_url(
            'https://abc.example.co/storage/v1/object/public/documents/p1/CEDULA_1_mi%20cedula.pdf'
        )
        self.assertEqual(bucket, 'documents')
        self.assertEqual(path, 'p1/CEDULA_1_mi cedula.pdf')

    def test_foreign_url_rejected(self):
        with self.assertRaises(StorageLocationError):
            parse_storage_url('https://example.com/files/cedula.pdf')

    def test_url_without_path_rejected(self):
        with self.assertRaises(StorageLocationError):
            parse_storage_url('https://abc.example.co/storage/v1/object/public/documents')

    def test_garbage_rejected(self):
        with self.assertRaises(StorageLocationError):
            parse_storage_url('no es una url')

    def test_non_public_url_rejected(self):
        for url in ['https://abc.example.co/storage/v1/object/sign/documents/p1/x.pdf',
                    'https://abc.example.co/storage/v1/object/x/documents/p1/x.pdf']:
            with self.assertRaises(StorageLocationError):
                parse_storage_url(url)


class DocumentTests(BaseTestCase):

    def setUp(self):
        super().setUp()
        self.use_temp_media()

    def upload(self, name='cedula.pdf', content=b'%PDF-1.4 cedula', owner='tenant'):
        return self.client.post(
            f'/api/properties/{self.occupied.id}/documents/',
            {
                'file': SimpleUploadedFile(name, content, content_type='application/pdf'),
                'type': 'CEDULA',
                'document_owner': owner,
            },
            format='multipart',
        )

    def test_upload_document(self):
        resp = self.upload()
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(resp.data['file_url'].startswith(
            f'http://localhost:8000/storage/v1/object/public/documents/{self.occupied.id}/CEDULA_'
        ))
        self.assertEqual(resp.data['file_name'], 'cedula.pdf')
        self.assertEqual(resp.data['type_label'], 'Cédula')
        self.assertEqual(Document.objects.filter(property=self.occupied).count(), 1)

    def test_list_documents(self):
        self.upload()
        self.upload(owner='guarantor')
        resp = self.client.get(f'/api/properties/{self.occupied.id}/documents/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data), 2)
        filtered = self.client.get('/api/documents/', {'document_owner': 'guarantor'})
        self.assertEqual(len(filtered.data), 1)

    def test_invalid_type_rejected(self):
        resp = self.client.post(
            f'/api/properties/{self.occupied.id}/documents/',
            {'file': SimpleUploadedFile('x.pdf', b'x'), 'type': 'PASAPORTE'},
            format='multipart',
        )
        self.assertEqual(resp.status_code, 400)

    def test_download_document(self):
        doc_id = self.upload(content=b'contenido del archivo').data['id']
        resp = self.client.get(f'/api/documents/{doc_id}/download/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(b''.join(resp.streaming_content), b'contenido del archivo')
        self.assertIn('attachment', resp['Content-Disposition'])
        self.assertIn('cedula.pdf', resp['Content-Disposition'])

    def test_download_malformed_url(self):
        doc = Document.objects.create(property=self.occupied, type='OTROS',
                                      file_url='https://example.com/files/x.pdf')
        resp = self.client.get(f'/api/documents/{doc.id}/download/')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data['detail'], 'No se pudo determinar la ubicación del archivo')

    def test_download_missing_file(self):
        doc = Document.objects.create(
            property=self.occupied, type='OTROS',
            file_url='http://localhost:8000/storage/v1/object/public/documents/nada/x.pdf',
        )
        resp = self.client.get(f'/api/documents/{doc.id}/download/')
        self.assertEqual(resp.status_code, 404)

    def test_delete_document_removes_file(self):
        data = self.upload().data
        _, path = parse_storage_url(data['file_url'])
        key = f'documents/{path}'
        self.assertTrue(default_storage.exists(key))
        resp = self.client.delete(
            f'/api/properties/{self.occupied.id}/documents/{data["id"]}/'
        )
        self.assertEqual(resp.status_code, 204)
        self.assertFalse(default_storage.exists(key))
        self.assertFalse(Document.objects.filter(id=data['id']).exists())

    def test_delete_document_logged(self):
        document_id = self.upload().data['id']
        document = Document.objects.get(id=document_id)
        with self.assertLogs('core.repository', level='INFO') as logs:
            repository.delete_document(document)
        self.assertIn(str(document_id), logs.output[0])
        self.assertIn(str(self.occupied.id), logs.output[0])

    def test_delete_property_removes_files(self):
        data = self.upload().data
        _, path = parse_storage_url(data['file_url'])
        self.client.delete(f'/api/properties/{self.occupied.id}/')
        self.assertFalse(default_storage.exists(f'documents/{path}'))
        self.assertEqual(Document.objects.count(), 0)

    def test_failed_metadata_insert_removes_upload(self):
        with patch.object(Document.objects, 'create',
                          side_effect=DatabaseError('tabla bloqueada')):
            resp = self.upload()
        self.assertEqual(resp.status_code, 503)
        self.assertTrue(resp.data['detail'].startswith('Error al subir el documento'))
        _, files = default_storage.listdir(f'documents/{self.occupied.id}')
        self.assertEqual(files, [])

    def test_upload_document_for_guarantor(self):
        document = upload_document(self.occupied, SimpleUploadedFile('carta.pdf', b'carta'),
                                   'CARTA_TRABAJO', 'guarantor')
        self.assertEqual(document.document_owner, 'guarantor')
        self.assertEqual(document.file_name, 'carta.pdf')


# ═══════════════════════════════════════════════════════════
#  DASHBOARD / CURRENCY API
# ═══════════════════════════════════════════════════════════

class DashboardTests(BaseTestCase):

    def setUp(self):
        super().setUp()
        self.usd = repository.create_property(
            {'name': 'Casa Piantini', 'address': 'Av. Gustavo Mejía Ricart',
             'monthly_rent': Decimal('1000.00'), 'currency': 'USD',
             'status': 'Ocupado', 'payment_day': 1},
            tenant={'name': 'Ana García', 'contract_end': self.today + timedelta(days=200)},
        )
        Property.objects.filter(pk=self.usd.pk).update(
            next_payment_date=self.today - timedelta(days=3),
        )

    def test_dashboard_data(self):
        resp = self.client.get('/api/dashboard/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['total_properties'], 3)
        self.assertEqual(resp.data['total_tenants'], 2)
        # (35,000 + 1,000 * 56) * 10 %
        self.assertEqual(resp.data['monthly_income'], '9100.00')
        self.assertEqual(resp.data['monthly_income_display'], 'RD$ 9,100.00')

    def test_expiring_contracts(self):
        resp = self.client.get('/api/dashboard/')
        self.assertEqual(resp.data['expiring_contracts'], 1)
        self.assertEqual(resp.data['expiring_contracts_list'][0]['tenant_name'], 'Juan Pérez')

    def test_recent_activity_lists_overdue_first(self):
        resp = self.client.get('/api/dashboard/')
        activity = resp.data['recent_activity']
        self.assertEqual(activity[0]['property_name'], 'Casa Piantini')
        self.assertTrue(activity[0]['is_overdue'])

    def test_paid_upcoming_not_listed(self):
        Property.objects.filter(pk=self.occupied.pk).update(
            next_payment_date=self.today + timedelta(days=2), payment_status='Pagado',
        )
        resp = self.client.get('/api/dashboard/')
        names = [a['property_name'] for a in resp.data['recent_activity']]
        self.assertNotIn('Apartamento Centro', names)

    def test_currency_convert(self):
        resp = self.client.get('/api/currency/convert/',
                               {'amount': '100', 'from': 'USD', 'to': 'RD$'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['converted'], '5600.00')
        self.assertEqual(resp.data['display'], 'RD$ 5,600.00')

    def test_currency_convert_invalid(self):
        resp = self.client.get('/api/currency/convert/', {'amount': '100', 'from': 'EUR', 'to': 'RD$'})
        self.assertEqual(resp.status_code, 400)
