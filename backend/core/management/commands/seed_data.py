"""
Rentas — Seed Demo Data
Creates a handful of demo properties with tenants and a guarantor.
Usage: python manage.py seed_data
"""
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import Property
from core import repository


class Command(BaseCommand):
    help = 'Seed database with Rentas demo data'

    def handle(self, *args, **options):
        self.stdout.write('🌱 Seeding Rentas demo data...\n')
        today = timezone.localdate()

        properties_data = [
            {
                'property': {
                    'name': 'Apartamento Centro', 'address': 'Calle El Conde #45, Zona Colonial',
                    'rooms': 2, 'monthly_rent': 35000, 'currency': Property.CURRENCY_DOP,
                    'status': Property.STATUS_OCCUPIED, 'payment_day': 5,
                },
                'tenant': {
                    'name': 'Juan Pérez', 'phone': '809-555-1234', 'email': 'juan@email.com',
                    'contract_start': today - timedelta(days=300),
                    'contract_end': today + timedelta(days=60),
                },
                'guarantor': {
                    'name': 'María López', 'phone': '829-555-9876', 'email': 'maria@email.com',
                },
            },
            {
                'property': {
                    'name': 'Casa Piantini', 'address': 'Av. Gustavo Mejía Ricart #102',
                    'rooms': 4, 'monthly_rent': 1200, 'currency': Property.CURRENCY_USD,
                    'status': Property.STATUS_OCCUPIED, 'payment_day': 28,
                },
                'tenant': {
                    'name': 'Ana García', 'phone': '849-555-4567', 'email': 'ana@email.com',
                    'contract_start': today - timedelta(days=30),
                    'contract_end': today + timedelta(days=335),
                },
            },
            {
                'property': {
                    'name': 'Estudio Naco', 'address': 'Calle Fantino Falco #12',
                    'rooms': 1, 'monthly_rent': 22000, 'currency': Property.CURRENCY_DOP,
                    'status': Property.STATUS_AVAILABLE,
                },
            },
        ]

        for entry in properties_data:
            data = entry['property']
            if Property.objects.filter(name=data['name']).exists():
                self.stdout.write(f'  · {data["name"]} already exists')
                continue
            repository.create_property(data, entry.get('tenant'), entry.get('guarantor'))
            self.stdout.write(self.style.SUCCESS(f'  ✓ {data["name"]} created'))

        self.stdout.write(self.style.SUCCESS('\n✅ Demo data seeded successfully!'))
