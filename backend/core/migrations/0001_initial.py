import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Property',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(db_index=True, max_length=300)),
                ('address', models.CharField(max_length=500)),
                ('rooms', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('monthly_rent', models.DecimalField(decimal_places=2, default=0, max_digits=12,
                                                     validators=[django.core.validators.MinValueValidator(0)])),
                ('currency', models.CharField(choices=[('RD$', 'Peso Dominicano'), ('USD', 'US Dollar')],
                                              default='RD$', max_length=3)),
                ('status', models.CharField(choices=[('Disponible', 'Disponible'), ('Ocupado', 'Ocupado')],
                                            db_index=True, default='Disponible', max_length=15)),
                ('payment_day', models.PositiveSmallIntegerField(
                    blank=True, null=True, help_text='Day of month the rent is due (1-31)',
                    validators=[django.core.validators.MinValueValidator(1),
                                django.core.validators.MaxValueValidator(31)])),
                ('next_payment_date', models.DateField(blank=True, null=True)),
                ('payment_status', models.CharField(
                    blank=True, null=True, max_length=10,
                    choices=[('Pagado', 'Pagado'), ('Pendiente', 'Pendiente'), ('Atrasado', 'Atrasado')])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'properties',
                'ordering': ['-created_at'],
                'verbose_name_plural': 'properties',
                'indexes': [models.Index(fields=['status', 'next_payment_date'],
                                         name='properties_status_due_idx')],
            },
        ),
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=300)),
                ('phone', models.CharField(blank=True, max_length=30, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('contract_start', models.DateField(blank=True, null=True)),
                ('contract_end', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('property', models.ForeignKey(blank=True, null=True,
                                               on_delete=django.db.models.deletion.SET_NULL,
                                               related_name='tenants', to='core.property')),
            ],
            options={
                'db_table': 'tenants',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Guarantor',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=300)),
                ('phone', models.CharField(blank=True, max_length=30, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('property', models.ForeignKey(blank=True, null=True,
                                               on_delete=django.db.models.deletion.SET_NULL,
                                               related_name='guarantors', to='core.property')),
            ],
            options={
                'db_table': 'guarantors',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('type', models.CharField(max_length=25, choices=[
                    ('CEDULA', 'Cédula'),
                    ('CARTA_TRABAJO', 'Carta de Trabajo'),
                    ('DATA_CREDITO', 'Data Crédito'),
                    ('MOVIMIENTOS_BANCARIOS', 'Movimientos Bancarios'),
                    ('CONTRATO', 'Contrato'),
                    ('OTROS', 'Otros'),
                ])),
                ('file_url', models.TextField()),
                ('file_name', models.CharField(blank=True, max_length=255, null=True)),
                ('document_owner', models.CharField(choices=[('tenant', 'Inquilino'), ('guarantor', 'Garante')],
                                                    default='tenant', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('property', models.ForeignKey(blank=True, null=True,
                                               on_delete=django.db.models.deletion.SET_NULL,
                                               related_name='documents', to='core.property')),
            ],
            options={
                'db_table': 'documents',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['property', 'type', 'document_owner'],
                                         name='documents_prop_type_owner_idx')],
            },
        ),
    ]
