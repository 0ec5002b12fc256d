import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _base_fields():
    return [
        ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='created at')),
        ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
    ]


def _actor_fields():
    return [
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='created by')),
        ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='updated by')),
    ]


def _record_fields():
    return [
        ('medicine_name', models.CharField(max_length=255, unique=True, verbose_name='medicine name')),
        ('quantity', models.PositiveIntegerField(default=0, verbose_name='quantity')),
        ('category', models.CharField(choices=[('TDSR', 'TDSR'), ('PDSR', 'PDSR')], db_index=True, default='TDSR', max_length=8, verbose_name='category')),
        ('location', models.CharField(blank=True, default='', max_length=120, verbose_name='location')),
        ('stock_book_page_number', models.CharField(blank=True, default='', max_length=50, verbose_name='stock book page number')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='MasterInventory',
            fields=_base_fields() + _record_fields() + _actor_fields(),
            options={
                'verbose_name': 'master inventory record',
                'verbose_name_plural': 'master inventory',
                'db_table': 'master_inventory',
                'ordering': ['medicine_name'],
                'abstract': False,
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='inventory_masterinventory_quantity_gte_0'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PharmacyInventory',
            fields=_base_fields() + _record_fields() + [
                ('min_stock_level', models.PositiveIntegerField(blank=True, null=True, verbose_name='minimum stock level')),
                ('issuer', models.CharField(blank=True, default='', max_length=120, verbose_name='issuer')),
                ('receiver', models.CharField(blank=True, default='', max_length=120, verbose_name='receiver')),
            ] + _actor_fields(),
            options={
                'verbose_name': 'pharmacy inventory record',
                'verbose_name_plural': 'pharmacy inventory',
                'db_table': 'pharmacy_inventory',
                'ordering': ['medicine_name'],
                'abstract': False,
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='inventory_pharmacyinventory_quantity_gte_0'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transfer',
            fields=_base_fields() + [
                ('medicine_name', models.CharField(db_index=True, max_length=255, verbose_name='medicine name')),
                ('quantity', models.PositiveIntegerField(verbose_name='quantity')),
                ('from_inventory', models.CharField(choices=[('master', 'Master'), ('pharmacy', 'Pharmacy')], default='master', max_length=10, verbose_name='from inventory')),
                ('to_inventory', models.CharField(choices=[('master', 'Master'), ('pharmacy', 'Pharmacy')], default='pharmacy', max_length=10, verbose_name='to inventory')),
                ('issuer', models.CharField(max_length=120, verbose_name='issuer')),
                ('receiver', models.CharField(max_length=120, verbose_name='receiver')),
                ('transfer_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='transfer date')),
            ] + _actor_fields(),
            options={
                'verbose_name': 'transfer',
                'verbose_name_plural': 'transfers',
                'db_table': 'transfers',
                'ordering': ['-transfer_date'],
            },
        ),
    ]
