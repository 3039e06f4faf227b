import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _base_fields():
    return [
        ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='created at')),
        ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='created by')),
        ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='updated by')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='StockGroup',
            fields=_base_fields() + [
                ('name', models.CharField(max_length=150, unique=True, verbose_name='name')),
                ('synchronizable', models.BooleanField(db_index=True, default=False, help_text='Locations of this group take part in external stock sync', verbose_name='synchronizable')),
            ],
            options={
                'verbose_name': 'stock group',
                'verbose_name_plural': 'stock groups',
                'db_table': 'stock_groups',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Stock',
            fields=_base_fields() + [
                ('name', models.CharField(max_length=150, unique=True, verbose_name='name')),
                ('group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stocks', to='stock.stockgroup', verbose_name='group')),
            ],
            options={
                'verbose_name': 'stock location',
                'verbose_name_plural': 'stock locations',
                'db_table': 'stocks',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ProductStock',
            fields=_base_fields() + [
                ('quantity', models.PositiveIntegerField(default=0, verbose_name='quantity')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock_allocations', to='products.product', verbose_name='product')),
                ('stock', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='stock.stock', verbose_name='stock location')),
            ],
            options={
                'verbose_name': 'product stock',
                'verbose_name_plural': 'product stocks',
                'db_table': 'product_stocks',
                'ordering': ['stock__name'],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'stock'), name='unique_product_stock_location'),
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='product_stock_quantity_non_negative'),
                ],
            },
        ),
    ]
