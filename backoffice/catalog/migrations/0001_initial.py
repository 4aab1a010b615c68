# Generated manually

import django.core.validators
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('barcode', models.CharField(blank=True, max_length=13, null=True, validators=[django.core.validators.RegexValidator(message='Barcode must contain only digits (at most 13).', regex='^\\d{1,13}$')])),
                ('supplier', models.CharField(blank=True, max_length=255)),
                ('unit', models.CharField(default='un', max_length=20)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('quantity', models.IntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('min_quantity', models.IntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('is_archived', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'stock',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['name'], name='stock_name_idx'),
                    models.Index(fields=['barcode'], name='stock_barcode_idx'),
                    models.Index(fields=['is_archived'], name='stock_is_archived_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='stock_quantity_non_negative'),
                    models.CheckConstraint(condition=models.Q(('min_quantity__gte', 0)), name='stock_min_quantity_non_negative'),
                ],
            },
        ),
    ]
