# Generated manually

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(max_length=255)),
                ('action', models.CharField(choices=[('created', 'Product Created'), ('edited', 'Product Edited'), ('quantity_added', 'Quantity Added'), ('quantity_removed', 'Quantity Removed'), ('archived', 'Product Archived'), ('restored', 'Product Restored'), ('sale', 'Sale')], max_length=30)),
                ('details', models.TextField(blank=True)),
                ('quantity_change', models.IntegerField(default=0)),
                ('old_quantity', models.IntegerField(blank=True, null=True)),
                ('new_quantity', models.IntegerField(blank=True, null=True)),
                ('user_email', models.EmailField(blank=True, max_length=254)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='history', to='catalog.product')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_history', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'stock_history',
                'ordering': ['-created_at', '-id'],
                'verbose_name_plural': 'stock history',
                'indexes': [
                    models.Index(fields=['-created_at'], name='stock_histo_created_idx'),
                    models.Index(fields=['action'], name='stock_histo_action_idx'),
                ],
            },
        ),
    ]
