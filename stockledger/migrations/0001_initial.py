"""
Initial migration for Stockledger models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import stockledger.models.record


class Migration(migrations.Migration):
    """Create Stockledger models: StockRecord, Movement, StockTransfer."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='Product')),
                ('branch_id', models.CharField(db_index=True, max_length=64, verbose_name='Branch')),
                ('quantity', models.PositiveIntegerField(default=0, verbose_name='On hand')),
                ('reserved_quantity', models.PositiveIntegerField(default=0, help_text='Held for in-flight orders and transfers', verbose_name='Reserved')),
                ('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Cost price')),
                ('selling_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Selling price')),
                ('reorder_point', models.PositiveIntegerField(default=stockledger.models.record.default_reorder_point, verbose_name='Reorder point')),
                ('reorder_quantity', models.PositiveIntegerField(default=stockledger.models.record.default_reorder_quantity, verbose_name='Reorder quantity')),
                ('supplier_ref', models.CharField(blank=True, max_length=64, null=True, verbose_name='Supplier')),
                ('location', models.CharField(blank=True, default='', help_text='Shelf, bin or aisle', max_length=100, verbose_name='Location')),
                ('last_restocked_at', models.DateTimeField(blank=True, null=True)),
                ('last_restocked_by', models.CharField(blank=True, default='', max_length=64)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stock record',
                'verbose_name_plural': 'Stock records',
                'ordering': ['branch_id', 'product_id'],
                'indexes': [
                    models.Index(fields=['branch_id', 'quantity'], name='stock_record_branch_qty_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product_id', 'branch_id'), name='unique_stock_record_per_branch'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity__lte', models.F('quantity'))), name='stock_reserved_within_quantity'),
                    models.CheckConstraint(condition=models.Q(('cost_price__gte', 0), ('selling_price__gte', 0)), name='stock_prices_not_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64)),
                ('branch_id', models.CharField(db_index=True, max_length=64)),
                ('type', models.CharField(choices=[('initial', 'Initial stock'), ('restock', 'Restock'), ('adjustment_add', 'Adjustment (add)'), ('adjustment_remove', 'Adjustment (remove)'), ('sale', 'Sale'), ('sale_cancel', 'Sale cancelled'), ('service_use', 'Service parts'), ('transfer_out', 'Transfer out'), ('transfer_in', 'Transfer in')], max_length=20, verbose_name='Type')),
                ('quantity', models.IntegerField(help_text='Positive = in, negative = out', verbose_name='Change')),
                ('old_quantity', models.PositiveIntegerField(verbose_name='Quantity before')),
                ('new_quantity', models.PositiveIntegerField(verbose_name='Quantity after')),
                ('reference_kind', models.CharField(blank=True, choices=[('sales_order', 'Sales order'), ('service_order', 'Service order'), ('stock_transfer', 'Stock transfer')], default='', max_length=20)),
                ('reference_id', models.CharField(blank=True, default='', max_length=64)),
                ('reason', models.CharField(blank=True, default='', max_length=200)),
                ('notes', models.CharField(blank=True, default='', max_length=500)),
                ('supplier_ref', models.CharField(blank=True, max_length=64, null=True)),
                ('performed_by', models.CharField(blank=True, default='', max_length=64)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockledger.stockrecord', verbose_name='Stock record')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['created_at', 'pk'],
                'indexes': [
                    models.Index(fields=['record', 'created_at'], name='stock_move_record_time_idx'),
                    models.Index(fields=['type', 'created_at'], name='stock_move_type_time_idx'),
                    models.Index(fields=['reference_kind', 'reference_id'], name='stock_move_reference_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockTransfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('transfer_number', models.CharField(blank=True, max_length=32, null=True, unique=True, verbose_name='Transfer number')),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='Product')),
                ('from_branch_id', models.CharField(max_length=64, verbose_name='From branch')),
                ('to_branch_id', models.CharField(max_length=64, verbose_name='To branch')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in-transit', 'In transit'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('initiated_by', models.CharField(blank=True, default='', max_length=64)),
                ('approved_by', models.CharField(blank=True, default='', max_length=64)),
                ('received_by', models.CharField(blank=True, default='', max_length=64)),
                ('cancelled_by', models.CharField(blank=True, default='', max_length=64)),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('received_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('notes', models.CharField(blank=True, default='', max_length=500)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Stock transfer',
                'verbose_name_plural': 'Stock transfers',
                'ordering': ['-created_at', '-pk'],
                'indexes': [
                    models.Index(fields=['from_branch_id', 'to_branch_id'], name='stock_transfer_route_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('from_branch_id', models.F('to_branch_id')), _negated=True), name='transfer_branches_differ'),
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='transfer_quantity_positive'),
                ],
            },
        ),
    ]
