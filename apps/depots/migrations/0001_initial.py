import apps.depots.models
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('market', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Depot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=100)),
                ('cash', models.DecimalField(decimal_places=2, max_digits=20)),
                ('cash_start', models.DecimalField(decimal_places=2, default=apps.depots.models.default_cash_start, max_digits=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('members', models.ManyToManyField(related_name='depots', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'depots',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Budget',
            fields=[
                ('depot', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='budget', serialize=False, to='depots.depot')),
                ('monthly_budget', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=20)),
                ('last_changed', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'savings_plans_budget',
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('buy', 'Buy'), ('sell', 'Sell'), ('reward', 'Reward'), ('cash_adjustment', 'Cash Adjustment'), ('reversal', 'Reversal')], max_length=20)),
                ('quantity', models.DecimalField(decimal_places=8, default=Decimal('0'), max_digits=24)),
                ('unit_price', models.DecimalField(decimal_places=6, default=Decimal('0'), max_digits=20)),
                ('cash_delta', models.DecimalField(decimal_places=2, max_digits=20)),
                ('is_override', models.BooleanField(default=False)),
                ('occurrence_key', models.CharField(blank=True, max_length=100, null=True, unique=True)),
                ('timestamp', models.DateTimeField()),
                ('asset', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='market.asset')),
                ('created_by', models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('depot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='depots.depot')),
                ('reverses', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='reversed_by', to='depots.transaction')),
            ],
            options={
                'db_table': 'transactions',
                'ordering': ['timestamp', 'id'],
                'indexes': [
                    models.Index(fields=['depot', 'timestamp', 'id'], name='transactions_depot_ts_idx'),
                    models.Index(fields=['depot', 'asset'], name='transactions_depot_asset_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Position',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=8, default=Decimal('0'), max_digits=24)),
                ('cost_basis', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=20)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='positions', to='market.asset')),
                ('depot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='positions', to='depots.depot')),
            ],
            options={
                'db_table': 'positions',
                'ordering': ['depot', 'asset'],
                'indexes': [models.Index(fields=['depot', 'asset'], name='positions_depot_asset_idx')],
                'unique_together': {('depot', 'asset')},
            },
        ),
    ]
