import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Asset',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('symbol', models.CharField(max_length=30, unique=True)),
                ('name', models.CharField(blank=True, max_length=200)),
                ('currency', models.CharField(default='EUR', max_length=10)),
                ('last_updated', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'assets',
                'ordering': ['symbol'],
            },
        ),
        migrations.CreateModel(
            name='AssetPrice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('close', models.DecimalField(decimal_places=6, max_digits=20)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='prices', to='market.asset')),
            ],
            options={
                'db_table': 'asset_prices',
                'ordering': ['asset', '-date'],
                'indexes': [models.Index(fields=['asset', 'date'], name='asset_prices_asset_date_idx')],
                'unique_together': {('asset', 'date')},
            },
        ),
    ]
