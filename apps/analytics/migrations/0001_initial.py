import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('depots', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='DepotValuePoint',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('timestamp', models.DateTimeField()),
                ('cash', models.DecimalField(decimal_places=2, max_digits=20)),
                ('market_value', models.DecimalField(decimal_places=2, max_digits=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('depot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='value_points', to='depots.depot')),
            ],
            options={
                'db_table': 'depot_values',
                'ordering': ['timestamp'],
                'indexes': [models.Index(fields=['depot', 'timestamp'], name='depot_values_depot_ts_idx')],
                'unique_together': {('depot', 'date')},
            },
        ),
    ]
