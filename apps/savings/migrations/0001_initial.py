import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('depots', '0001_initial'),
        ('market', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SavingsPlan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('worth', models.DecimalField(decimal_places=2, max_digits=20)),
                ('frequency', models.CharField(choices=[('weekly', 'Weekly'), ('biweekly', 'Biweekly'), ('monthly', 'Monthly'), ('quarterly', 'Quarterly'), ('yearly', 'Yearly')], max_length=20)),
                ('starts_at', models.DateTimeField()),
                ('occurrence_number', models.PositiveIntegerField(default=0)),
                ('next_occurrence', models.DateTimeField(db_index=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='savings_plans', to='market.asset')),
                ('depot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='savings_plans', to='depots.depot')),
            ],
            options={
                'db_table': 'savings_plans',
                'ordering': ['id'],
                'indexes': [models.Index(fields=['depot', 'next_occurrence'], name='savings_plans_due_idx')],
            },
        ),
        migrations.CreateModel(
            name='SavingsPlanExecution',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scheduled_for', models.DateTimeField()),
                ('status', models.CharField(choices=[('executed', 'Executed'), ('skipped', 'Skipped'), ('failed', 'Failed')], max_length=20)),
                ('reason', models.TextField(blank=True)),
                ('worth', models.DecimalField(decimal_places=2, max_digits=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('asset', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='+', to='market.asset')),
                ('depot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='savings_plan_executions', to='depots.depot')),
                ('plan', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='executions', to='savings.savingsplan')),
                ('transaction', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='savings_plan_execution', to='depots.transaction')),
            ],
            options={
                'db_table': 'savings_plan_executions',
                'ordering': ['-scheduled_for', '-id'],
                'indexes': [models.Index(fields=['depot', 'status'], name='savings_exec_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('plan', 'scheduled_for'), name='uniq_savings_plan_occurrence')],
            },
        ),
    ]
