import django.db.models.deletion
from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='FeeLedger',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('academic_year', models.CharField(max_length=20)),
                ('class_id', models.CharField(blank=True, max_length=20)),
                ('class_name', models.CharField(blank=True, max_length=50)),
                ('total_fee', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('total_paid', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PARTIAL', 'Partially Paid'), ('PAID', 'Paid')], default='PENDING', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='fee_ledgers', to='students.student')),
            ],
            options={
                'ordering': ['student_id', 'academic_year'],
                'indexes': [models.Index(fields=['academic_year', 'status'], name='fees_feeled_academi_073b5a_idx')],
                'constraints': [models.UniqueConstraint(fields=('student', 'academic_year'), name='unique_fee_ledger_per_student_year')],
            },
        ),
        migrations.CreateModel(
            name='FeeLedgerItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50)),
                ('item_type', models.CharField(choices=[('TERM', 'Term'), ('TOTAL', 'Total'), ('CUSTOM', 'Custom')], default='TERM', max_length=20)),
                ('name', models.CharField(max_length=120)),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PARTIAL', 'Partially Paid'), ('PAID', 'Paid')], default='PENDING', max_length=20)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('ledger', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='fees.feeledger')),
            ],
            options={
                'ordering': ['due_date', 'id'],
                'constraints': [
                    models.UniqueConstraint(fields=('ledger', 'code'), name='unique_ledger_item_code'),
                    models.CheckConstraint(condition=models.Q(('amount__gte', 0), ('paid_amount__gte', 0)), name='ledger_item_non_negative_amounts'),
                ],
            },
        ),
    ]
