from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('admission_number', models.CharField(max_length=50, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(blank=True, max_length=100)),
                ('class_id', models.CharField(blank=True, max_length=20)),
                ('class_name', models.CharField(blank=True, max_length=50)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('DETAINED', 'Detained'), ('ALUMNI', 'Alumni'), ('INACTIVE', 'Inactive')], default='ACTIVE', max_length=20)),
                ('academic_year', models.CharField(blank=True, max_length=20)),
                ('promotion_status', models.CharField(blank=True, choices=[('RETAINED', 'Retained'), ('PROMOTED', 'Promoted')], max_length=20)),
                ('previous_year_status', models.CharField(blank=True, choices=[('ACTIVE', 'Active'), ('DETAINED', 'Detained'), ('ALUMNI', 'Alumni'), ('INACTIVE', 'Inactive')], max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['admission_number', 'id'],
                'indexes': [
                    models.Index(fields=['status'], name='students_st_status_5e2210_idx'),
                    models.Index(fields=['academic_year'], name='students_st_academi_cf2872_idx'),
                ],
            },
        ),
    ]
