from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='TeachingAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year_id', models.CharField(max_length=20)),
                ('class_id', models.CharField(max_length=20)),
                ('class_name', models.CharField(blank=True, max_length=50)),
                ('assignments', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['year_id', 'class_id'],
                'constraints': [models.UniqueConstraint(fields=('year_id', 'class_id'), name='unique_teaching_assignment_per_year_class')],
            },
        ),
        migrations.CreateModel(
            name='ClassTimetable',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year_id', models.CharField(max_length=20)),
                ('class_id', models.CharField(max_length=20)),
                ('section_id', models.CharField(max_length=20)),
                ('slots', models.JSONField(blank=True, default=dict)),
                ('is_published', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['year_id', 'class_id', 'section_id'],
                'constraints': [models.UniqueConstraint(fields=('year_id', 'class_id', 'section_id'), name='unique_timetable_per_year_class_section')],
            },
        ),
    ]
