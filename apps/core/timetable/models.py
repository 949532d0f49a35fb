from django.db import models

from apps.core.utils.managers import YearManager


DAY_CHOICES = (
    ('monday', 'Monday'),
    ('tuesday', 'Tuesday'),
    ('wednesday', 'Wednesday'),
    ('thursday', 'Thursday'),
    ('friday', 'Friday'),
    ('saturday', 'Saturday'),
)


class TeachingAssignment(models.Model):
    """Subject-to-teacher staffing for one class in one academic year."""

    year_id = models.CharField(max_length=20)
    class_id = models.CharField(max_length=20)
    class_name = models.CharField(max_length=50, blank=True)
    # [{"subject": "Maths", "teacherId": "T-12", "periodsPerWeek": 6}, ...]
    assignments = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = YearManager()

    KEY_FIELDS = ('year_id', 'class_id')

    class Meta:
        ordering = ['year_id', 'class_id']
        constraints = [
            models.UniqueConstraint(
                fields=['year_id', 'class_id'],
                name='unique_teaching_assignment_per_year_class',
            ),
        ]

    @property
    def key(self):
        return f"{self.year_id}_{self.class_id}"

    def __str__(self):
        return self.key


class ClassTimetable(models.Model):
    """Weekly grid for one class section in one academic year."""

    year_id = models.CharField(max_length=20)
    class_id = models.CharField(max_length=20)
    section_id = models.CharField(max_length=20)
    # {"monday": [{"period": 1, "subject": "Maths", "teacherId": "T-12"}, ...], ...}
    slots = models.JSONField(default=dict, blank=True)
    is_published = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = YearManager()

    KEY_FIELDS = ('year_id', 'class_id', 'section_id')

    class Meta:
        ordering = ['year_id', 'class_id', 'section_id']
        constraints = [
            models.UniqueConstraint(
                fields=['year_id', 'class_id', 'section_id'],
                name='unique_timetable_per_year_class_section',
            ),
        ]

    @property
    def key(self):
        return f"{self.year_id}_{self.class_id}_{self.section_id}"

    def __str__(self):
        return self.key
