from django.db import models

from apps.core.academics.classes import CLASS_SEQUENCE


class Student(models.Model):
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_DETAINED = 'DETAINED'
    STATUS_ALUMNI = 'ALUMNI'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_DETAINED, 'Detained'),
        (STATUS_ALUMNI, 'Alumni'),
        (STATUS_INACTIVE, 'Inactive'),
    )
    ARCHIVED_STATUSES = (STATUS_ALUMNI, STATUS_INACTIVE)

    PROMOTION_RETAINED = 'RETAINED'
    PROMOTION_PROMOTED = 'PROMOTED'
    PROMOTION_STATUS_CHOICES = (
        (PROMOTION_RETAINED, 'Retained'),
        (PROMOTION_PROMOTED, 'Promoted'),
    )

    admission_number = models.CharField(max_length=50, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True)

    # Class ids come from the class sequence; unknown ids are kept as-is.
    class_id = models.CharField(max_length=20, blank=True)
    class_name = models.CharField(max_length=50, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    academic_year = models.CharField(max_length=20, blank=True)
    promotion_status = models.CharField(max_length=20, choices=PROMOTION_STATUS_CHOICES, blank=True)
    previous_year_status = models.CharField(max_length=20, choices=STATUS_CHOICES, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['admission_number', 'id']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['academic_year']),
        ]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_archived(self):
        return self.status in self.ARCHIVED_STATUSES

    def save(self, *args, **kwargs):
        if self.class_id and not self.class_name:
            level = CLASS_SEQUENCE.get(self.class_id)
            if level is not None:
                self.class_name = level.name
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.full_name} ({self.admission_number})"
