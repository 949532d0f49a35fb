from django.db import models


UNKNOWN_YEAR = 'Unknown'


class AcademicYearConfig(models.Model):
    """Single row holding the academic year the whole system currently runs in."""

    SINGLETON_PK = 1

    current_year = models.CharField(max_length=20, blank=True)  # e.g. 2026-2027
    current_year_start_date = models.DateTimeField(null=True, blank=True)
    current_year_end_date = models.DateField(null=True, blank=True)
    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'academic year configuration'

    @classmethod
    def load(cls):
        return cls.objects.filter(pk=cls.SINGLETON_PK).first()

    @classmethod
    def load_for_update(cls):
        config, _ = cls.objects.get_or_create(pk=cls.SINGLETON_PK)
        return config

    def save(self, *args, **kwargs):
        self.pk = self.SINGLETON_PK
        super().save(*args, **kwargs)

    def __str__(self):
        return self.current_year or UNKNOWN_YEAR


class AcademicYearHistory(models.Model):
    year = models.CharField(max_length=20, unique=True)
    start_date = models.DateField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    promoted_count = models.PositiveIntegerField(default=0)
    archived_count = models.PositiveIntegerField(default=0)
    stats = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-archived_at', '-id']
        verbose_name_plural = 'academic year history'

    def __str__(self):
        return f"{self.year} (archived)"


class UpcomingAcademicYear(models.Model):
    year = models.CharField(max_length=20, unique=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.year} (upcoming)"
