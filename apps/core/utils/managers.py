from django.db import models

class YearQuerySet(models.QuerySet):
    def for_year(self, year_id):
        return self.filter(year_id=year_id)


class YearManager(models.Manager):
    def get_queryset(self):
        return YearQuerySet(self.model, using=self._db)

    def for_year(self, year_id):
        return self.get_queryset().for_year(year_id)
