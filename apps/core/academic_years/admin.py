from django.contrib import admin

from .models import AcademicYearConfig, AcademicYearHistory, UpcomingAcademicYear


@admin.register(AcademicYearConfig)
class AcademicYearConfigAdmin(admin.ModelAdmin):
    list_display = ('current_year', 'current_year_start_date', 'current_year_end_date', 'last_updated')


@admin.register(AcademicYearHistory)
class AcademicYearHistoryAdmin(admin.ModelAdmin):
    list_display = ('year', 'start_date', 'archived_at', 'promoted_count', 'archived_count')
    search_fields = ('year',)


@admin.register(UpcomingAcademicYear)
class UpcomingAcademicYearAdmin(admin.ModelAdmin):
    list_display = ('year', 'start_date', 'end_date', 'created_at')
    search_fields = ('year',)
