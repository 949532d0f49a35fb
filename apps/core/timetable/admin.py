from django.contrib import admin

from .models import ClassTimetable, TeachingAssignment


@admin.register(TeachingAssignment)
class TeachingAssignmentAdmin(admin.ModelAdmin):
    list_display = ('year_id', 'class_id', 'class_name', 'updated_at')
    list_filter = ('year_id',)
    search_fields = ('class_id', 'class_name')


@admin.register(ClassTimetable)
class ClassTimetableAdmin(admin.ModelAdmin):
    list_display = ('year_id', 'class_id', 'section_id', 'is_published', 'updated_at')
    list_filter = ('year_id', 'is_published')
    search_fields = ('class_id', 'section_id')
