from django.contrib import admin

from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('admission_number', 'full_name', 'class_name', 'status', 'academic_year', 'promotion_status')
    list_filter = ('status', 'academic_year', 'class_id', 'promotion_status')
    search_fields = ('admission_number', 'first_name', 'last_name')
