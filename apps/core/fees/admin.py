from django.contrib import admin

from .models import FeeLedger, FeeLedgerItem


class FeeLedgerItemInline(admin.TabularInline):
    model = FeeLedgerItem
    extra = 0


@admin.register(FeeLedger)
class FeeLedgerAdmin(admin.ModelAdmin):
    list_display = ('student', 'academic_year', 'class_name', 'total_fee', 'total_paid', 'status')
    list_filter = ('academic_year', 'status')
    search_fields = ('student__admission_number', 'student__first_name')
    inlines = [FeeLedgerItemInline]
