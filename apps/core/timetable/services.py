from __future__ import annotations

from django.db import transaction

from .models import ClassTimetable, TeachingAssignment


_COPY_EXCLUDED_FIELDS = {'id', 'year_id', 'created_at', 'updated_at'}


def year_payload(row) -> dict:
    """Field values of ``row`` other than its id, year tag and timestamps."""
    return {
        field.attname: getattr(row, field.attname)
        for field in row._meta.concrete_fields
        if field.attname not in _COPY_EXCLUDED_FIELDS
    }


@transaction.atomic
def copy_to_year(row, new_year_id):
    """Create or refresh ``row``'s copy for ``new_year_id``; the source row is left as it is."""
    model = row.__class__
    payload = year_payload(row)
    lookup = {'year_id': new_year_id}
    for key_field in model.KEY_FIELDS:
        if key_field != 'year_id':
            lookup[key_field] = payload.pop(key_field)
    copy, _ = model.objects.update_or_create(defaults=payload, **lookup)
    return copy


def teaching_assignments_for_year(year_id):
    return TeachingAssignment.objects.for_year(year_id).order_by('pk')


def class_timetables_for_year(year_id):
    return ClassTimetable.objects.for_year(year_id).order_by('pk')
