from __future__ import annotations

import logging
from datetime import datetime, time

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .exceptions import YearNotFound
from .models import UNKNOWN_YEAR, AcademicYearConfig, AcademicYearHistory, UpcomingAcademicYear


logger = logging.getLogger(__name__)

YEAR_LABEL_MAX_LENGTH = 20


def validate_year_label(label, field_name='year label') -> str:
    if label is not None and not isinstance(label, str):
        raise ValidationError(f"The {field_name} must be text.")
    label = (label or '').strip()
    if not label:
        raise ValidationError(f"The {field_name} is required.")
    if len(label) > YEAR_LABEL_MAX_LENGTH:
        raise ValidationError(
            f"The {field_name} must be at most {YEAR_LABEL_MAX_LENGTH} characters."
        )
    if label == UNKNOWN_YEAR:
        raise ValidationError(f"'{UNKNOWN_YEAR}' is reserved and cannot be used as a {field_name}.")
    return label


def _validate_date_range(start_date, end_date):
    if start_date and end_date and end_date <= start_date:
        raise ValidationError('End date must be after start date.')


def _start_of_day(value):
    if value is None:
        return None
    return timezone.make_aware(datetime.combine(value, time.min))


def current_year_label(config=None) -> str:
    if config is None:
        config = AcademicYearConfig.load()
    if config is None or not config.current_year:
        return UNKNOWN_YEAR
    return config.current_year


def default_year_label(today=None) -> str:
    """Label of the April-to-March year containing ``today``."""
    today = today or timezone.localdate()
    start = today.year if today.month >= 4 else today.year - 1
    return f"{start}-{start + 1}"


def _label_in_use(label, config) -> str | None:
    if config is not None and config.current_year == label:
        return 'Year already active'
    if UpcomingAcademicYear.objects.filter(year=label).exists():
        return 'Year already exists in upcoming'
    if AcademicYearHistory.objects.filter(year=label).exists():
        return 'Year already exists in history'
    return None


def list_academic_years():
    """Current year first, then planned years, then archived years (one entry per label)."""
    config = AcademicYearConfig.load()
    if config is None:
        return [{
            'year': default_year_label(),
            'is_active': True,
            'is_upcoming': False,
            'start_date': timezone.now().isoformat(),
            'end_date': None,
            'stats': None,
        }]

    years = []
    if config.current_year:
        start = config.current_year_start_date or config.last_updated
        years.append({
            'year': config.current_year,
            'is_active': True,
            'is_upcoming': False,
            'start_date': start.isoformat() if start else None,
            'end_date': config.current_year_end_date.isoformat() if config.current_year_end_date else None,
            'stats': None,
        })

    for upcoming in UpcomingAcademicYear.objects.all():
        years.append({
            'year': upcoming.year,
            'is_active': False,
            'is_upcoming': True,
            'start_date': upcoming.start_date.isoformat() if upcoming.start_date else None,
            'end_date': upcoming.end_date.isoformat() if upcoming.end_date else None,
            'stats': None,
        })

    seen_years = {entry['year'] for entry in years}
    for history in AcademicYearHistory.objects.all():
        if history.year in seen_years:
            continue
        seen_years.add(history.year)
        years.append({
            'year': history.year,
            'is_active': False,
            'is_upcoming': False,
            'start_date': history.start_date.isoformat() if history.start_date else None,
            'end_date': history.archived_at.isoformat() if history.archived_at else None,
            'stats': {
                'promoted': history.promoted_count,
                'detained': history.archived_count,
                'total': history.promoted_count + history.archived_count,
            },
        })
    return years


@transaction.atomic
def add_upcoming_year(label, start_date=None, end_date=None) -> UpcomingAcademicYear:
    label = validate_year_label(label)
    _validate_date_range(start_date, end_date)

    conflict = _label_in_use(label, AcademicYearConfig.load())
    if conflict:
        raise ValidationError(conflict)

    upcoming = UpcomingAcademicYear.objects.create(
        year=label,
        start_date=start_date,
        end_date=end_date,
    )
    logger.info('Academic year %s added to upcoming years.', label)
    return upcoming


@transaction.atomic
def update_academic_year(target, new_label=None, start_date=None, end_date=None):
    """Rename or re-date the year labelled ``target``.

    Lookup order is upcoming years, then the current year, then history.
    """
    target = validate_year_label(target, 'target year')
    if isinstance(new_label, str) and not new_label.strip():
        new_label = None
    if new_label is not None:
        new_label = validate_year_label(new_label, 'new label')
    _validate_date_range(start_date, end_date)

    config = AcademicYearConfig.load()
    if new_label and new_label != target:
        conflict = _label_in_use(new_label, config)
        if conflict:
            raise ValidationError(conflict)

    upcoming = UpcomingAcademicYear.objects.select_for_update().filter(year=target).first()
    if upcoming is not None:
        upcoming.year = new_label or upcoming.year
        upcoming.start_date = start_date or upcoming.start_date
        upcoming.end_date = end_date or upcoming.end_date
        _validate_date_range(upcoming.start_date, upcoming.end_date)
        upcoming.save()
        return upcoming

    if config is not None and config.current_year == target:
        if new_label:
            config.current_year = new_label
        if start_date:
            config.current_year_start_date = _start_of_day(start_date)
        if end_date:
            config.current_year_end_date = end_date
        config.save()
        return config

    history = AcademicYearHistory.objects.select_for_update().filter(year=target).first()
    if history is not None:
        history.year = new_label or history.year
        history.start_date = start_date or history.start_date
        history.archived_at = _start_of_day(end_date) or history.archived_at
        history.save()
        return history

    raise YearNotFound(f"Academic year '{target}' not found.")


@transaction.atomic
def delete_academic_year(label):
    label = validate_year_label(label)

    config = AcademicYearConfig.load()
    if config is not None and config.current_year == label:
        raise ValidationError(
            'Cannot delete the active academic year. Archive it or switch sessions first.'
        )

    deleted, _ = UpcomingAcademicYear.objects.filter(year=label).delete()
    if not deleted:
        deleted, _ = AcademicYearHistory.objects.filter(year=label).delete()
    if not deleted:
        raise YearNotFound('Year not found in plan or history')

    logger.info('Academic year %s deleted from the year plan.', label)
