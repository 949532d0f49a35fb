import json
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_POST

from apps.core.users.audit import log_audit_event
from apps.core.users.decorators import api_role_required

from .exceptions import AuthorizationError, StoreError, TransitionCancelled, YearNotFound
from .services import (
    add_upcoming_year,
    delete_academic_year,
    list_academic_years,
    update_academic_year,
)
from .transition import start_new_academic_year

logger = logging.getLogger(__name__)

ADMIN_ROLES = settings.ACADEMIC_TRANSITION_ADMIN_ROLES


def _json_body(request):
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (TypeError, ValueError) as exc:
        raise ValidationError('Request body must be valid JSON.') from exc
    if not isinstance(body, dict):
        raise ValidationError('Request body must be a JSON object.')
    return body


def _date_field(body, *names):
    for name in names:
        value = body.get(name)
        if value:
            parsed = parse_date(str(value)[:10])
            if parsed is None:
                raise ValidationError(f"{name} must be a date in YYYY-MM-DD format.")
            return parsed
    return None


def _error(message, status):
    return JsonResponse({'error': message}, status=status)


def _validation_message(exc):
    return ' '.join(exc.messages)


@require_POST
@api_role_required(ADMIN_ROLES)
def start_new_year(request):
    try:
        body = _json_body(request)
        new_year = body.get('newYearLabel', body.get('new_year'))
        result = start_new_academic_year(new_year, request.user, request=request)
    except AuthorizationError as exc:
        return _error(str(exc), 403)
    except ValidationError as exc:
        return _error(_validation_message(exc), 400)
    except StoreError as exc:
        return _error(str(exc), 500)
    except TransitionCancelled as exc:
        return _error(str(exc), 409)
    except Exception as exc:
        logger.exception('Academic year transition requested by %s failed.', request.user)
        return _error(str(exc) or exc.__class__.__name__, 500)

    return JsonResponse({
        'success': True,
        'message': f"Transition to {new_year.strip()} Complete.",
        'stats': {
            'promoted': result.promoted_count,
            'retained': result.retained_count,
            'graduated': result.graduated_count,
            'skipped': result.skipped_count,
        },
        'errors': result.errors,
    })


@require_GET
@api_role_required()
def year_history(request):
    return JsonResponse({'years': list_academic_years()})


@require_POST
@api_role_required(ADMIN_ROLES)
def year_create(request):
    try:
        body = _json_body(request)
        upcoming = add_upcoming_year(
            body.get('yearLabel'),
            start_date=_date_field(body, 'startDate'),
            end_date=_date_field(body, 'endDate'),
        )
    except ValidationError as exc:
        return _error(_validation_message(exc), 400)

    log_audit_event(
        action='academic_year.planned',
        request=request,
        target=upcoming,
        details=f"Added upcoming year {upcoming.year}",
    )
    return JsonResponse({'success': True, 'message': 'Year added to upcoming list'})


@require_POST
@api_role_required(ADMIN_ROLES)
def year_update(request):
    try:
        body = _json_body(request)
        updated = update_academic_year(
            body.get('targetYear'),
            new_label=body.get('newLabel'),
            start_date=_date_field(body, 'startDate'),
            end_date=_date_field(body, 'endDate'),
        )
    except YearNotFound as exc:
        return _error(str(exc), 404)
    except ValidationError as exc:
        return _error(_validation_message(exc), 400)

    log_audit_event(
        action='academic_year.updated',
        request=request,
        target=updated,
        details=f"Updated academic year {body.get('targetYear')}",
    )
    return JsonResponse({'success': True})


@require_POST
@api_role_required(ADMIN_ROLES)
def year_delete(request):
    try:
        body = _json_body(request)
        label = body.get('yearLabel')
        delete_academic_year(label)
    except YearNotFound as exc:
        return _error(str(exc), 404)
    except ValidationError as exc:
        return _error(_validation_message(exc), 400)

    log_audit_event(
        action='academic_year.deleted',
        request=request,
        details=f"Deleted academic year {label}",
    )
    return JsonResponse({'success': True, 'message': 'Academic year deleted successfully'})
