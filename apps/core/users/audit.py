import logging

from django.db import transaction

from apps.core.users.models import AuditLog


logger = logging.getLogger(__name__)


def _extract_ip(request):
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_audit_event(action, request=None, user=None, target=None, details=''):
    """Record an audit row for ``action``; requests are optional for command-line callers."""
    try:
        target_model = ''
        target_id = ''

        if target is not None:
            target_model = target.__class__.__name__
            target_id = str(getattr(target, 'pk', ''))

        method = ''
        path = ''
        ip_address = None
        if request is not None:
            method = request.method or ''
            path = (request.path or '')[:255]
            ip_address = _extract_ip(request)
            request_user = getattr(request, 'user', None)
            if user is None and request_user is not None and request_user.is_authenticated:
                user = request_user

        if user is not None and not getattr(user, 'pk', None):
            user = None

        with transaction.atomic():
            AuditLog.objects.create(
                user=user,
                action=action,
                target_model=target_model,
                target_id=target_id,
                details=details,
                method=method,
                path=path,
                ip_address=ip_address,
            )
    except Exception:
        # Logging must never break business actions.
        logger.exception('Failed to record audit event %s', action)
