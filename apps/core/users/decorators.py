from functools import wraps

from django.http import JsonResponse


def _normalize_roles(allowed_roles):
    if isinstance(allowed_roles, str):
        return {allowed_roles}
    return set(allowed_roles)


def has_role(user, allowed_roles) -> bool:
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    return getattr(user, 'role', None) in _normalize_roles(allowed_roles)


def api_role_required(allowed_roles=None):
    """JSON counterpart of a role gate: 401 when anonymous, 403 on a wrong role.

    ``allowed_roles=None`` only requires an authenticated user.
    """
    normalized_roles = _normalize_roles(allowed_roles) if allowed_roles is not None else None

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return JsonResponse({'error': 'Unauthorized'}, status=401)

            if normalized_roles is not None and request.user.role not in normalized_roles:
                return JsonResponse({'error': 'Forbidden'}, status=403)

            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
