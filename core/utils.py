from rest_framework import permissions


class IsEmployer(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.role == 'employer'


class IsWorker(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.role == 'worker'


class IsVerified(permissions.BasePermission):
    message = 'Account verification required.'

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_verified


class IsSuperuser(permissions.BasePermission):
    """Permission class to check if the user is a superuser."""
    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_superuser


def paginate(queryset, request, default_limit=10, max_limit=100):
    """Slice a queryset or list by ?page=&limit= the way list endpoints expose it."""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        page, limit = 1, default_limit
    total = queryset.count() if hasattr(queryset, 'count') and not isinstance(queryset, list) else len(queryset)
    start = (page - 1) * limit
    items = queryset[start:start + limit]
    return items, {
        'total_pages': (total + limit - 1) // limit,
        'current_page': page,
        'total': total,
    }
