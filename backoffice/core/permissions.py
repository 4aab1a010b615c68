from rest_framework.permissions import BasePermission


class IsAdministrator(BasePermission):
    """Only administrators (or superusers) may pass"""
    message = 'Only administrators can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_administrator)


class IsManagerOrAdministrator(BasePermission):
    message = 'Only managers or administrators can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_manager_or_above)
