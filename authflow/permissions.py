from rest_framework import permissions


class IsAdminRole(permissions.BasePermission):
    """
    Only platform admins (role=admin or superusers) may call admin endpoints.
    """
    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))


class IsStudent(permissions.BasePermission):
    message = "Only students can perform this action."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.role == "student")
