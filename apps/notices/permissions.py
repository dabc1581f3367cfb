from rest_framework.permissions import SAFE_METHODS, BasePermission


def role_required(*roles, read_only=False):
    """
    Build a permission class that admits authenticated users whose role is
    in `roles`. With read_only=True, safe methods are open to everyone.
    """
    class RoleRequired(BasePermission):
        message = f"Access restricted to {' / '.join(roles)} accounts"

        def has_permission(self, request, view):
            if read_only and request.method in SAFE_METHODS:
                return True
            user = request.user
            return bool(user and user.is_authenticated and user.role in roles)

    return RoleRequired


IsTeacherOrAdmin = role_required('teacher', 'admin')
IsTeacherOrAdminOrReadOnly = role_required('teacher', 'admin', read_only=True)
