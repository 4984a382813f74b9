from rest_framework.permissions import SAFE_METHODS, BasePermission

ROLES = ["ADMIN", "MANAGER", "STAFF"]


def in_group(user, group_name: str) -> bool:
    return user.is_authenticated and user.groups.filter(name=group_name).exists()


def is_admin(user) -> bool:
    return user.is_authenticated and (user.is_superuser or in_group(user, "ADMIN"))


def is_manager(user) -> bool:
    return is_admin(user) or in_group(user, "MANAGER")


def is_staff_member(user) -> bool:
    return is_manager(user) or in_group(user, "STAFF")


class HasInventoryRole(BasePermission):
    """
    The view's ``required_groups`` guards every request; ``write_groups``,
    when set, replaces it for unsafe methods (POST/PATCH/DELETE).
    """
    message = "You do not have permission to perform this action"

    def has_permission(self, request, view):
        u = request.user
        if not u or not u.is_authenticated:
            return False
        if u.is_superuser:
            return True

        groups = getattr(view, "required_groups", ROLES)
        write_groups = getattr(view, "write_groups", None)
        if write_groups is not None and request.method not in SAFE_METHODS:
            groups = write_groups
        return u.groups.filter(name__in=groups).exists()
