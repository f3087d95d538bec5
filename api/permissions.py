"""
Role-based permissions for the Club Manager API.

Roles are always read from the member record linked to the authenticated
user, never from the request payload or the token claims.
"""
from rest_framework import permissions

from apps.accounts.models import Member


def get_member(request):
    if not request.user or not request.user.is_authenticated:
        return None
    return getattr(request.user, 'member', None)


class HasRole(permissions.BasePermission):
    """
    Base class: grant access when the caller's member role is in ``roles``.
    """
    roles = ()
    message = 'You do not have permission to perform this action.'

    def has_permission(self, request, view):
        member = get_member(request)
        return member is not None and member.role in self.roles


class IsClubAdmin(HasRole):
    roles = (Member.ROLE_ADMIN, Member.ROLE_SUPER_ADMIN)
    message = 'Only club administrators can perform this action.'


class IsSuperAdmin(HasRole):
    roles = (Member.ROLE_SUPER_ADMIN,)
    message = 'Only the super administrator can manage administrators.'


class IsCoachOrClubAdmin(HasRole):
    roles = (Member.ROLE_COACH, Member.ROLE_ADMIN, Member.ROLE_SUPER_ADMIN)
    message = 'Only coaches and administrators can perform this action.'


class IsSelfOrClubAdmin(permissions.BasePermission):
    """
    Object-level permission: members may access their own record, and
    administrators may access anyone's.
    """
    def has_permission(self, request, view):
        return get_member(request) is not None

    def has_object_permission(self, request, view, obj):
        member = get_member(request)
        if member.is_club_admin:
            return True
        owner = obj if isinstance(obj, Member) else getattr(obj, 'member', None)
        return owner is not None and owner.pk == member.pk


class IsClubAdminOrReadOnly(permissions.BasePermission):
    """
    Read access for any member, write access for administrators.
    """
    def has_permission(self, request, view):
        member = get_member(request)
        if member is None:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return member.is_club_admin
