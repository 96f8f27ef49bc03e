"""Project access checks.

Every catalog, inventory and order operation calls
``require_project_access`` instead of querying memberships inline.
"""

from django.core.exceptions import PermissionDenied

from .models import ProjectMember

DEFAULT_DENIED_MESSAGE = "You do not have access to this project"


def get_membership(*, user, project_id) -> ProjectMember | None:
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return ProjectMember.objects.filter(project_id=project_id, user_id=user.id).first()


def require_project_access(
    *, user, project_id, role: str = ProjectMember.ROLE_MEMBER, message: str = ""
) -> ProjectMember:
    """Return the caller's membership or raise ``PermissionDenied``.

    ``role=ADMIN`` demands an administrator; the default accepts any member,
    administrators included.
    """

    membership = get_membership(user=user, project_id=project_id)
    if membership is None:
        raise PermissionDenied(message or DEFAULT_DENIED_MESSAGE)
    if role == ProjectMember.ROLE_ADMIN and not membership.is_admin:
        raise PermissionDenied(message or "Only project administrators can perform this action")
    return membership


def require_project_admin(*, user, project_id, message: str = "") -> ProjectMember:
    return require_project_access(user=user, project_id=project_id, role=ProjectMember.ROLE_ADMIN, message=message)
