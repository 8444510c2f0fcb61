from rest_framework.permissions import BasePermission
from core.iam.models import WorkspaceMembership


class IsWorkspaceMember(BasePermission):
    """
    Requires:
      - request.workspace_id (set by WorkspaceScopeMiddleware)
      - authenticated user
    Attaches:
      - request.workspace_role
    """

    def has_permission(self, request, view):
        workspace_id = getattr(request, "workspace_id", None)
        if not workspace_id:
            return False

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        membership = (
            WorkspaceMembership.objects.filter(workspace_id=workspace_id, user_id=user.id)
            .only("role")
            .first()
        )
        if not membership:
            return False

        request.workspace_role = membership.role
        return True


class HasRole(BasePermission):
    """
    Usage:
      permission_classes = [IsAuthenticated, IsWorkspaceMember, HasRole.with_roles("owner","admin")]
    """

    allowed_roles: tuple[str, ...] = tuple()

    @classmethod
    def with_roles(cls, *roles: str):
        return type("HasRoleSub", (cls,), {"allowed_roles": roles})

    def has_permission(self, request, view):
        role = getattr(request, "workspace_role", None)
        return role in self.allowed_roles
