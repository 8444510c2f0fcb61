import uuid
from django.conf import settings
from django.http import JsonResponse

PUBLIC_PATH_PREFIXES = (
    "/admin/",
    "/api/schema/",
    "/api/docs/",
    "/v1/auth/login",
    "/v1/auth/refresh",
    "/v1/health",
)


class WorkspaceScopeMiddleware:
    """
    - Reads the declared workspace for /v1/* (header first, then cookie).
    - Parses UUID and attaches request.workspace_id (None when absent).
    - Membership/token checks happen in core.workspaces.resolver, after auth,
      so an anonymous caller gets 401 before any workspace error.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.workspace_id = None
        path = request.path or "/"

        if path.startswith(PUBLIC_PATH_PREFIXES):
            return self.get_response(request)

        if not path.startswith("/v1/"):
            return self.get_response(request)

        header_name = getattr(settings, "WORKSPACE_HEADER", "X-Workspace-Id")
        cookie_name = getattr(settings, "WORKSPACE_COOKIE", "workspace_id")
        raw = request.headers.get(header_name) or request.COOKIES.get(cookie_name)

        if not raw:
            return self.get_response(request)

        try:
            request.workspace_id = uuid.UUID(str(raw).strip())
        except ValueError:
            return JsonResponse(
                {"error": {"code": "WORKSPACE_INVALID", "message": f"{header_name} must be a valid UUID", "details": {}}},
                status=400,
            )

        return self.get_response(request)
