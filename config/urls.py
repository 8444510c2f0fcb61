from django.contrib import admin
from django.urls import path, include
from django.shortcuts import redirect
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.common.views import health_check

urlpatterns = [
    # Root -> API docs
    path("", lambda request: redirect("/api/docs/")),

    path("admin/", admin.site.urls),

    # simple non-workspace health (not under /v1)
    path("health/", health_check, name="health-check"),

    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),

    path("v1/auth/login", TokenObtainPairView.as_view(), name="jwt-login"),
    path("v1/auth/refresh", TokenRefreshView.as_view(), name="jwt-refresh"),

    # workspace-less health endpoint under v1
    path("v1/health/", include("core.common.urls_health")),

    path("v1/", include("core.workspaces.urls")),
    path("v1/", include("core.flags.urls")),
    path("v1/", include("core.leads.urls")),
    path("v1/", include("core.assignment.urls")),
    path("v1/", include("core.whatsapp.urls")),
    path("v1/", include("core.ingestion.urls")),
    path("v1/", include("core.event_hooks.urls")),
    path("v1/", include("core.audit.urls")),
]
