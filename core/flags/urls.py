from django.urls import path
from .api import entitlements

urlpatterns = [
    path("flags/entitlements", entitlements, name="entitlements"),
]
