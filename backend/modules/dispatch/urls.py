"""Dispatch API routes (mounted under ``/api/``)."""

from __future__ import annotations

from django.urls import re_path

from .views import CreateGroupView, TriggerPusherView, TriggerWorkerView

urlpatterns = [
    re_path(
        r"^redis/create-group/(?P<region_id>[^/]+)/?$",
        CreateGroupView.as_view(),
        name="dispatch-create-group",
    ),
    re_path(r"^trigger-pusher/?$", TriggerPusherView.as_view(), name="dispatch-trigger-pusher"),
    re_path(r"^trigger-worker/?$", TriggerWorkerView.as_view(), name="dispatch-trigger-worker"),
]

__all__ = ["urlpatterns"]
