from django.urls import path

from .views import (
    RegionDetailView,
    RegionListCreateView,
    WebsiteDetailView,
    WebsiteListCreateView,
    WebsiteStatusView,
)

urlpatterns = [
    path("websites/", WebsiteListCreateView.as_view(), name="website-list"),
    path("websites/status/<str:website_id>/", WebsiteStatusView.as_view(), name="website-status"),
    path("websites/<str:website_id>/", WebsiteDetailView.as_view(), name="website-detail"),
    path("regions/", RegionListCreateView.as_view(), name="region-list"),
    path("regions/<str:region_id>/", RegionDetailView.as_view(), name="region-detail"),
]
