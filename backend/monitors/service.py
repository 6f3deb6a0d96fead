"""Catalog services encapsulating website and region CRUD workflows."""

from __future__ import annotations

import logging
from typing import Any

from api.exceptions import (
    DuplicateRegionError,
    DuplicateWebsiteError,
    RegionInUseError,
    WebsiteNotFoundError,
)
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError
from modules.dispatch.exceptions import QueueError
from modules.dispatch.queue import get_queue
from modules.dispatch.recorder import annotate_latest_ticks
from modules.dispatch.service import get_region
from rest_framework.exceptions import PermissionDenied

from .models import Region, Tick, Website

logger = logging.getLogger("monitors")
audit_logger = logging.getLogger("dispatch.audit")


class WebsiteService:
    """Business logic for listing, creating and deleting a caller's websites."""

    def queryset_for_request(self, request):
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return Website.objects.none()
        return annotate_latest_ticks(Website.objects.filter(owner=user)).order_by("created_at")

    def get_owned_website(self, *, request, website_id: Any) -> Website:
        try:
            return self.queryset_for_request(request).get(pk=website_id)
        except (Website.DoesNotExist, DjangoValidationError, ValueError):
            raise WebsiteNotFoundError() from None

    def create_website(self, *, request, serializer) -> Website:
        url = serializer.validated_data["url"]
        if Website.objects.filter(owner=request.user, url=url).exists():
            raise DuplicateWebsiteError()

        try:
            with transaction.atomic():
                website = serializer.save(owner=request.user)
        except IntegrityError:
            raise DuplicateWebsiteError() from None

        audit_logger.info(
            "Website created",
            extra=self._audit_payload(website=website, user_id=request.user.id),
        )
        return website

    def delete_website(self, *, request, website_id: Any) -> None:
        try:
            website = Website.objects.get(pk=website_id)
        except (Website.DoesNotExist, DjangoValidationError, ValueError):
            raise WebsiteNotFoundError() from None

        if website.owner_id != request.user.id:
            logger.warning(
                "Refused website deletion by non-owner",
                extra={"website_id": str(website.id), "user_id": request.user.id},
            )
            raise PermissionDenied("Unauthorized to delete this website")

        audit_logger.info(
            "Website deleted",
            extra=self._audit_payload(website=website, user_id=request.user.id),
        )
        # Ticks cascade with the website.
        website.delete()

    @staticmethod
    def _audit_payload(*, website: Website, user_id: Any) -> dict[str, Any]:
        return {
            "website_id": str(website.id),
            "url": website.url,
            "user_id": user_id,
        }


class RegionService:
    """Region lifecycle; each region gets its consumer group on creation."""

    def list_regions(self):
        return Region.objects.order_by("name")

    def create_region(self, *, request, serializer) -> tuple[Region, bool]:
        name = serializer.validated_data["name"]
        if Region.objects.filter(name=name).exists():
            raise DuplicateRegionError()

        try:
            with transaction.atomic():
                region = serializer.save()
        except IntegrityError:
            raise DuplicateRegionError() from None

        group_created = False
        try:
            group_created = get_queue().create_group(str(region.id))
        except QueueError as exc:
            # The region stays usable; the group can be created later via the API.
            logger.warning(
                "Consumer group creation failed for new region",
                extra={"region_id": str(region.id), "error": str(exc)},
            )

        audit_logger.info(
            "Region created",
            extra={
                "region_id": str(region.id),
                "region_name": region.name,
                "group_created": group_created,
                "user_id": getattr(request.user, "id", None),
            },
        )
        return region, group_created

    def delete_region(self, *, request, region_id: Any) -> None:
        region = get_region(region_id)
        if Tick.objects.filter(region=region).exists():
            raise RegionInUseError()

        try:
            region.delete()
        except ProtectedError:
            raise RegionInUseError() from None

        audit_logger.info(
            "Region deleted",
            extra={
                "region_id": str(region_id),
                "region_name": region.name,
                "user_id": getattr(request.user, "id", None),
            },
        )


website_service = WebsiteService()
region_service = RegionService()

__all__ = ["RegionService", "WebsiteService", "region_service", "website_service"]
