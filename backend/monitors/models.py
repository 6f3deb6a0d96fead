"""Catalog models: probing regions, monitored websites and their probe results."""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class TickStatus(models.TextChoices):
    UP = "Up", "Up"
    DOWN = "Down", "Down"
    # Displayed for websites that have never been probed; probes never record it.
    UNKNOWN = "Unknown", "Unknown"


class Region(models.Model):
    """A named probing origin with its own work queue and consumer group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class Website(models.Model):
    """A monitored host, stored without a scheme and owned by one user."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="websites",
    )
    url = models.CharField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at",)
        constraints = [
            models.UniqueConstraint(fields=("owner", "url"), name="unique_website_per_owner"),
        ]

    def __str__(self) -> str:
        return self.url


class Tick(models.Model):
    """One immutable probe result for a website, recorded from one region."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    website = models.ForeignKey(Website, on_delete=models.CASCADE, related_name="ticks")
    region = models.ForeignKey(Region, on_delete=models.PROTECT, related_name="ticks")
    status = models.CharField(max_length=16, choices=TickStatus.choices)
    response_time_ms = models.PositiveIntegerField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=["website", "-created_at"], name="tick_website_recent_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Ticks are immutable once recorded")
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.website_id} {self.status} ({self.response_time_ms}ms)"


__all__ = ["Region", "Tick", "TickStatus", "Website"]
