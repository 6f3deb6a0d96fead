from ipaddress import ip_address, ip_network
from urllib.parse import urlparse

from modules.dispatch.recorder import latest_status, latest_tick, tick_to_dict
from rest_framework import serializers

from .models import Region, Tick, Website

_PRIVATE_RANGES = (
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
    ip_network("127.0.0.0/8"),
    ip_network("169.254.0.0/16"),
    ip_network("::1/128"),
    ip_network("fe80::/10"),
    ip_network("fc00::/7"),
)

_INVALID_URL = "Invalid URL format. Please enter a valid domain (e.g., example.com)"


def normalize_website_url(value: str) -> str:
    """Strip the scheme so every URL is stored as ``host[/path]``."""

    value = (value or "").strip()
    lowered = value.lower()
    for scheme in ("https://", "http://"):
        if lowered.startswith(scheme):
            return value[len(scheme) :]
    return value


class TickSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tick
        fields = ["response_time_ms", "status", "region_id", "website_id", "created_at"]

    def to_representation(self, instance):
        return tick_to_dict(instance)


class WebsiteSerializer(serializers.ModelSerializer):
    status = serializers.SerializerMethodField()
    latest_tick = serializers.SerializerMethodField()

    class Meta:
        model = Website
        fields = ["id", "url", "status", "latest_tick", "created_at"]
        read_only_fields = ("id", "status", "latest_tick", "created_at")
        extra_kwargs = {
            "url": {
                "error_messages": {"required": "URL is required", "blank": "URL is required"},
            }
        }
        # Duplicates are reported as 409 by the service, not as a field error.
        validators = []

    def get_status(self, obj: Website) -> str:
        return str(latest_status(obj))

    def get_latest_tick(self, obj: Website):
        tick = latest_tick(obj)
        return tick_to_dict(tick) if tick is not None else None

    def validate_url(self, value: str) -> str:
        """
        Normalize to a scheme-less host and reject anything that does not parse
        as an HTTPS URL or that points at a private address.
        """

        normalized = normalize_website_url(value)
        if not normalized:
            raise serializers.ValidationError("URL is required")
        if any(char.isspace() for char in normalized):
            raise serializers.ValidationError(_INVALID_URL)

        try:
            parsed = urlparse(f"https://{normalized}")
            hostname = parsed.hostname
            parsed.port  # noqa: B018 - raises ValueError on a malformed port
        except ValueError:
            raise serializers.ValidationError(_INVALID_URL) from None

        if not hostname:
            raise serializers.ValidationError(_INVALID_URL)

        try:
            addr = ip_address(hostname)
        except ValueError:
            return normalized

        if any(addr in private_range for private_range in _PRIVATE_RANGES):
            raise serializers.ValidationError(
                "Cannot monitor private IP addresses or internal services."
            )
        return normalized


class RegionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Region
        fields = ["id", "name", "created_at"]
        read_only_fields = ("id", "created_at")
        extra_kwargs = {
            "name": {
                "validators": [],
                "error_messages": {
                    "required": "Region name is required",
                    "blank": "Region name is required",
                },
            }
        }

    def validate_name(self, value: str) -> str:
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Region name is required")
        return value


__all__ = [
    "RegionSerializer",
    "TickSerializer",
    "WebsiteSerializer",
    "normalize_website_url",
]
