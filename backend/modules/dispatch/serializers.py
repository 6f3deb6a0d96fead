"""Request bodies accepted by the dispatch endpoints."""

from __future__ import annotations

from rest_framework import serializers

_IDS_REQUIRED = "Region ID and Worker ID are required"


class TriggerWorkerSerializer(serializers.Serializer):
    regionId = serializers.CharField(  # noqa: N815 - public JSON contract
        max_length=64,
        error_messages={"required": _IDS_REQUIRED, "blank": _IDS_REQUIRED, "null": _IDS_REQUIRED},
    )
    workerId = serializers.CharField(  # noqa: N815
        max_length=128,
        error_messages={"required": _IDS_REQUIRED, "blank": _IDS_REQUIRED, "null": _IDS_REQUIRED},
    )


class TriggerPusherSerializer(serializers.Serializer):
    regionId = serializers.CharField(  # noqa: N815
        max_length=64,
        required=False,
        allow_blank=True,
        allow_null=True,
    )


__all__ = ["TriggerPusherSerializer", "TriggerWorkerSerializer"]
