"""Dispatch endpoints: consumer-group setup, pusher and worker triggers."""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import TriggerPusherSerializer, TriggerWorkerSerializer
from .service import dispatch_service


class CreateGroupView(APIView):
    """Create the consumer group for a region. Safe to call repeatedly."""

    permission_classes = [IsAuthenticated]

    def post(self, request, region_id):
        payload = dispatch_service.create_group(
            region_id=region_id,
            user_id=getattr(request.user, "id", None),
        )
        return Response(payload, status=status.HTTP_200_OK)


class TriggerPusherView(APIView):
    """Enqueue the caller's never-probed websites."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = TriggerPusherSerializer(data=request.data or {})
        serializer.is_valid(raise_exception=True)
        report = dispatch_service.trigger_pusher(
            user=request.user,
            region_id=serializer.validated_data.get("regionId") or None,
        )
        return Response(report.to_dict(), status=status.HTTP_200_OK)


class TriggerWorkerView(APIView):
    """Run one batch for ``{regionId, workerId}``."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = TriggerWorkerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = dispatch_service.trigger_worker(
            region_id=serializer.validated_data["regionId"],
            worker_id=serializer.validated_data["workerId"],
        )
        return Response(report.to_dict(), status=status.HTTP_200_OK)


__all__ = ["CreateGroupView", "TriggerPusherView", "TriggerWorkerView"]
