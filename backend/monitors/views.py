"""Catalog endpoints for websites and regions."""

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import RegionSerializer, WebsiteSerializer
from .service import region_service, website_service


class WebsiteListCreateView(APIView):
    """List the caller's websites with their latest tick, or add one."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        websites = website_service.queryset_for_request(request)
        serializer = WebsiteSerializer(websites, many=True)
        return Response({"websites": serializer.data})

    def post(self, request):
        serializer = WebsiteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        website = website_service.create_website(request=request, serializer=serializer)
        return Response(
            {
                "message": "Website added successfully and ready for monitoring!",
                "website": WebsiteSerializer(website).data,
            },
            status=status.HTTP_201_CREATED,
        )


class WebsiteStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, website_id):
        website = website_service.get_owned_website(request=request, website_id=website_id)
        return Response({"website": WebsiteSerializer(website).data})


class WebsiteDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, website_id):
        website_service.delete_website(request=request, website_id=website_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class RegionListCreateView(APIView):
    """Regions are shared by every caller and listed by name."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        serializer = RegionSerializer(region_service.list_regions(), many=True)
        return Response({"regions": serializer.data})

    def post(self, request):
        serializer = RegionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        region, group_created = region_service.create_region(request=request, serializer=serializer)
        return Response(
            {
                "message": "Region created successfully",
                "region": RegionSerializer(region).data,
                "groupCreated": group_created,
            },
            status=status.HTTP_201_CREATED,
        )


class RegionDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, region_id):
        region_service.delete_region(request=request, region_id=region_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
