"""
Custom exceptions for the UptimeDispatch API.

Provides standardized error responses without leaking internal details.
"""

from rest_framework.exceptions import APIException


class BaseUptimeException(APIException):
    """
    Base exception for all UptimeDispatch API exceptions.

    Ensures consistent error response format.
    """

    status_code = 500
    default_detail = "An error occurred. Please try again later."
    default_code = "error"


class QueueUnavailableError(BaseUptimeException):
    """
    Raised when the dispatch queue cannot append, read or acknowledge.

    The underlying storage error is logged but not exposed to callers.
    """

    status_code = 503
    default_detail = "The monitoring queue is temporarily unavailable. Please try again later."
    default_code = "queue_unavailable"


class RegionNotFoundError(BaseUptimeException):
    status_code = 404
    default_detail = "Region not found"
    default_code = "region_not_found"


class WebsiteNotFoundError(BaseUptimeException):
    status_code = 404
    default_detail = "Website not found"
    default_code = "website_not_found"


class DuplicateWebsiteError(BaseUptimeException):
    """
    Raised when the caller already monitors the same URL.
    """

    status_code = 409
    default_detail = "This website is already being monitored"
    default_code = "duplicate_website"


class DuplicateRegionError(BaseUptimeException):
    status_code = 409
    default_detail = "Region with this name already exists"
    default_code = "duplicate_region"


class RegionInUseError(BaseUptimeException):
    """
    Raised when deleting a region that monitoring results still reference.
    """

    status_code = 400
    default_detail = "Cannot delete region with existing monitoring data"
    default_code = "region_in_use"


class ConsumerGroupMissingError(BaseUptimeException):
    """
    Raised when a worker reads a region whose consumer group was never created.
    """

    status_code = 409
    default_detail = "Consumer group has not been created for this region"
    default_code = "consumer_group_missing"
