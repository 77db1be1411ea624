"""Public models for the Kube SDK.

Resources themselves are opaque to this package: any pydantic model (or
plain ``dict``) can be used as the decode target. The models here cover
the payloads the client itself interprets.
"""

from kube_sdk.models.discovery import (
    APIGroup,
    APIGroupList,
    APIResource,
    APIResourceList,
    APIVersions,
    GroupVersionForDiscovery,
    VersionInfo,
)
from kube_sdk.models.status import (
    ErrorResponse,
    ObjectOrStatus,
    ObjectResult,
    Status,
    StatusCause,
    StatusDetails,
    StatusResult,
)
from kube_sdk.models.watch import Bookmark, BookmarkMeta, WatchEvent, WatchEventType

__all__ = [
    "APIGroup",
    "APIGroupList",
    "APIResource",
    "APIResourceList",
    "APIVersions",
    "Bookmark",
    "BookmarkMeta",
    "ErrorResponse",
    "GroupVersionForDiscovery",
    "ObjectOrStatus",
    "ObjectResult",
    "Status",
    "StatusCause",
    "StatusDetails",
    "StatusResult",
    "VersionInfo",
    "WatchEvent",
    "WatchEventType",
]
