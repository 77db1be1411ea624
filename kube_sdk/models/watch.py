"""Watch event models.

A watch response is newline-delimited JSON where each line looks like
``{"type": "ADDED", "object": {...}}``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kube_sdk.models.status import ErrorResponse

T = TypeVar("T")


class WatchEventType(str, Enum):
    """Kind of change a watch event reports."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


class BookmarkMeta(BaseModel):
    """Metadata carried by a bookmark event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    resource_version: str
    annotations: dict[str, str] = Field(default_factory=dict)


class Bookmark(BaseModel):
    """Progress marker sent by the server during a watch."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    api_version: str = ""
    kind: str = ""
    metadata: BookmarkMeta


class WireWatchEvent(BaseModel):
    """One watch line as sent on the wire, before the object is typed."""

    type: WatchEventType
    object: Any


@dataclass(frozen=True)
class WatchEvent(Generic[T]):
    """A single decoded watch event.

    ``object`` is the typed resource for ADDED/MODIFIED/DELETED, a
    ``Bookmark`` for BOOKMARK and an ``ErrorResponse`` for ERROR.
    """

    type: WatchEventType
    object: T | Bookmark | ErrorResponse

    @property
    def is_error(self) -> bool:
        return self.type is WatchEventType.ERROR
