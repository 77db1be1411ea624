"""Pydantic models for server-reported outcomes.

``ErrorResponse`` is the error body the API server returns with 4xx/5xx
responses. ``Status`` is the full status object returned in place of a
resource (e.g. after a delete).
"""

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Reason used when an error body cannot be parsed as an ErrorResponse
FAILED_TO_PARSE_REASON = "Failed to parse error data"

StatusSummary = Literal["Success", "Failure"]


class ErrorResponse(BaseModel):
    """Error body reported by the API server.

    Required fields:
        status: Status text (e.g. "Failure")
        code: HTTP status code

    Optional fields:
        message: Human-readable description
        reason: Machine-readable reason (e.g. "NotFound")
    """

    status: str
    code: int
    message: str = ""
    reason: str = ""


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusCause(_CamelModel):
    """A single cause of a failed status."""

    reason: str = ""
    message: str = ""
    field: str = ""


class StatusDetails(_CamelModel):
    """Extended data attached to a status."""

    name: str = ""
    group: str = ""
    kind: str = ""
    uid: str = ""
    causes: list[StatusCause] = Field(default_factory=list)
    retry_after_seconds: int = 0


class Status(_CamelModel):
    """Status object returned when an operation does not yield a resource."""

    kind: str = "Status"
    api_version: str = "v1"
    status: StatusSummary | None = None
    code: int = 0
    message: str = ""
    reason: str = ""
    details: StatusDetails | None = None

    def is_success(self) -> bool:
        return self.status == "Success"

    def is_failure(self) -> bool:
        return self.status == "Failure"


# =============================================================================
# Typed-or-status result
# =============================================================================


@dataclass(frozen=True)
class ObjectResult(Generic[T]):
    """The response decoded as the requested type."""

    value: T


@dataclass(frozen=True)
class StatusResult:
    """The response was a Status object instead of the requested type."""

    status: Status


ObjectOrStatus = ObjectResult[T] | StatusResult
