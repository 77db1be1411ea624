"""API error extraction from error responses."""

import logging

import httpx
from pydantic import ValidationError

from kube_sdk.exceptions import ApiError, DecodeError, TransportError
from kube_sdk.models.status import FAILED_TO_PARSE_REASON, ErrorResponse

logger = logging.getLogger(__name__)


def is_error_status(status_code: int) -> bool:
    """Check if a status code is a client or server error."""
    return 400 <= status_code < 600


def status_line(response: httpx.Response) -> str:
    """Format the status line, e.g. ``404 Not Found``."""
    if response.reason_phrase:
        return f"{response.status_code} {response.reason_phrase}"
    return str(response.status_code)


async def handle_api_errors(response: httpx.Response) -> httpx.Response:
    """Raise an ``ApiError`` for 4xx/5xx responses, pass others through.

    The body of an error response is read (and the response closed) exactly
    once. If it parses as an ``ErrorResponse`` that is what gets raised;
    otherwise an ``ErrorResponse`` is reconstructed from the status line and
    the raw body text.

    Args:
        response: A response whose body has not been read yet.

    Returns:
        The same response, untouched, when the status is not an error.

    Raises:
        ApiError: The response status is 4xx or 5xx.
        DecodeError: The error body is not valid UTF-8.
        TransportError: The error body could not be read.
    """
    if not is_error_status(response.status_code):
        return response

    try:
        body = await response.aread()
    except httpx.HTTPError as exc:
        raise TransportError(f"error reading error body: {exc}") from exc
    finally:
        await response.aclose()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"error body is not valid UTF-8: {exc}") from exc

    try:
        error = ErrorResponse.model_validate_json(text)
    except ValidationError:
        logger.warning("Unsuccessful data error parse: %s", text)
        error = ErrorResponse(
            status=status_line(response),
            code=response.status_code,
            message=repr(text),
            reason=FAILED_TO_PARSE_REASON,
        )
        logger.debug("Unsuccessful: %r (reconstructed)", error)
        raise ApiError(error) from None

    logger.debug("Unsuccessful: %r", error)
    raise ApiError(error)
