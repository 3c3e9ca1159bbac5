"""
Converts a RawExchange into the single ResponseOutcome handed to callers.

A completed round trip is necessary but not sufficient for success: only a
2xx status produces ``succeeded=True``.
"""

from typing import Dict, Iterable, Optional

from .models import ErrorKind, RawExchange, ResponseOutcome
from .utils import describe_status, is_success_status

NETWORK_ERROR_MESSAGE = "Network error: Request failed to complete"
CANCELLED_MESSAGE = "Request cancelled"
HEADER_SEPARATOR = ": "


def parse_header_lines(lines: Iterable[str]) -> Dict[str, str]:
    headers = {}
    for line in lines:
        name, sep, value = line.partition(HEADER_SEPARATOR)
        if not sep:
            continue
        headers[name] = value
    return headers


def _with_url(message: str, url: str) -> str:
    return f"{message} (URL: {url})" if url else message


def normalize(raw: RawExchange) -> ResponseOutcome:
    if not raw.success:
        if raw.cancelled:
            message, kind = CANCELLED_MESSAGE, ErrorKind.CANCELLED
        else:
            message, kind = NETWORK_ERROR_MESSAGE, ErrorKind.TRANSPORT
        return ResponseOutcome(
            succeeded=False,
            status_code=0,
            body="",
            error_message=_with_url(message, raw.url),
            elapsed_seconds=raw.elapsed_seconds,
            error_kind=kind,
            url=raw.url,
        )

    status_code = raw.status_code or 0
    succeeded = is_success_status(status_code)
    error_message = ""
    if not succeeded:
        error_message = f"HTTP Error {status_code}: {describe_status(status_code)}"

    return ResponseOutcome(
        succeeded=succeeded,
        status_code=status_code,
        body=raw.body or "",
        error_message=error_message,
        elapsed_seconds=raw.elapsed_seconds,
        headers=parse_header_lines(raw.header_lines),
        error_kind=None if succeeded else ErrorKind.APPLICATION,
        url=raw.url,
    )


def rejected(message: str, url: str = "",
             kind: Optional[ErrorKind] = ErrorKind.VALIDATION) -> ResponseOutcome:
    """Synthetic failure for requests that never reached the transport."""
    return ResponseOutcome(
        succeeded=False,
        status_code=0,
        body="",
        error_message=message,
        error_kind=kind,
        url=url,
    )
