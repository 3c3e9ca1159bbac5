"""
Value objects that flow through a request pipeline:
RequestSpec in, RawExchange from the transport, ResponseOutcome out.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

import httpx


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ErrorKind(str, Enum):
    """Which stage produced a failed outcome."""
    VALIDATION = "validation"
    TRANSPORT = "transport"
    APPLICATION = "application"
    CONFIGURATION = "configuration"
    CANCELLED = "cancelled"


def merge_headers(*sources: Optional[Mapping[str, str]]) -> httpx.Headers:
    """Merge header mappings in order; later keys replace earlier ones case-insensitively."""
    merged = httpx.Headers()
    for source in sources:
        if not source:
            continue
        for name, value in source.items():
            merged[name] = value
    return merged


@dataclass(frozen=True)
class RequestSpec:
    url: str
    method: HttpMethod
    body: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers)

    @classmethod
    def create(cls, url: str, method: str, body: str = "",
               headers: Optional[Mapping[str, str]] = None) -> "RequestSpec":
        return cls(
            url=url,
            method=HttpMethod(method.upper()),
            body=body or "",
            headers=merge_headers(headers),
        )


@dataclass(frozen=True)
class RawExchange:
    """What the transport reports for one request, before classification."""
    success: bool
    url: str = ""
    status_code: Optional[int] = None
    body: Optional[str] = None
    header_lines: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    reason: str = ""
    cancelled: bool = False


@dataclass(frozen=True)
class ResponseOutcome:
    succeeded: bool
    status_code: int
    body: str
    error_message: str
    elapsed_seconds: float = 0.0
    headers: Dict[str, str] = field(default_factory=dict)
    error_kind: Optional[ErrorKind] = None
    url: str = ""

    def as_dict(self) -> dict:
        return {
            "succeeded": self.succeeded,
            "status_code": self.status_code,
            "body": self.body,
            "error_message": self.error_message,
            "elapsed_seconds": self.elapsed_seconds,
            "headers": dict(self.headers),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "url": self.url,
        }
