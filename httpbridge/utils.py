"""
Stateless helpers for status codes and URLs, usable without an engine.
"""

from typing import Optional

SCHEMES = ("https://", "http://")
INVALID_URL_CHARS = (" ", "<", ">")

STATUS_DESCRIPTIONS = {
    # 2xx
    200: "OK",
    201: "Created",
    202: "Accepted",
    204: "No Content",
    # 3xx
    301: "Moved Permanently",
    302: "Found",
    304: "Not Modified",
    # 4xx
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    408: "Request Timeout",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    # 5xx
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def is_success_status(code: int) -> bool:
    return 200 <= code < 300


def describe_status(code: int) -> str:
    return STATUS_DESCRIPTIONS.get(code, f"HTTP {code}")


def _strip_scheme(url: str) -> Optional[str]:
    for scheme in SCHEMES:
        if url.startswith(scheme):
            return url[len(scheme):]
    return None


def url_problem(url: str) -> Optional[str]:
    """Return why a URL is unusable, or None if it passes the basic checks."""
    if not url:
        return "URL cannot be empty"

    remainder = _strip_scheme(url)
    if remainder is None:
        return "Invalid URL format. URL must start with http:// or https://"

    if not remainder:
        return "Invalid URL format. Nothing follows the scheme"

    for char in INVALID_URL_CHARS:
        if char in remainder:
            return f"Invalid URL format. URL contains invalid character {char!r}"

    return None


def is_valid_url(url: str) -> bool:
    return url_problem(url) is None


def domain_from_url(url: str) -> str:
    """Strip a leading http(s) scheme and cut at the first '/' or '?'."""
    remainder = _strip_scheme(url)
    domain = url if remainder is None else remainder

    cut_points = [i for i in (domain.find("/"), domain.find("?")) if i >= 0]
    if cut_points:
        domain = domain[:min(cut_points)]

    return domain
