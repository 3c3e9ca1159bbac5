"""
Tests for the standalone status and URL helpers.
"""

import pytest

from httpbridge.utils import (
    STATUS_DESCRIPTIONS,
    describe_status,
    domain_from_url,
    is_success_status,
    is_valid_url,
    url_problem,
)


@pytest.mark.parametrize("code,expected", [
    (0, False),
    (199, False),
    (200, True),
    (204, True),
    (299, True),
    (300, False),
    (404, False),
    (500, False),
])
def test_is_success_status_boundaries(code, expected):
    assert is_success_status(code) is expected


def test_describe_status_covers_common_codes():
    required = {200, 201, 202, 204, 301, 302, 304, 400, 401, 403, 404,
                405, 408, 409, 422, 429, 500, 501, 502, 503, 504}
    assert required <= set(STATUS_DESCRIPTIONS)
    assert describe_status(404) == "Not Found"
    assert describe_status(429) == "Too Many Requests"
    assert describe_status(504) == "Gateway Timeout"


@pytest.mark.parametrize("code", [418, 207, 999, 0])
def test_describe_status_unknown_codes(code):
    assert describe_status(code) == f"HTTP {code}"


@pytest.mark.parametrize("url,expected", [
    ("https://example.com/a", True),
    ("http://localhost:8080/path?q=1", True),
    ("not-a-valid-url", False),
    ("", False),
    ("http://", False),
    ("https://", False),
    ("http://a b", False),
    ("https://example.com/<script>", False),
    ("ftp://example.com", False),
])
def test_is_valid_url(url, expected):
    assert is_valid_url(url) is expected


def test_url_problem_names_the_violated_rule():
    assert url_problem("") == "URL cannot be empty"
    assert "http:// or https://" in url_problem("example.com")
    assert "Nothing follows the scheme" in url_problem("http://")
    assert "' '" in url_problem("http://a b")
    assert url_problem("https://example.com") is None


@pytest.mark.parametrize("url,expected", [
    ("https://example.com/path?x=1", "example.com"),
    ("http://example.com", "example.com"),
    ("example.com", "example.com"),
    ("https://example.com?x=1/2", "example.com"),
    ("https://api.example.com:8443/v1", "api.example.com:8443"),
    ("example.com/path", "example.com"),
    ("", ""),
])
def test_domain_from_url(url, expected):
    assert domain_from_url(url) == expected
