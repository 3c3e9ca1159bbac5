import structlog

from .models import HttpMethod
from .utils import url_problem

logger = structlog.get_logger(__name__)

SUPPORTED_METHODS = tuple(m.value for m in HttpMethod)


def validate_request(url: str, method: str) -> dict:
    """Check url and method before any network activity.

    Returns a dict with ``valid`` and ``reason``; on success ``method`` holds
    the canonical upper-case verb.
    """
    problem = url_problem(url)
    if problem:
        return {
            "valid": False,
            "reason": problem
        }

    if not method:
        return {
            "valid": False,
            "reason": "HTTP method cannot be empty"
        }

    canonical = method.upper()
    if canonical not in SUPPORTED_METHODS:
        return {
            "valid": False,
            "reason": f"Unsupported HTTP method: {method}"
        }

    logger.debug("request_validated", url=url, method=canonical)
    return {
        "valid": True,
        "reason": "",
        "method": canonical
    }
