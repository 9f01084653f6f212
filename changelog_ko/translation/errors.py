"""
Map failed provider responses to an ``ErrorKind``.

The same HTTP status (usually 429) can mean a transient per-minute rate limit
or a spent daily/account quota, so the body is inspected for quota markers.
"""

import json
from typing import Any, Optional, Union

from changelog_ko.core.exceptions import ErrorKind

SERVER_STATUSES = frozenset({408, 500, 502, 503, 504})

QUOTA_MARKERS = (
    "daily",
    "per day",
    "perday",
    "insufficient_quota",
    "exceeded your current quota",
    "billing",
    "quota exhausted",
)
RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests", "resource_exhausted")
OVERLOAD_MARKERS = ("overloaded", "unavailable", "high demand")


def _parse_body(body: Union[str, bytes, dict, None]) -> Any:
    if body is None:
        return None
    if isinstance(body, dict):
        return body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        return json.loads(body)
    except (TypeError, ValueError):
        return None


def _error_object(body) -> dict:
    parsed = _parse_body(body)
    if isinstance(parsed, dict):
        error = parsed.get("error", parsed)
        if isinstance(error, dict):
            return error
    return {}


def _body_text(body) -> str:
    if body is None:
        return ""
    if isinstance(body, dict):
        return json.dumps(body).lower()
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return str(body).lower()


def is_daily_quota_exhausted(body) -> bool:
    """
    True if the body signals a daily or account-level quota.

    Checks Google-style ``details[].metadata.quota_limit`` values containing
    ``PerDay`` and quota wording in the error message or code.
    """
    error = _error_object(body)

    for detail in error.get("details") or []:
        if not isinstance(detail, dict):
            continue
        metadata = detail.get("metadata") or {}
        quota_limit = str(metadata.get("quota_limit", "")) if isinstance(metadata, dict) else ""
        if "perday" in quota_limit.lower():
            return True
        for violation in detail.get("violations") or []:
            quota_id = str(violation.get("quotaId", "")) if isinstance(violation, dict) else ""
            if "perday" in quota_id.lower():
                return True

    code = str(error.get("code", "")).lower()
    error_type = str(error.get("type", "")).lower()
    if code == "insufficient_quota" or error_type == "insufficient_quota":
        return True

    message = str(error.get("message", "")).lower() if error else _body_text(body)
    return any(marker in message for marker in QUOTA_MARKERS)


def _mentions_rate_limit(body) -> bool:
    error = _error_object(body)
    if str(error.get("code", "")).lower() == "rate_limit_exceeded":
        return True
    text = _body_text(body)
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


def classify_http_error(status: Optional[int], body=None) -> ErrorKind:
    """
    Classify a non-success response.

    Args:
        status: HTTP status code (None when no response arrived)
        body: Raw response body (str, bytes or parsed dict)

    Returns:
        The ErrorKind that decides retry vs. escalate
    """
    if status is None:
        return ErrorKind.UNKNOWN
    if status in (401, 403):
        return ErrorKind.AUTH
    if status == 429:
        return ErrorKind.QUOTA if is_daily_quota_exhausted(body) else ErrorKind.RATE_LIMIT
    if status in SERVER_STATUSES:
        return ErrorKind.SERVER
    if status == 404:
        return ErrorKind.CLIENT
    if 400 <= status < 500:
        if is_daily_quota_exhausted(body):
            return ErrorKind.QUOTA
        if _mentions_rate_limit(body):
            return ErrorKind.RATE_LIMIT
        return ErrorKind.CLIENT
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def is_overload(status: Optional[int], body=None) -> bool:
    """True if the failure looks like sustained backend overload."""
    if status == 503:
        return True
    if status is not None and status >= 500:
        text = _body_text(body)
        return any(marker in text for marker in OVERLOAD_MARKERS)
    return False
