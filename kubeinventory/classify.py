"""
Classification of probe failures.

Maps an exception raised while listing a resource to a ProbeStatus, and
decides whether the failure is skipped silently or reported to the operator.
"""

import json
from enum import Enum

from kubernetes.client.rest import ApiException


class ProbeStatus(Enum):
    """Result of probing one resource type for live objects."""

    FOUND = "Found"
    EMPTY = "Empty"
    FORBIDDEN = "Forbidden"
    UNSUPPORTED = "Unsupported"
    NOT_FOUND = "NotFound"
    TRANSIENT_ERROR = "TransientError"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    ProbeStatus.FOUND: "objects found",
    ProbeStatus.EMPTY: "0 objects found",
    ProbeStatus.FORBIDDEN: "cannot list objects in namespace",
    ProbeStatus.UNSUPPORTED: "list method not supported on the resource",
    ProbeStatus.NOT_FOUND: "resource not found, most likely a virtual resource",
    ProbeStatus.TRANSIENT_ERROR: "error listing objects",
}

# Status reasons as sent in a metav1.Status body, with their HTTP codes
_REASON_STATUSES = {
    "Forbidden": ProbeStatus.FORBIDDEN,
    "MethodNotAllowed": ProbeStatus.UNSUPPORTED,
    "NotFound": ProbeStatus.NOT_FOUND,
}
_CODE_STATUSES = {
    403: ProbeStatus.FORBIDDEN,
    405: ProbeStatus.UNSUPPORTED,
    404: ProbeStatus.NOT_FOUND,
}
# Every reason the API server defines; a known reason outside _REASON_STATUSES
# is not reinterpreted through its HTTP code
_KNOWN_REASONS = frozenset(
    {
        "Unauthorized",
        "Forbidden",
        "NotFound",
        "AlreadyExists",
        "Conflict",
        "Gone",
        "Invalid",
        "ServerTimeout",
        "StoreReadError",
        "Timeout",
        "TooManyRequests",
        "BadRequest",
        "MethodNotAllowed",
        "NotAcceptable",
        "RequestEntityTooLarge",
        "UnsupportedMediaType",
        "InternalError",
        "Expired",
        "ServiceUnavailable",
    }
)


def _status_reason(exc: ApiException) -> str:
    """Return the reason field of the Status body carried by an ApiException, if any."""
    body = getattr(exc, "body", None)
    if not body:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        status = json.loads(body)
    except (TypeError, ValueError):
        return ""
    if isinstance(status, dict) and status.get("kind", "Status") == "Status":
        return status.get("reason") or ""
    return ""


def classify_exception(exc: BaseException) -> ProbeStatus:
    """
    Map a probe failure to a ProbeStatus.

    The Status reason wins over the HTTP code when the server sent one. The
    HTTP code only decides when the reason is missing or unknown, so a 403
    whose reason is Unauthorized is transient, not forbidden. Any exception
    that is not an ApiException is a transient error.

    Args:
        exc: Exception raised by the object lister

    Returns:
        The ProbeStatus for the failure (never FOUND or EMPTY)
    """
    if not isinstance(exc, ApiException):
        return ProbeStatus.TRANSIENT_ERROR

    reason = _status_reason(exc)
    if reason in _REASON_STATUSES:
        return _REASON_STATUSES[reason]
    if reason in _KNOWN_REASONS:
        return ProbeStatus.TRANSIENT_ERROR
    return _CODE_STATUSES.get(exc.status, ProbeStatus.TRANSIENT_ERROR)


def should_skip(status: ProbeStatus) -> bool:
    """Every status except FOUND keeps the candidate out of the inventory."""
    return status is not ProbeStatus.FOUND


def should_report(status: ProbeStatus) -> bool:
    """Only transient errors are surfaced to the operator alongside the inventory."""
    return status is ProbeStatus.TRANSIENT_ERROR
