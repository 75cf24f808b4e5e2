"""
Error taxonomy for kubeinventory.

Errors are split by how the run reacts to them:
ConfigError stops the run before any probing.
DiscoveryError degrades the run; whatever was discovered is still probed.
ProbeError subclasses never escape the prober, they become outcome statuses.
InventoryCancelled means the run was cancelled and its results discarded.
"""

from typing import Optional


class InventoryError(Exception):
    """Base class for all kubeinventory exceptions."""


class ConfigError(InventoryError):
    """Raised when no active context or namespace can be resolved."""


class DiscoveryError(InventoryError):
    """Raised or recorded when the API server's resource discovery fails."""

    def __init__(self, message: str, group_version: Optional[str] = None):
        super().__init__(message)
        self.group_version = group_version


class InventoryCancelled(InventoryError):
    """Raised when a run is cancelled before all probes completed."""


class ProbeError(InventoryError):
    """A probe of one resource type failed."""

    status = None

    def __init__(self, message: str, candidate=None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.candidate = candidate
        self.cause = cause


class ForbiddenError(ProbeError):
    """The caller may not list this resource in the namespace."""


class UnsupportedError(ProbeError):
    """The resource does not support the list verb."""


class ResourceNotFoundError(ProbeError):
    """The resource type has no backing endpoint (virtual or aggregated)."""


class TransientProbeError(ProbeError):
    """Any other probe failure: network, serialization, timeout, 5xx."""


def probe_error_for(outcome) -> ProbeError:
    """
    Build the ProbeError subclass matching a failed ProbeOutcome.

    Args:
        outcome: A ProbeOutcome whose status is not FOUND or EMPTY

    Returns:
        ProbeError instance describing the failure

    Raises:
        ValueError: If the outcome did not fail
    """
    from kubeinventory.classify import ProbeStatus

    error_types = {
        ProbeStatus.FORBIDDEN: ForbiddenError,
        ProbeStatus.UNSUPPORTED: UnsupportedError,
        ProbeStatus.NOT_FOUND: ResourceNotFoundError,
        ProbeStatus.TRANSIENT_ERROR: TransientProbeError,
    }
    error_type = error_types.get(outcome.status)
    if error_type is None:
        raise ValueError(f"Outcome for {outcome.candidate.gvk} is not a failure: {outcome.status}")

    message = f"{outcome.status.description} for {outcome.candidate.gvk}"
    if outcome.error is not None:
        message = f"{message}: {outcome.error}"
    error = error_type(message, candidate=outcome.candidate, cause=outcome.error)
    error.status = outcome.status
    return error
