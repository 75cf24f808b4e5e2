"""
Object prober: checks whether a resource type holds any object in a namespace.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from kubeinventory.classify import ProbeStatus, classify_exception
from kubeinventory.output import get_output
from kubeinventory.resources import ResourceCandidate

logger = logging.getLogger(__name__)


class Lister(Protocol):
    """Anything that can list objects of a resource type, such as cluster.ObjectLister."""

    def list(self, candidate: ResourceCandidate, namespace: str, limit: Optional[int] = None) -> list:
        """Return the items of the resource type in the namespace."""


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of probing one candidate."""

    candidate: ResourceCandidate
    status: ProbeStatus
    object_count: int = 0
    error: Optional[BaseException] = None

    @property
    def found(self) -> bool:
        return self.status is ProbeStatus.FOUND


class ObjectProber:
    """
    Probe resource types for live objects with a single bounded list request each.

    Failures never propagate: they are classified into the outcome's status.
    """

    def __init__(self, lister: Lister, namespace: str, limit: int = 1):
        """
        Args:
            lister: Collaborator issuing the list requests
            namespace: Namespace to probe
            limit: Items to request per probe; 1 is enough to tell empty from non-empty
        """
        self.lister = lister
        self.namespace = namespace
        self.limit = limit

    def probe(self, candidate: ResourceCandidate) -> ProbeOutcome:
        output = get_output()
        output.verbose(f"processing resource: {candidate.group_version}.{candidate.kind}")

        try:
            items = self.lister.list(candidate, self.namespace, limit=self.limit)
        except Exception as e:
            status = classify_exception(e)
            if status is ProbeStatus.TRANSIENT_ERROR:
                logger.warning(f"Error listing {candidate.gvk} in {self.namespace}: {e}")
            else:
                logger.debug(f"Skipping {candidate.gvk}: {status.description}")
            output.verbose(f"{status.description}, skipping")
            return ProbeOutcome(candidate=candidate, status=status, error=e)

        count = len(items)
        if count > 0:
            output.verbose(f"{count} object(s) found")
            return ProbeOutcome(candidate=candidate, status=ProbeStatus.FOUND, object_count=count)

        output.verbose("0 objects found, skipping")
        return ProbeOutcome(candidate=candidate, status=ProbeStatus.EMPTY)
