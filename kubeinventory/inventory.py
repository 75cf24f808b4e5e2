"""
Inventory pipeline: discovery, probing, aggregation and ordering.

run_inventory drives one run end to end. Candidates from the catalog are
probed one at a time, or through a bounded thread pool when more than one
worker is configured; either way the inventory is sorted only after every
probe has completed, so its order never depends on probe completion order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from kubeinventory.classify import should_report, should_skip
from kubeinventory.config import SORT_MODES
from kubeinventory.errors import DiscoveryError, InventoryCancelled
from kubeinventory.probe import Lister, ObjectProber, ProbeOutcome
from kubeinventory.resources import ResourceCandidate, build_catalog

logger = logging.getLogger(__name__)

_SORT_KEYS: Dict[str, Callable[[ResourceCandidate], str]] = {
    "kind": lambda c: c.kind,
    "name": lambda c: c.plural_name,
    "group": lambda c: c.group,
}


def sort_candidates(candidates: Iterable[ResourceCandidate], sort_by: str = "kind") -> List[ResourceCandidate]:
    """
    Sort candidates by kind, plural name or group, breaking ties by plural name.

    Comparison is case-sensitive and the sort is stable, so candidates that
    tie on both keys keep their discovery order.

    Raises:
        ValueError: If sort_by is not a supported mode
    """
    if sort_by not in _SORT_KEYS:
        raise ValueError(f"sort_by must be one of {', '.join(SORT_MODES)}, got {sort_by!r}")
    primary = _SORT_KEYS[sort_by]
    return sorted(candidates, key=lambda c: (primary(c), c.plural_name))


def deduplicate(candidates: Iterable[ResourceCandidate]) -> List[ResourceCandidate]:
    """Drop candidates whose (group_version, plural_name) was already seen; first wins."""
    seen = set()
    unique = []
    for candidate in candidates:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        unique.append(candidate)
    return unique


@dataclass
class InventoryResult:
    """Resource types holding objects in a namespace, plus what went wrong finding them."""

    namespace: str
    resources: Tuple[ResourceCandidate, ...] = ()
    warnings: List[ProbeOutcome] = field(default_factory=list)
    discovery_errors: List[DiscoveryError] = field(default_factory=list)
    skipped: int = 0
    cancelled: bool = False

    @property
    def complete(self) -> bool:
        """True when nothing was left unprobed or failed unexpectedly."""
        return not (self.warnings or self.discovery_errors or self.cancelled)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "resources": [c.to_dict() for c in self.resources],
            "warnings": [f"{w.candidate.gvk}: {w.error}" for w in self.warnings],
            "discoveryErrors": [str(e) for e in self.discovery_errors],
        }


class InventoryAggregator:
    """
    Thread-safe collector of probe outcomes.

    Each outcome is kept with its position in the catalog, so the result is
    the same whatever order concurrent probes complete in.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._found: List[Tuple[int, ResourceCandidate]] = []
        self._warnings: List[Tuple[int, ProbeOutcome]] = []
        self._skipped = 0
        self._added = 0

    def add(self, outcome: ProbeOutcome, index: Optional[int] = None) -> None:
        """
        Record one outcome.

        Args:
            outcome: Outcome of probing one candidate
            index: Position of the candidate in the catalog; defaults to arrival order
        """
        with self._lock:
            if index is None:
                index = self._added
            self._added += 1

            if not should_skip(outcome.status):
                self._found.append((index, outcome.candidate))
            elif should_report(outcome.status):
                self._warnings.append((index, outcome))
            else:
                self._skipped += 1

    def result(
        self,
        namespace: str,
        sort_by: str = "kind",
        discovery_errors: Optional[List[DiscoveryError]] = None,
        cancelled: bool = False,
    ) -> InventoryResult:
        """Build the sorted, deduplicated inventory from everything collected so far."""
        with self._lock:
            found = [candidate for _, candidate in sorted(self._found, key=lambda entry: entry[0])]
            warnings = [
                outcome
                for _, outcome in sorted(self._warnings, key=lambda entry: (entry[1].candidate.gvk, entry[0]))
            ]
            skipped = self._skipped

        return InventoryResult(
            namespace=namespace,
            resources=tuple(sort_candidates(deduplicate(found), sort_by)),
            warnings=warnings,
            discovery_errors=list(discovery_errors or []),
            skipped=skipped,
            cancelled=cancelled,
        )


class Discovery(Protocol):
    """Anything providing preferred resource lists, such as cluster.DiscoveryClient."""

    def invalidate(self) -> None:
        """Drop cached discovery data."""

    def server_preferred_resources(self) -> Tuple[List[Dict[str, Any]], List[DiscoveryError]]:
        """Return resource lists and the group-versions that failed."""


def _probe_sequentially(
    prober: ObjectProber,
    candidates: Iterable[ResourceCandidate],
    aggregator: InventoryAggregator,
    cancel_event: threading.Event,
) -> None:
    for index, candidate in enumerate(candidates):
        if cancel_event.is_set():
            return
        aggregator.add(prober.probe(candidate), index)


def _probe_in_pool(
    prober: ObjectProber,
    candidates: Iterable[ResourceCandidate],
    aggregator: InventoryAggregator,
    cancel_event: threading.Event,
    workers: int,
) -> None:
    def probe_one(index: int, candidate: ResourceCandidate) -> None:
        # Queued probes that start after cancellation are dropped
        if cancel_event.is_set():
            return
        aggregator.add(prober.probe(candidate), index)

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe") as pool:
        futures = []
        try:
            for index, candidate in enumerate(candidates):
                if cancel_event.is_set():
                    break
                futures.append(pool.submit(probe_one, index, candidate))
            for future in futures:
                future.result()
        except KeyboardInterrupt:
            cancel_event.set()
            raise


def run_inventory(
    namespace: str,
    discovery: Discovery,
    lister: Lister,
    workers: int = 1,
    limit: int = 1,
    sort_by: str = "kind",
    cancel_event: Optional[threading.Event] = None,
    keep_partial: bool = False,
) -> InventoryResult:
    """
    Inventory the namespaced resource types holding objects in a namespace.

    Args:
        namespace: Namespace to probe
        discovery: Source of the server's resource lists; its cache is
            invalidated so every run sees fresh data
        lister: Collaborator issuing the list requests
        workers: Number of concurrent probes; 1 probes sequentially
        limit: Items requested per probe
        sort_by: "kind", "name" or "group"
        cancel_event: Setting it stops scheduling probes
        keep_partial: Return what was collected when cancelled instead of raising

    Discovery failures never stop the run: they are carried in the result
    and whatever was discovered is still probed.

    Returns:
        InventoryResult with the sorted resources and the transient failures

    Raises:
        InventoryCancelled: If the run was cancelled and keep_partial is False
        ValueError: If workers, limit or sort_by is invalid
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    if sort_by not in _SORT_KEYS:
        raise ValueError(f"sort_by must be one of {', '.join(SORT_MODES)}, got {sort_by!r}")
    if cancel_event is None:
        cancel_event = threading.Event()

    discovery.invalidate()
    resource_lists, discovery_errors = discovery.server_preferred_resources()
    for error in discovery_errors:
        logger.warning(f"Discovery incomplete: {error}")

    prober = ObjectProber(lister, namespace, limit=limit)
    aggregator = InventoryAggregator()
    candidates = build_catalog(resource_lists)

    try:
        if workers == 1:
            _probe_sequentially(prober, candidates, aggregator, cancel_event)
        else:
            _probe_in_pool(prober, candidates, aggregator, cancel_event, workers)
    except KeyboardInterrupt:
        logger.info("Interrupted, cancelling inventory run")
        cancel_event.set()

    cancelled = cancel_event.is_set()
    if cancelled and not keep_partial:
        raise InventoryCancelled(f"inventory of namespace {namespace} was cancelled")

    result = aggregator.result(
        namespace, sort_by=sort_by, discovery_errors=discovery_errors, cancelled=cancelled
    )
    logger.info(
        f"Inventory of {namespace}: {len(result.resources)} resource type(s), "
        f"{len(result.warnings)} warning(s), {result.skipped} skipped"
    )
    return result
