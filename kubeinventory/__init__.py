"""
Kubeinventory - Find the namespaced Kubernetes resource types that hold objects, for backup and migration.
"""

from kubeinventory.resources import ResourceCandidate, build_catalog, parse_group_version
from kubeinventory.classify import ProbeStatus, classify_exception
from kubeinventory.probe import ObjectProber, ProbeOutcome
from kubeinventory.inventory import (
    InventoryAggregator,
    InventoryResult,
    deduplicate,
    run_inventory,
    sort_candidates,
)
from kubeinventory.cluster import DiscoveryClient, NamespaceResolver, ObjectLister, connect
from kubeinventory.config import Config
from kubeinventory.errors import (
    ConfigError,
    DiscoveryError,
    InventoryCancelled,
    InventoryError,
    ProbeError,
)

__all__ = [
    "ResourceCandidate",
    "build_catalog",
    "parse_group_version",
    "ProbeStatus",
    "classify_exception",
    "ObjectProber",
    "ProbeOutcome",
    "InventoryAggregator",
    "InventoryResult",
    "deduplicate",
    "run_inventory",
    "sort_candidates",
    "DiscoveryClient",
    "NamespaceResolver",
    "ObjectLister",
    "connect",
    "Config",
    "ConfigError",
    "DiscoveryError",
    "InventoryCancelled",
    "InventoryError",
    "ProbeError",
]

__version__ = "0.1.0"
