"""
Resource candidates and the catalog builder.

Turns the API resource lists advertised by the cluster into a flat stream of
namespaced, listable resource types worth probing.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Tuple

from kubeinventory.output import get_output

logger = logging.getLogger(__name__)


def parse_group_version(value: str) -> Tuple[str, str]:
    """
    Split a group-version string into its group and version.

    Args:
        value: Group-version such as "apps/v1", or "v1" for the core group

    Returns:
        Tuple of (group, version); the group is empty for the core group

    Raises:
        ValueError: If the string is not a valid group-version
    """
    if not value:
        return "", ""
    parts = value.split("/")
    if len(parts) == 1:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise ValueError(f"unexpected GroupVersion string: {value}")


def join_group_version(group: str, version: str) -> str:
    """Return "group/version", or just the version for the core group."""
    return f"{group}/{version}" if group else version


@dataclass(frozen=True)
class ResourceCandidate:
    """One API resource type that may hold objects in the namespace."""

    group: str
    version: str
    kind: str
    plural_name: str
    namespaced: bool = True
    verbs: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def group_version(self) -> str:
        return join_group_version(self.group, self.version)

    @property
    def gvk(self) -> str:
        """Group/version/kind identifier, e.g. "apps/v1/Deployment" or "v1/Pod"."""
        return f"{self.group_version}/{self.kind}"

    @property
    def key(self) -> Tuple[str, str]:
        return self.group_version, self.plural_name

    def to_dict(self) -> Dict[str, str]:
        return {
            "group": self.group,
            "version": self.version,
            "kind": self.kind,
            "resource": self.plural_name,
        }


def build_catalog(resource_lists: Iterable[Dict[str, Any]]) -> Iterator[ResourceCandidate]:
    """
    Yield a candidate for every namespaced, listable resource advertised by the cluster.

    Resource lists with a malformed groupVersion are skipped silently.
    Subresources, resources without verbs and cluster-scoped resources are
    skipped too; cluster-scoped ones are reported as a verbose note.

    Args:
        resource_lists: APIResourceList dictionaries as returned by discovery

    Yields:
        ResourceCandidate for each resource worth probing
    """
    output = get_output()

    for resource_list in resource_lists:
        api_resources = resource_list.get("resources") or []
        if not api_resources:
            continue

        try:
            group, version = parse_group_version(resource_list.get("groupVersion", ""))
        except ValueError as e:
            logger.debug(f"Skipping resource list: {e}")
            continue
        group_version = join_group_version(group, version)

        for resource in api_resources:
            name = resource.get("name", "")
            kind = resource.get("kind", "")

            if "/" in name:
                continue

            verbs = resource.get("verbs") or []
            if not verbs:
                continue

            if not resource.get("namespaced", False):
                logger.debug(f"Resource {group_version}.{kind} is cluster-scoped, skipping")
                output.verbose(f"resource: {group_version}.{kind} is clusterscoped, skipping")
                continue

            yield ResourceCandidate(
                group=group,
                version=version,
                kind=kind,
                plural_name=name,
                namespaced=True,
                verbs=frozenset(verbs),
            )
