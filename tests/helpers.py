"""Builders shared by the test modules."""

from kubeinventory.resources import ResourceCandidate


def make_candidate(kind, plural, group="", version="v1", verbs=("list", "get")):
    """Build a namespaced ResourceCandidate."""
    return ResourceCandidate(
        group=group,
        version=version,
        kind=kind,
        plural_name=plural,
        namespaced=True,
        verbs=frozenset(verbs),
    )


def resource(name, kind, namespaced=True, verbs=("list", "get")):
    """Build an APIResource dictionary as discovery returns it."""
    return {"name": name, "kind": kind, "namespaced": namespaced, "verbs": list(verbs)}
