"""Comparison of deployed resources against the requested ones."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from .resources.base import Kind, Resource, ResourceKey

Comparator = Callable[[Resource, Resource], bool]
ResourceMap = Dict[Kind, List[Resource]]

# Populated by the cluster once a Route is admitted.
_ROUTE_HOST_ANNOTATION = "openshift.io/host.generated"


@dataclass
class Delta:
    added: List[Resource] = field(default_factory=list)
    updated: List[Resource] = field(default_factory=list)
    removed: List[Resource] = field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.removed)


def resource_map(resources: Iterable[Resource]) -> ResourceMap:
    """Group resources by kind."""

    grouped: ResourceMap = {}
    for resource in resources:
        grouped.setdefault(resource.kind, []).append(resource)
    return grouped


def equal_content(deployed: Resource, requested: Resource) -> bool:
    return deployed.content() == requested.content()


def equal_secrets(deployed: Resource, requested: Resource) -> bool:
    """Compare Secrets ignoring payload values, which may be regenerated or rotated."""

    return equal_content(_mask_secret_data(deployed), _mask_secret_data(requested))


def equal_routes(deployed: Resource, requested: Resource) -> bool:
    """Compare Routes, tolerating the hostname the cluster assigns when none was requested."""

    requested_host = (requested.spec or {}).get("host")
    if not requested_host:
        deployed = _without_route_host(deployed)
        requested = _without_route_host(requested)
    return equal_content(deployed, requested)


def equal_services(deployed: Resource, requested: Resource) -> bool:
    """Compare Services without the cluster IPs allocated by the API server."""

    return equal_content(_without_cluster_ip(deployed), _without_cluster_ip(requested))


def _mask_secret_data(secret: Resource) -> Resource:
    extra = dict(secret.extra)
    for payload in ("data", "stringData"):
        if extra.get(payload):
            extra[payload] = {key: "" for key in extra[payload]}
    return replace(secret, extra=extra)


def _without_route_host(route: Resource) -> Resource:
    spec = dict(route.spec or {})
    spec.pop("host", None)
    annotations = dict(route.annotations)
    annotations.pop(_ROUTE_HOST_ANNOTATION, None)
    return replace(route.with_metadata(annotations=annotations or None), spec=spec)


def _without_cluster_ip(service: Resource) -> Resource:
    spec = dict(service.spec or {})
    spec.pop("clusterIP", None)
    spec.pop("clusterIPs", None)
    return replace(service, spec=spec)


DEFAULT_COMPARATORS: Mapping[Kind, Comparator] = {
    Kind.SECRET: equal_secrets,
    Kind.ROUTE: equal_routes,
    Kind.SERVICE: equal_services,
}


class ResourceComparator:
    """Partitions requested and deployed resources into added, updated and removed sets.

    Existence is decided by identity (kind, namespace, name); drift is decided by the
    comparator registered for the kind, falling back to ``equal_content``.
    """

    def __init__(self, comparators: Optional[Mapping[Kind, Comparator]] = None) -> None:
        table = dict(DEFAULT_COMPARATORS)
        if comparators:
            table.update(comparators)
        self._comparators: Mapping[Kind, Comparator] = table

    def comparator(self, kind: Kind) -> Comparator:
        return self._comparators.get(kind, equal_content)

    def compare(self, deployed: ResourceMap, requested: ResourceMap) -> Dict[Kind, Delta]:
        deltas: Dict[Kind, Delta] = {}
        for kind in set(deployed) | set(requested):
            deltas[kind] = self.compare_kind(kind, deployed.get(kind, []), requested.get(kind, []))
        return deltas

    def compare_kind(self, kind: Kind, deployed: List[Resource], requested: List[Resource]) -> Delta:
        equal = self.comparator(kind)
        deployed_by_key: Dict[ResourceKey, Resource] = {resource.key: resource for resource in deployed}
        requested_by_key: Dict[ResourceKey, Resource] = {resource.key: resource for resource in requested}

        delta = Delta()
        for key, wanted in requested_by_key.items():
            existing = deployed_by_key.get(key)
            if existing is None:
                delta.added.append(wanted)
            elif not equal(existing, wanted):
                delta.updated.append(wanted)
        for key, existing in deployed_by_key.items():
            if key not in requested_by_key:
                delta.removed.append(existing)
        return delta
