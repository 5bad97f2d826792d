"""Creation, update and removal of resources owned by a KieApp."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .compare import Delta, ResourceMap
from .kube import KieAppAPI
from .resources.base import Kind, Resource
from .resources.kieapp import KieApp

_LOG = logging.getLogger(__name__)


def with_owner(resource: Resource, cr: KieApp) -> Resource:
    """Return ``resource`` with the KieApp recorded as its controlling owner."""

    owner = cr.owner_reference()
    references = [ref for ref in resource.owner_references if ref.get("uid") != owner["uid"]]
    references.append(owner)
    return resource.with_metadata(ownerReferences=references)


class ResourceWriter:
    def __init__(self, api: KieAppAPI, logger: Optional[logging.Logger] = None) -> None:
        self.api = api
        self.log = logger or _LOG

    def apply(self, cr: KieApp, deployed: ResourceMap, deltas: Dict[Kind, Delta]) -> bool:
        """Apply each kind's delta in the order added, updated, removed.

        Returns whether anything was written.
        """

        has_updates = False
        for kind, delta in deltas.items():
            if not delta.has_changes():
                continue
            self.log.debug(
                "Will create %d, update %d, and delete %d instances of %s",
                len(delta.added),
                len(delta.updated),
                len(delta.removed),
                kind,
            )
            added = self.add_resources(cr, delta.added)
            updated = self.update_resources(cr, deployed.get(kind, []), delta.updated)
            removed = self.remove_resources(delta.removed)
            has_updates = has_updates or added or updated or removed
        return has_updates

    def add_resources(self, cr: KieApp, resources: Iterable[Resource]) -> bool:
        added = False
        for resource in resources:
            self.log.info("Creating %s/%s", resource.kind, resource.name)
            self.api.create(with_owner(resource, cr))
            added = True
        return added

    def update_resources(self, cr: KieApp, deployed: List[Resource], resources: Iterable[Resource]) -> bool:
        by_key = {resource.key: resource for resource in deployed}
        updated = False
        for resource in resources:
            existing = by_key.get(resource.key)
            if existing is None:
                self.log.warning("No deployed %s/%s to update", resource.kind, resource.name)
                continue
            body = with_owner(resource, cr)
            if resource.kind is Kind.SERVICE:
                body = _keep_cluster_ip(body, existing)
            self.log.info("Updating %s/%s", resource.kind, resource.name)
            self.api.update(body, expected_version=existing.resource_version)
            updated = True
        return updated

    def remove_resources(self, resources: Iterable[Resource]) -> bool:
        removed = False
        for resource in resources:
            self.log.info("Deleting %s/%s", resource.kind, resource.name)
            self.api.delete(resource.kind, resource.name, resource.namespace)
            removed = True
        return removed


def _keep_cluster_ip(service: Resource, existing: Resource) -> Resource:
    cluster_ip = (existing.spec or {}).get("clusterIP")
    if not cluster_ip:
        return service
    body = service.to_dict()
    body.setdefault("spec", {})["clusterIP"] = cluster_ip
    return Resource.from_dict(body)
