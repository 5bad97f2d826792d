"""Reconstruction of the resources a KieApp currently owns in the cluster."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .compare import ResourceMap
from .errors import ClusterError, NotFoundError
from .kube import KieAppAPI
from .resources.base import MANAGED_KINDS, Kind, Resource

_LOG = logging.getLogger(__name__)

# Secrets are not listed in bulk; they are loaded through the volumes of these workloads.
_SECRET_MOUNTING_KINDS = (Kind.DEPLOYMENT_CONFIG, Kind.STATEFUL_SET)


class OwnershipIndex:
    """Resources grouped by the UIDs listed in their owner references."""

    def __init__(self) -> None:
        self._owned: Dict[str, List[Resource]] = {}

    @classmethod
    def build(cls, resources: Iterable[Resource]) -> "OwnershipIndex":
        index = cls()
        for resource in resources:
            index.add(resource)
        return index

    def add(self, resource: Resource) -> None:
        for uid in {ref.get("uid") for ref in resource.owner_references if ref.get("uid")}:
            self._owned.setdefault(uid, []).append(resource)

    def owned_by(self, uid: str) -> List[Resource]:
        return list(self._owned.get(uid, []))


class InventoryBuilder:
    """Lists every managed kind in a namespace and keeps what a given KieApp owns."""

    def __init__(self, api: KieAppAPI, logger: Optional[logging.Logger] = None) -> None:
        self.api = api
        self.log = logger or _LOG

    def build(self, uid: str, namespace: str) -> ResourceMap:
        """Return the owned resources per kind.

        Any error other than a missing Secret propagates to the caller.
        """

        inventory: ResourceMap = {}
        for kind in MANAGED_KINDS:
            if kind is Kind.SECRET:
                continue
            try:
                items = self.api.list(kind, namespace)
            except ClusterError:
                self.log.warning("Failed to list %s in namespace %s", kind, namespace)
                raise
            index = OwnershipIndex.build(Resource.from_dict(item) for item in items)
            inventory[kind] = index.owned_by(uid)

        workloads = [resource for kind in _SECRET_MOUNTING_KINDS for resource in inventory[kind]]
        inventory[Kind.SECRET] = self._mounted_secrets(uid, namespace, workloads)
        return inventory

    def _mounted_secrets(self, uid: str, namespace: str, workloads: List[Resource]) -> List[Resource]:
        secrets: List[Resource] = []
        seen = set()
        for workload in workloads:
            for secret_name in _secret_volume_names(workload):
                if secret_name in seen:
                    continue
                seen.add(secret_name)
                try:
                    body = self.api.get(Kind.SECRET, secret_name, namespace)
                except NotFoundError:
                    self.log.debug("Secret %s mounted by %s/%s not found", secret_name, workload.kind, workload.name)
                    continue
                except ClusterError:
                    self.log.warning("Failed to load Secret %s", secret_name)
                    raise
                secret = Resource.from_dict(body)
                if secret.is_owned_by(uid):
                    secrets.append(secret)
        return secrets


def _secret_volume_names(workload: Resource) -> List[str]:
    pod_spec = ((workload.spec or {}).get("template") or {}).get("spec") or {}
    names: List[str] = []
    for volume in pod_spec.get("volumes") or []:
        secret = volume.get("secret")
        if secret and secret.get("secretName"):
            names.append(secret["secretName"])
    return names
