"""Versioning of generated ConfigMaps and housekeeping of server ConfigMaps."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Tuple

from . import constants
from .errors import AlreadyExistsError, ClusterError, NotFoundError
from .kube import KieAppAPI
from .resources.base import Kind, Resource
from .resources.environment import Environment
from .resources.kieapp import KieApp

_LOG = logging.getLogger(__name__)


def is_test_fixture(name: str) -> bool:
    parts = name.split("-")
    return len(parts) > 1 and parts[1] == "testdata"


def backup_name(artifact: Resource) -> str:
    """``<name>-bak``, or ``<name>-<version>-bak`` when annotated with the API group version."""

    version = artifact.annotations.get(constants.API_GROUP)
    if version:
        return "-".join([artifact.name, version, "bak"])
    return "-".join([artifact.name, "bak"])


def same_data(first: Resource, second: Resource) -> bool:
    return (first.extra.get("data") or {}) == (second.extra.get("data") or {}) and (
        first.extra.get("binaryData") or {}
    ) == (second.extra.get("binaryData") or {})


class ConfigArtifactVersioner:
    """Creates generated ConfigMaps and keeps one backup of the previous generation."""

    def __init__(self, api: KieAppAPI, logger: Optional[logging.Logger] = None) -> None:
        self.api = api
        self.log = logger or _LOG

    def reconcile_artifacts(self, artifacts: Iterable[Resource]) -> None:
        for artifact in artifacts:
            if is_test_fixture(artifact.name):
                continue
            existing, found = self._create_or_get(artifact)
            if not found or same_data(artifact, existing):
                continue
            self.log.info("Differences detected in %s ConfigMap.", artifact.name)
            backup = existing.sanitized().with_metadata(name=backup_name(artifact), ownerReferences=None)
            existing_backup, backup_found = self._create_or_get(backup)
            if backup_found and not same_data(backup, existing_backup):
                self._overwrite_data(existing_backup, backup)

    def _create_or_get(self, artifact: Resource) -> Tuple[Optional[Resource], bool]:
        """Return the live ConfigMap and ``True``, or create it and return ``False``."""

        try:
            body = self.api.get(Kind.CONFIG_MAP, artifact.name, artifact.namespace)
        except NotFoundError:
            self.log.info("Creating ConfigMap %s/%s", artifact.namespace, artifact.name)
            try:
                self.api.create(artifact)
            except AlreadyExistsError:
                self.log.debug("ConfigMap %s/%s created concurrently", artifact.namespace, artifact.name)
            except ClusterError as exc:
                self.log.warning("Failed to create ConfigMap %s: %s", artifact.name, exc)
            return None, False
        except ClusterError as exc:
            self.log.error("Failed to get ConfigMap %s: %s", artifact.name, exc)
            return None, False
        return Resource.from_dict(body), True

    def _overwrite_data(self, existing: Resource, source: Resource) -> None:
        body = existing.to_dict()
        for payload in ("data", "binaryData"):
            if source.extra.get(payload):
                body[payload] = dict(source.extra[payload])
            else:
                body.pop(payload, None)
        self.log.info("Updating backup ConfigMap %s", existing.name)
        try:
            self.api.update(body, expected_version=existing.resource_version)
        except ClusterError as exc:
            self.log.warning("Failed to update backup ConfigMap %s: %s", existing.name, exc)

    def detach_orphaned_server_configs(self, cr: KieApp, environment: Environment) -> None:
        """Mark ConfigMaps of scaled-down servers as ``DETACHED``.

        Only ConfigMaps owned by a server DeploymentConfig that requests zero
        replicas and reports zero available replicas are relabelled.
        """

        try:
            config_maps = self.api.list(Kind.CONFIG_MAP, cr.namespace)
        except ClusterError as exc:
            self.log.warning("Failed to list ConfigMaps. %s", exc)
            return

        replicas: Dict[str, int] = {}
        for server in environment.servers:
            for dc in server.deployment_configs:
                replicas[dc.name] = (dc.spec or {}).get("replicas", 1)

        for body in config_maps:
            config_map = Resource.from_dict(body)
            state = config_map.labels.get(constants.KIE_SERVER_CM_LABEL)
            if not state or state == constants.DETACHED:
                continue
            for owner in config_map.owner_references:
                if owner.get("kind") != Kind.DEPLOYMENT_CONFIG.kind or replicas.get(owner.get("name"), 0) != 0:
                    continue
                if self._available_replicas(owner["name"], cr.namespace) == 0:
                    self._detach(config_map)
                break

    def _available_replicas(self, name: str, namespace: str) -> Optional[int]:
        try:
            body = self.api.get(Kind.DEPLOYMENT_CONFIG, name, namespace)
        except NotFoundError:
            return 0
        except ClusterError as exc:
            self.log.error("Failed to get DeploymentConfig %s: %s", name, exc)
            return None
        return (body.get("status") or {}).get("availableReplicas", 0)

    def _detach(self, config_map: Resource) -> None:
        labels = dict(config_map.labels)
        labels[constants.KIE_SERVER_CM_LABEL] = constants.DETACHED
        self.log.info("%s replicas set to zero so relabeling associated ConfigMap as DETACHED", config_map.name)
        try:
            self.api.update(config_map.with_metadata(labels=labels), expected_version=config_map.resource_version)
        except ClusterError as exc:
            self.log.error("Failed to relabel ConfigMap %s: %s", config_map.name, exc)
