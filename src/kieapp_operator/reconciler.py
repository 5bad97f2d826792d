"""Reconciliation of a single KieApp against the cluster.

A pass reads the KieApp, makes sure its routes exist, computes the requested
resources, diffs them against what the KieApp owns and applies the difference.
Writes to the KieApp itself are guarded by the resourceVersion read at the
start of the pass; a stale version ends the pass with a requeue.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from . import status
from .compare import ResourceComparator, resource_map
from .compiler import TemplateCompiler
from .config import OperatorSettings
from .configmaps import ConfigArtifactVersioner
from .errors import ClusterError, ConfigurationError, ConflictError, NotFoundError
from .images import ImageResolver
from .inventory import InventoryBuilder
from .kube import KieAppAPI
from .resources.base import Kind, Resource
from .resources.environment import Environment
from .resources.kieapp import KieApp, ReasonType
from .routes import RouteProvisioner, requested_routes
from .write import ResourceWriter

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a pass; errors are raised instead of returned."""

    requeue: bool = False
    requeue_after: Optional[timedelta] = None

    @classmethod
    def done(cls) -> "ReconcileResult":
        return cls()

    @classmethod
    def again(cls) -> "ReconcileResult":
        return cls(requeue=True)

    @classmethod
    def after(cls, delay: timedelta) -> "ReconcileResult":
        return cls(requeue=True, requeue_after=delay)


class Reconciler:
    """Drives the resources of one KieApp toward the state its spec declares."""

    def __init__(
        self,
        api: KieAppAPI,
        compiler: TemplateCompiler,
        settings: Optional[OperatorSettings] = None,
        comparator: Optional[ResourceComparator] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.api = api
        self.compiler = compiler
        self.settings = settings or OperatorSettings()
        self.log = logger or _LOG
        self.comparator = comparator or ResourceComparator()
        self.writer = ResourceWriter(api, self.log)
        self.inventory = InventoryBuilder(api, self.log)
        self.routes = RouteProvisioner(api, compiler, self.writer, self.log)
        self.images = ImageResolver(api, self.settings, self.log)
        self.artifacts = ConfigArtifactVersioner(api, self.log)

    def reconcile(self, namespace: str, name: str) -> ReconcileResult:
        try:
            instance = self._read(namespace, name)
        except NotFoundError:
            # Deleted after the request was queued; owned objects are garbage collected.
            return ReconcileResult.done()

        try:
            return self._reconcile(instance)
        except ConflictError as exc:
            self.log.info("Conflict while reconciling %s/%s, requeueing: %s", namespace, name, exc)
            return ReconcileResult.again()

    def _reconcile(self, instance: KieApp) -> ReconcileResult:
        try:
            environment = self.compiler.compile(instance)
        except ConfigurationError as exc:
            self._set_failed_status(instance, ReasonType.CONFIGURATION_ERROR, exc)
            raise

        routes = requested_routes(environment, instance.namespace)
        deployed_routes, created = self.routes.resolve_missing_routes(instance, routes)
        if created:
            # Requeue after a little while to load the routes and their hostnames.
            return ReconcileResult.after(timedelta(seconds=self.settings.route_requeue_delay))

        environment = self.routes.set_hosts_and_certs(instance, environment, deployed_routes)
        requested = [
            resource.with_namespace(instance.namespace)
            for resource in self._requested_resources(instance, environment)
        ]

        try:
            deployed = self.inventory.build(instance.uid or "", instance.namespace)
        except ClusterError as exc:
            self._set_failed_status(instance, ReasonType.UNKNOWN, exc)
            raise
        status.set_deployments(instance, deployed.get(Kind.DEPLOYMENT_CONFIG, []), self.log)

        deltas = self.comparator.compare(deployed, resource_map(requested))
        has_updates = self.writer.apply(instance, deployed, deltas)
        if has_updates and status.set_provisioning(instance, self.log):
            return self._update_instance(instance)

        self.artifacts.reconcile_artifacts(self.compiler.config_artifacts(instance))
        self.artifacts.detach_orphaned_server_configs(instance, environment)

        try:
            cached = self._read(instance.namespace, instance.name)
        except NotFoundError:
            return ReconcileResult.done()
        except ClusterError as exc:
            self._set_failed_status(instance, ReasonType.UNKNOWN, exc)
            raise

        fresh = instance.resource_version == cached.resource_version
        if instance.spec != cached.spec:
            if status.set_provisioning(instance, self.log) and fresh:
                return self._update_instance(instance)
            return ReconcileResult.again()
        if instance.status != cached.status:
            if fresh:
                return self._update_instance(instance)
            return ReconcileResult.again()
        if status.set_deployed(instance, self.log):
            if fresh:
                return self._update_instance(instance)
            return ReconcileResult.again()
        return ReconcileResult.done()

    def _requested_resources(self, cr: KieApp, environment: Environment) -> List[Resource]:
        resources: List[Resource] = []
        for component in environment.active_components():
            for resource in component.resources:
                if resource.kind is Kind.DEPLOYMENT_CONFIG and not component.build_configs:
                    resource = self._resolve_trigger_images(resource, cr)
                elif resource.kind is Kind.BUILD_CONFIG:
                    resource = self._resolve_build_image(resource, cr)
                resources.append(resource)
        return resources

    def _resolve_trigger_images(self, dc: Resource, cr: KieApp) -> Resource:
        body = dc.to_dict()
        for trigger in (body.get("spec") or {}).get("triggers") or []:
            if trigger.get("type") != "ImageChange":
                continue
            source = (trigger.get("imageChangeParams") or {}).get("from") or {}
            if source.get("name"):
                source["namespace"] = self.images.ensure_local_tag(source["name"], source.get("namespace"), cr)
        return Resource.from_dict(body)

    def _resolve_build_image(self, bc: Resource, cr: KieApp) -> Resource:
        body = bc.to_dict()
        strategy = (body.get("spec") or {}).get("strategy") or {}
        if strategy.get("type") != "Source":
            return bc
        source = (strategy.get("sourceStrategy") or {}).get("from") or {}
        if source.get("name"):
            source["namespace"] = self.images.ensure_local_tag(source["name"], source.get("namespace"), cr)
        return Resource.from_dict(body)

    def _read(self, namespace: str, name: str) -> KieApp:
        return KieApp.from_dict(self.api.get(Kind.KIE_APP, name, namespace))

    def _update_instance(self, instance: KieApp) -> ReconcileResult:
        self.log.info("Updating %s/%s", instance.kind, instance.name)
        try:
            self.api.update(instance.to_dict(), expected_version=instance.resource_version)
        except ConflictError:
            self.log.info("KieApp %s changed since it was read, requeueing", instance.name)
        except ClusterError as exc:
            self.log.warning("Failed to update object. %s", exc)
            raise
        return ReconcileResult.again()

    def _set_failed_status(self, instance: KieApp, reason: ReasonType, error: Exception) -> None:
        status.set_failed(instance, reason, error, self.log)
        try:
            self.api.update(instance.to_dict(), expected_version=instance.resource_version)
        except ClusterError as exc:
            self.log.warning("Unable to update object after receiving failed status. %s", exc)
