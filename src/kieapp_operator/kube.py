"""Low-level Kubernetes client helpers for the KieApp reconciler."""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Type, Union

from kubernetes import config
from kubernetes.client import ApiException
from kubernetes.dynamic import DynamicClient, ResourceInstance

from .config import OperatorSettings
from .errors import AlreadyExistsError, ClusterError, ConflictError, NotFoundError
from .resources.base import Kind, Resource

_LOG = logging.getLogger(__name__)

Body = Union[Resource, Dict[str, Any]]


def _as_dict(result: Any) -> Dict[str, Any]:
    return result.to_dict() if isinstance(result, ResourceInstance) else result


def _translate(exc: ApiException, action: str, conflict: Type[ClusterError] = ConflictError) -> ClusterError:
    message = f"Failed to {action}: {exc.status} {exc.reason}"
    if exc.status == 404:
        return NotFoundError(message, status=exc.status, reason=exc.reason)
    if exc.status == 409:
        return conflict(message, status=exc.status, reason=exc.reason)
    return ClusterError(message, status=exc.status, reason=exc.reason)


class KieAppAPI:
    """Wrapper around the Kubernetes dynamic client exposing the calls a reconciliation pass needs."""

    def __init__(self, settings: OperatorSettings) -> None:
        self.settings = settings
        api_client = config.new_client_from_config(
            config_file=settings.kubeconfig,
            context=settings.context,
        )
        api_client.configuration.verify_ssl = settings.verify_ssl
        self.api_client = api_client
        self.dynamic = DynamicClient(api_client)

    def get(self, kind: Kind, name: str, namespace: Optional[str]) -> Dict[str, Any]:
        """Return a single object; raises ``NotFoundError`` if it does not exist."""

        resource = self._resource(kind)
        try:
            found = resource.get(name=name, namespace=namespace)
        except ApiException as exc:
            raise _translate(exc, f"get {kind}/{name}") from exc
        return _as_dict(found)

    def list(self, kind: Kind, namespace: Optional[str]) -> List[Dict[str, Any]]:
        """Return every object of ``kind`` in ``namespace``."""

        resource = self._resource(kind)
        try:
            result = resource.get(namespace=namespace)
        except ApiException as exc:
            raise _translate(exc, f"list {kind} in {namespace}") from exc
        items = _as_dict(result).get("items", []) or []
        for item in items:
            item.setdefault("apiVersion", kind.api_version)
            item.setdefault("kind", kind.kind)
        return items

    def create(self, obj: Body) -> Dict[str, Any]:
        """Create an object; raises ``AlreadyExistsError`` if the name is taken."""

        body = self._body(obj)
        kind = Kind.of(body["kind"])
        metadata = body.setdefault("metadata", {})
        metadata.pop("resourceVersion", None)
        metadata.pop("uid", None)
        metadata.pop("creationTimestamp", None)
        namespace = metadata.get("namespace")
        _LOG.debug("Creating %s/%s", kind, metadata.get("name"))
        try:
            created = self._resource(kind).create(body=body, namespace=namespace)
        except ApiException as exc:
            raise _translate(exc, f"create {kind}/{metadata.get('name')}", AlreadyExistsError) from exc
        return _as_dict(created)

    def update(self, obj: Body, expected_version: Optional[str] = None) -> Dict[str, Any]:
        """Replace an object, guarded by the resourceVersion observed when it was read.

        A stale ``expected_version`` is rejected by the API server and surfaces as
        ``ConflictError``.
        """

        body = self._body(obj)
        kind = Kind.of(body["kind"])
        metadata = body.setdefault("metadata", {})
        if expected_version is not None:
            metadata["resourceVersion"] = expected_version
        name = metadata.get("name")
        _LOG.debug("Updating %s/%s at version %s", kind, name, metadata.get("resourceVersion"))
        try:
            updated = self._resource(kind).replace(
                body=body,
                name=name,
                namespace=metadata.get("namespace"),
            )
        except ApiException as exc:
            raise _translate(exc, f"update {kind}/{name}") from exc
        return _as_dict(updated)

    def delete(self, kind: Kind, name: str, namespace: Optional[str]) -> None:
        """Delete a resource if it exists."""

        resource = self._resource(kind)
        try:
            resource.delete(name=name, namespace=namespace)
            _LOG.info("Deleted %s/%s", kind, name)
        except ApiException as exc:
            if exc.status != 404:
                raise _translate(exc, f"delete {kind}/{name}") from exc
            _LOG.debug("Resource %s/%s not found during delete", kind, name)

    def _resource(self, kind: Kind) -> Any:
        return self.dynamic.resources.get(api_version=kind.api_version, kind=kind.kind)

    @staticmethod
    def _body(obj: Body) -> Dict[str, Any]:
        if isinstance(obj, Resource):
            return obj.to_dict()
        return copy.deepcopy(obj)
