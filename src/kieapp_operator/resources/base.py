"""Shared resource definitions for the KieApp reconciler."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict


class ResourceModel(BaseModel):
    """Shared base model for KieApp configuration objects."""

    model_config = ConfigDict(populate_by_name=True)


class Kind(Enum):
    """Resource types the reconciler knows how to address."""

    PERSISTENT_VOLUME_CLAIM = ("v1", "PersistentVolumeClaim")
    SERVICE_ACCOUNT = ("v1", "ServiceAccount")
    SECRET = ("v1", "Secret")
    ROLE = ("rbac.authorization.k8s.io/v1", "Role")
    ROLE_BINDING = ("rbac.authorization.k8s.io/v1", "RoleBinding")
    DEPLOYMENT_CONFIG = ("apps.openshift.io/v1", "DeploymentConfig")
    SERVICE = ("v1", "Service")
    STATEFUL_SET = ("apps/v1", "StatefulSet")
    ROUTE = ("route.openshift.io/v1", "Route")
    IMAGE_STREAM = ("image.openshift.io/v1", "ImageStream")
    BUILD_CONFIG = ("build.openshift.io/v1", "BuildConfig")
    CONFIG_MAP = ("v1", "ConfigMap")
    IMAGE_STREAM_TAG = ("image.openshift.io/v1", "ImageStreamTag")
    KIE_APP = ("app.kiegroup.org/v2", "KieApp")

    def __init__(self, api_version: str, kind: str) -> None:
        self.api_version = api_version
        self.kind = kind

    def __str__(self) -> str:
        return self.kind

    @classmethod
    def of(cls, kind: str) -> "Kind":
        for member in cls:
            if member.kind == kind:
                return member
        raise ValueError(f"Unsupported resource kind {kind!r}.")


# Kinds a KieApp owns and whose deployed copies are diffed against the template.
MANAGED_KINDS = (
    Kind.PERSISTENT_VOLUME_CLAIM,
    Kind.SERVICE_ACCOUNT,
    Kind.SECRET,
    Kind.ROLE,
    Kind.ROLE_BINDING,
    Kind.DEPLOYMENT_CONFIG,
    Kind.SERVICE,
    Kind.STATEFUL_SET,
    Kind.ROUTE,
    Kind.IMAGE_STREAM,
    Kind.BUILD_CONFIG,
)

_SERVER_METADATA = (
    "creationTimestamp",
    "managedFields",
    "resourceVersion",
    "selfLink",
    "uid",
    "generation",
)


class ResourceKey(NamedTuple):
    kind: Kind
    namespace: Optional[str]
    name: Optional[str]


@dataclass(frozen=True)
class Resource:
    """Represents a Kubernetes resource manifest."""

    kind: Kind
    metadata: Dict[str, Any]
    spec: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    status: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "Resource":
        body = copy.deepcopy(body)
        kind = Kind.of(body.pop("kind"))
        body.pop("apiVersion", None)
        metadata = body.pop("metadata", None) or {}
        spec = body.pop("spec", None)
        status = body.pop("status", None)
        return cls(kind=kind, metadata=metadata, spec=spec, extra=body, status=status)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "apiVersion": self.kind.api_version,
            "kind": self.kind.kind,
            "metadata": copy.deepcopy(self.metadata),
        }
        if self.spec is not None:
            body["spec"] = copy.deepcopy(self.spec)
        if self.extra:
            body.update(copy.deepcopy(self.extra))
        return body

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def resource_version(self) -> Optional[str]:
        return self.metadata.get("resourceVersion")

    @property
    def labels(self) -> Dict[str, str]:
        return self.metadata.get("labels") or {}

    @property
    def annotations(self) -> Dict[str, str]:
        return self.metadata.get("annotations") or {}

    @property
    def owner_references(self) -> List[Dict[str, Any]]:
        return self.metadata.get("ownerReferences") or []

    @property
    def key(self) -> ResourceKey:
        return ResourceKey(self.kind, self.namespace, self.name)

    def is_owned_by(self, uid: str) -> bool:
        return any(ref.get("uid") == uid for ref in self.owner_references)

    def with_namespace(self, namespace: str) -> "Resource":
        metadata = copy.deepcopy(self.metadata)
        metadata["namespace"] = namespace
        return replace(self, metadata=metadata)

    def with_metadata(self, **values: Any) -> "Resource":
        """Return a copy with the given metadata fields replaced; ``None`` removes a field."""

        metadata = copy.deepcopy(self.metadata)
        for name, value in values.items():
            if value is None:
                metadata.pop(name, None)
            else:
                metadata[name] = value
        return replace(self, metadata=metadata)

    def sanitized(self) -> "Resource":
        """Return a copy without server-populated metadata or status."""

        metadata = copy.deepcopy(self.metadata)
        for name in _SERVER_METADATA:
            metadata.pop(name, None)
        return replace(self, metadata=metadata, status=None)

    def content(self) -> Dict[str, Any]:
        """Fields that describe desired state; used for drift comparison."""

        content: Dict[str, Any] = {
            "labels": dict(self.labels),
            "annotations": dict(self.annotations),
            "spec": copy.deepcopy(self.spec),
        }
        content.update(copy.deepcopy(self.extra))
        return content


def owner_reference(api_version: str, kind: str, name: str, uid: str) -> Dict[str, Any]:
    return {
        "apiVersion": api_version,
        "kind": kind,
        "name": name,
        "uid": uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }
