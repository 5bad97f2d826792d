"""In-memory stand-in for ``KieAppAPI`` used by reconciler tests.

Objects are stored as plain dicts keyed by (kind, namespace, name). Every
write bumps a cluster-wide resourceVersion, updates are rejected when the
expected version is stale, and Routes get a host assigned on creation the way
the OpenShift router does.
"""
from __future__ import annotations

import copy
import itertools
import uuid
from typing import Any, Dict, List, Optional, Tuple

from kieapp_operator.errors import AlreadyExistsError, ClusterError, ConflictError, NotFoundError
from kieapp_operator.resources.base import Kind, Resource

Key = Tuple[Kind, Optional[str], str]

ROUTER_DOMAIN = "apps.example.com"


class FakeCluster:
    def __init__(self) -> None:
        self.objects: Dict[Key, Dict[str, Any]] = {}
        self.calls: List[Tuple[str, Kind, Optional[str], Optional[str]]] = []
        self.failures: Dict[Tuple[str, Kind], ClusterError] = {}
        self._versions = itertools.count(1)

    # seeding and inspection

    def seed(self, body: Dict[str, Any]) -> Dict[str, Any]:
        body = copy.deepcopy(body)
        metadata = body.setdefault("metadata", {})
        metadata.setdefault("uid", str(uuid.uuid4()))
        metadata["resourceVersion"] = str(next(self._versions))
        self.objects[self._key(body)] = body
        return copy.deepcopy(body)

    def stored(self, kind: Kind, name: str, namespace: Optional[str]) -> Dict[str, Any]:
        return copy.deepcopy(self.objects[(kind, namespace, name)])

    def names(self, kind: Kind) -> List[str]:
        return sorted(name for (stored_kind, _, name) in self.objects if stored_kind is kind)

    def fail(self, verb: str, kind: Kind, error: Optional[ClusterError] = None) -> None:
        self.failures[(verb, kind)] = error or ClusterError(f"{verb} {kind} failed", status=500)

    def writes(self) -> List[Tuple[str, Kind, Optional[str], Optional[str]]]:
        return [call for call in self.calls if call[0] in ("create", "update", "delete")]

    def reset_calls(self) -> None:
        self.calls.clear()

    # KieAppAPI surface

    def get(self, kind: Kind, name: str, namespace: Optional[str]) -> Dict[str, Any]:
        self._record("get", kind, name, namespace)
        try:
            return copy.deepcopy(self.objects[(kind, namespace, name)])
        except KeyError:
            raise NotFoundError(f"{kind} {namespace}/{name} not found", status=404) from None

    def list(self, kind: Kind, namespace: Optional[str]) -> List[Dict[str, Any]]:
        self._record("list", kind, None, namespace)
        return [
            copy.deepcopy(body)
            for (stored_kind, stored_namespace, _), body in sorted(self.objects.items(), key=lambda item: item[0][2])
            if stored_kind is kind and stored_namespace == namespace
        ]

    def create(self, obj: Any) -> Dict[str, Any]:
        body = obj.to_dict() if isinstance(obj, Resource) else copy.deepcopy(obj)
        key = self._key(body)
        self._record("create", key[0], key[2], key[1])
        if key in self.objects:
            raise AlreadyExistsError(f"{key[0]} {key[2]} already exists", status=409)
        metadata = body.setdefault("metadata", {})
        metadata["uid"] = str(uuid.uuid4())
        metadata["resourceVersion"] = str(next(self._versions))
        if key[0] is Kind.ROUTE:
            spec = body.setdefault("spec", {})
            if not spec.get("host"):
                spec["host"] = f"{key[2]}-{key[1]}.{ROUTER_DOMAIN}"
                metadata.setdefault("annotations", {})["openshift.io/host.generated"] = "true"
        self.objects[key] = body
        return copy.deepcopy(body)

    def update(self, obj: Any, expected_version: Optional[str] = None) -> Dict[str, Any]:
        body = obj.to_dict() if isinstance(obj, Resource) else copy.deepcopy(obj)
        key = self._key(body)
        self._record("update", key[0], key[2], key[1])
        current = self.objects.get(key)
        if current is None:
            raise NotFoundError(f"{key[0]} {key[2]} not found", status=404)
        version = expected_version or body["metadata"].get("resourceVersion")
        if version != current["metadata"]["resourceVersion"]:
            raise ConflictError(f"{key[0]} {key[2]} was modified", status=409)
        body["metadata"]["uid"] = current["metadata"]["uid"]
        body["metadata"]["resourceVersion"] = str(next(self._versions))
        self.objects[key] = body
        return copy.deepcopy(body)

    def delete(self, kind: Kind, name: str, namespace: Optional[str]) -> None:
        self._record("delete", kind, name, namespace)
        self.objects.pop((kind, namespace, name), None)

    def _record(self, verb: str, kind: Kind, name: Optional[str], namespace: Optional[str]) -> None:
        self.calls.append((verb, kind, name, namespace))
        failure = self.failures.get((verb, kind))
        if failure is not None:
            raise failure

    @staticmethod
    def _key(body: Dict[str, Any]) -> Key:
        metadata = body.get("metadata") or {}
        return Kind.of(body["kind"]), metadata.get("namespace"), metadata["name"]
