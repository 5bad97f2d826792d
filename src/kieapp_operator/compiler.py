"""Turning a KieApp spec into the environment of resources it requests."""
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import jinja2
import yaml

from . import constants
from .errors import ConfigurationError
from .resources.base import Kind, Resource
from .resources.environment import Component, ComponentRole, Environment
from .resources.kieapp import KieApp


class TemplateCompiler(Protocol):
    def compile(self, cr: KieApp) -> Environment: ...

    def configure_hostname(self, component: Component, cr: KieApp, hostname: str) -> None: ...

    def finalize(self, environment: Environment, cr: KieApp) -> Environment: ...

    def config_artifacts(self, cr: KieApp) -> List[Resource]: ...


class ManifestCompiler:
    """Builds environments from a YAML template of plain manifests.

    The template has the sections ``console``, ``servers``, ``smartRouter`` and
    ``others`` (each ``{omit, resources}``) plus an optional ``configMaps`` list.
    ``{{ APPLICATION_NAME }}``, ``{{ NAMESPACE }}`` and ``{{ VERSION }}`` are rendered
    with jinja2 before parsing; undefined variables are errors.
    """

    def __init__(self, template: str) -> None:
        self.template = template
        self._env = jinja2.Environment(undefined=jinja2.StrictUndefined, keep_trailing_newline=True)

    @classmethod
    def from_file(cls, path: str | Path) -> "ManifestCompiler":
        return cls(Path(path).read_text())

    def compile(self, cr: KieApp) -> Environment:
        document = self._render(cr)
        servers = document.get("servers") or []
        others = document.get("others") or []
        if not isinstance(servers, list) or not isinstance(others, list):
            raise ConfigurationError("Template sections 'servers' and 'others' must be lists.")
        environment = Environment(
            servers=[self._component(ComponentRole.SERVER, section) for section in servers],
            others=[self._component(ComponentRole.OTHER, section) for section in others],
        )
        if "console" in document:
            environment.console = self._component(ComponentRole.CONSOLE, document["console"])
        if "smartRouter" in document:
            environment.smart_router = self._component(ComponentRole.SMART_ROUTER, document["smartRouter"])
        if not cr.spec.version:
            cr.spec.version = constants.DEFAULT_VERSION
        return environment

    def configure_hostname(self, component: Component, cr: KieApp, hostname: str) -> None:
        for dc in component.deployment_configs:
            body = dc.to_dict()
            pod_spec = (body.get("spec") or {}).get("template", {}).get("spec", {})
            containers = pod_spec.get("containers", [])
            for container in containers:
                env = [var for var in container.get("env", []) if var.get("name") != constants.HOSTNAME_ENV]
                env.append({"name": constants.HOSTNAME_ENV, "value": hostname})
                container["env"] = env
            component.replace(dc, Resource.from_dict(body))

    def finalize(self, environment: Environment, cr: KieApp) -> Environment:
        """Drop resources requested by more than one component."""

        seen = set()
        for component in environment.components():
            unique = []
            for resource in component.resources:
                if resource.key in seen:
                    continue
                seen.add(resource.key)
                unique.append(resource)
            component.resources = unique
        return environment

    def config_artifacts(self, cr: KieApp) -> List[Resource]:
        document = self._render(cr)
        artifacts = []
        for body in document.get("configMaps") or []:
            artifact = self._resource(body)
            if artifact.kind is not Kind.CONFIG_MAP:
                raise ConfigurationError(f"configMaps entry {artifact.name} is a {artifact.kind}.")
            artifacts.append(artifact.with_namespace(artifact.namespace or cr.namespace))
        return artifacts

    def _render(self, cr: KieApp) -> Dict[str, Any]:
        try:
            text = self._env.from_string(self.template).render(
                APPLICATION_NAME=cr.spec.application_name,
                NAMESPACE=cr.namespace,
                VERSION=cr.spec.version or constants.DEFAULT_VERSION,
            )
            document = yaml.safe_load(text) or {}
        except (jinja2.TemplateError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Unable to render environment template: {exc}") from exc
        if not isinstance(document, dict):
            raise ConfigurationError("Environment template must contain a mapping at the top level.")
        return document

    def _component(self, role: ComponentRole, section: Optional[Dict[str, Any]]) -> Component:
        section = section or {}
        resources = [self._resource(body) for body in section.get("resources") or []]
        return Component(role=role, resources=resources, omit=bool(section.get("omit", False)))

    @staticmethod
    def _resource(body: Any) -> Resource:
        if not isinstance(body, dict) or "kind" not in body:
            raise ConfigurationError(f"Template resource is not a manifest: {body!r}")
        try:
            return Resource.from_dict(copy.deepcopy(body))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
