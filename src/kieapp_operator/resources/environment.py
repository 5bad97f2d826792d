"""In-memory representation of the environment requested by a KieApp."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List

from .base import Kind, Resource


class ComponentRole(str, Enum):
    CONSOLE = "console"
    SERVER = "server"
    SMART_ROUTER = "smartrouter"
    OTHER = "other"


@dataclass
class Component:
    """A logical part of the deployment along with the resources it needs."""

    role: ComponentRole
    resources: List[Resource] = field(default_factory=list)
    omit: bool = False

    def of_kind(self, kind: Kind) -> List[Resource]:
        return [resource for resource in self.resources if resource.kind is kind]

    @property
    def routes(self) -> List[Resource]:
        return self.of_kind(Kind.ROUTE)

    @property
    def secrets(self) -> List[Resource]:
        return self.of_kind(Kind.SECRET)

    @property
    def deployment_configs(self) -> List[Resource]:
        return self.of_kind(Kind.DEPLOYMENT_CONFIG)

    @property
    def build_configs(self) -> List[Resource]:
        return self.of_kind(Kind.BUILD_CONFIG)

    def add(self, resource: Resource) -> None:
        self.resources.append(resource)

    def replace(self, old: Resource, new: Resource) -> None:
        index = next(i for i, existing in enumerate(self.resources) if existing is old)
        self.resources[index] = new


@dataclass
class Environment:
    console: Component = field(default_factory=lambda: Component(ComponentRole.CONSOLE, omit=True))
    servers: List[Component] = field(default_factory=list)
    smart_router: Component = field(default_factory=lambda: Component(ComponentRole.SMART_ROUTER, omit=True))
    others: List[Component] = field(default_factory=list)

    def components(self) -> List[Component]:
        return [self.console, *self.servers, self.smart_router, *self.others]

    def active_components(self) -> Iterator[Component]:
        return (component for component in self.components() if not component.omit)

    def resources(self) -> List[Resource]:
        return [resource for component in self.active_components() for resource in component.resources]
