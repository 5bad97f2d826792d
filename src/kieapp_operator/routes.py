"""Route provisioning and keystore generation driven by assigned hostnames.

Route hostnames are assigned by the cluster after a Route is created, so the
first pass that creates a Route cannot know its host. Missing routes are
created and the pass is requeued shortly after; later passes find the host and
use it as the common name of the generated keystore.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from . import constants
from .compiler import TemplateCompiler
from .errors import NotFoundError
from .kube import KieAppAPI
from .resources.base import Resource
from .resources.environment import Component, Environment
from .resources.kieapp import KieApp
from .resources.secret import KeystoreSecretConfig
from .write import ResourceWriter

_LOG = logging.getLogger(__name__)

RouteKey = Tuple[str, str]
RouteMap = Dict[RouteKey, Resource]


def route_key(route: Resource, namespace: str) -> RouteKey:
    return route.namespace or namespace, route.name or ""


def requested_routes(environment: Environment, namespace: str) -> List[Resource]:
    return [
        route.with_namespace(namespace)
        for component in environment.active_components()
        for route in component.routes
    ]


def has_tls(route: Resource) -> bool:
    return bool((route.spec or {}).get("tls"))


class RouteProvisioner:
    def __init__(
        self,
        api: KieAppAPI,
        compiler: TemplateCompiler,
        writer: Optional[ResourceWriter] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.api = api
        self.compiler = compiler
        self.log = logger or _LOG
        self.writer = writer or ResourceWriter(api, self.log)

    def load_routes(self, requested: List[Resource]) -> RouteMap:
        """Load as many of the requested routes as exist; other errors propagate."""

        deployed: RouteMap = {}
        for route in requested:
            try:
                body = self.api.get(route.kind, route.name, route.namespace)
            except NotFoundError:
                continue
            deployed[(route.namespace, route.name)] = Resource.from_dict(body)
        return deployed

    def resolve_missing_routes(self, cr: KieApp, requested: List[Resource]) -> Tuple[RouteMap, bool]:
        """Return the deployed routes and whether missing ones had to be created."""

        deployed = self.load_routes(requested)
        missing = [route for route in requested if (route.namespace, route.name) not in deployed]
        if not missing:
            return deployed, False
        self.log.debug("Will create %d routes that were not found", len(missing))
        return deployed, self.writer.add_resources(cr, missing)

    def set_hosts_and_certs(self, cr: KieApp, environment: Environment, route_map: RouteMap) -> Environment:
        app_name = cr.spec.application_name

        console = environment.console
        if not console.omit:
            host = self.route_host(console, cr, route_map)
            common_name = host or app_name
            cr.status.console_host = f"https://{host}" if host else f"http://{app_name}"
            self.compiler.configure_hostname(console, cr, common_name)
            if not cr.spec.objects.console.keystore_secret:
                console.add(self._keystore_secret(f"{app_name}-businesscentral", common_name, cr))

        for index, server in enumerate(environment.servers):
            if server.omit:
                continue
            common_name = self.route_host(server, cr, route_map) or app_name
            self.compiler.configure_hostname(server, cr, common_name)
            server_set, deployment_name = cr.server_set(index)
            if not server_set.keystore_secret:
                server.add(self._keystore_secret(deployment_name, common_name, cr))

        router = environment.smart_router
        if not router.omit:
            common_name = self.route_host(router, cr, route_map) or app_name
            self.compiler.configure_hostname(router, cr, common_name)
            if not cr.spec.objects.smart_router.keystore_secret:
                router.add(self._keystore_secret(f"{app_name}-smartrouter", common_name, cr))

        return self.compiler.finalize(environment, cr)

    def route_host(self, component: Component, cr: KieApp, route_map: RouteMap) -> str:
        """Return the host of the component's first TLS route, or an empty string if unknown."""

        for route in component.routes:
            if has_tls(route):
                found = route_map.get(route_key(route, cr.namespace))
                if found is None:
                    return ""
                return (found.spec or {}).get("host") or ""
        return ""

    @staticmethod
    def _keystore_secret(prefix: str, common_name: str, cr: KieApp) -> Resource:
        config = KeystoreSecretConfig(
            name=constants.KEYSTORE_SECRET % prefix,
            common_name=common_name,
            application_name=cr.spec.application_name,
            password=cr.spec.common_config.keystore_password,
        )
        return config.to_resource()
