"""KieApp custom resource model."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ConfigDict, Field

from .. import constants
from .base import Kind, ResourceModel, owner_reference


class ConditionType(str, Enum):
    PROVISIONING = "Provisioning"
    DEPLOYED = "Deployed"
    FAILED = "Failed"


class ReasonType(str, Enum):
    CONFIGURATION_ERROR = "ConfigurationError"
    DEPLOYMENT_FAILED = "DeploymentFailed"
    UNKNOWN = "Unknown"


class Condition(ResourceModel):
    """A timestamped boolean fact recorded on the KieApp status."""

    type: ConditionType
    status: str
    last_transition_time: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="lastTransitionTime",
    )
    reason: Optional[str] = None
    message: Optional[str] = None


class DeploymentSummary(ResourceModel):
    """DeploymentConfig names grouped by rollout state."""

    ready: List[str] = Field(default_factory=list)
    starting: List[str] = Field(default_factory=list)
    stopped: List[str] = Field(default_factory=list)


class KieAppStatus(ResourceModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    conditions: List[Condition] = Field(default_factory=list)
    deployments: DeploymentSummary = Field(default_factory=DeploymentSummary)
    console_host: Optional[str] = Field(default=None, alias="consoleHost")


class ImageRegistry(ResourceModel):
    registry: Optional[str] = None
    insecure: bool = False


class CommonConfig(ResourceModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    application_name: str = Field(..., alias="applicationName")
    keystore_password: str = Field(default="", alias="keyStorePassword")


class KieAppObject(ResourceModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    keystore_secret: Optional[str] = Field(default=None, alias="keystoreSecret")


class ServerSet(KieAppObject):
    name: Optional[str] = None
    deployments: int = 1


class KieAppObjects(ResourceModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    console: KieAppObject = Field(default_factory=KieAppObject)
    servers: List[ServerSet] = Field(default_factory=list)
    smart_router: KieAppObject = Field(default_factory=KieAppObject, alias="smartRouter")


class KieAppSpec(ResourceModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    environment: str
    version: Optional[str] = None
    image_registry: Optional[ImageRegistry] = Field(default=None, alias="imageRegistry")
    common_config: CommonConfig = Field(..., alias="commonConfig")
    objects: KieAppObjects = Field(default_factory=KieAppObjects)

    @property
    def application_name(self) -> str:
        return self.common_config.application_name

    @property
    def product(self) -> str:
        if self.environment.startswith("rhdm"):
            return "rhdm"
        return "rhpam"

    def major_version(self) -> str:
        return (self.version or constants.DEFAULT_VERSION).split(".")[0]


class ObjectMeta(ResourceModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    namespace: str
    uid: Optional[str] = None
    resource_version: Optional[str] = Field(default=None, alias="resourceVersion")
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class KieApp(ResourceModel):
    """The top-level declarative object describing a KIE deployment."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_version: str = Field(default=constants.API_VERSION, alias="apiVersion")
    kind: str = constants.KIND
    metadata: ObjectMeta
    spec: KieAppSpec
    status: KieAppStatus = Field(default_factory=KieAppStatus)

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "KieApp":
        return cls.model_validate(body)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def uid(self) -> Optional[str]:
        return self.metadata.uid

    @property
    def resource_version(self) -> Optional[str]:
        return self.metadata.resource_version

    def owner_reference(self) -> Dict[str, Any]:
        return owner_reference(Kind.KIE_APP.api_version, Kind.KIE_APP.kind, self.name, self.uid or "")

    def server_set(self, index: int) -> Tuple[ServerSet, str]:
        """Return the server set backing the ``index``-th server and its deployment name.

        Servers beyond the declared sets use a default set named after the application.
        """

        server_sets = self.spec.objects.servers or [ServerSet()]
        count = 0
        for server_set in server_sets:
            for relative in range(max(server_set.deployments, 1)):
                if count == index:
                    return server_set, self._server_deployment_name(server_set, relative)
                count += 1
        return ServerSet(), self._server_deployment_name(ServerSet(), index)

    def _server_deployment_name(self, server_set: ServerSet, relative: int) -> str:
        name = server_set.name or f"{self.spec.application_name}-kieserver"
        if relative == 0:
            return name
        return f"{name}-{relative + 1}"
