"""ImageStreamTag resource builder."""
from __future__ import annotations

from typing import Dict

from pydantic import Field

from .base import Kind, Resource, ResourceModel


class ImageStreamTagConfig(ResourceModel):
    """Configuration for a local tag tracking an image in a remote registry."""

    repository: str
    tag: str = "latest"
    namespace: str
    from_image: str = Field(..., alias="from")
    insecure: bool = False

    @property
    def name(self) -> str:
        return f"{self.repository}:{self.tag}"

    def to_resource(self) -> Resource:
        tag: Dict[str, object] = {
            "name": self.tag,
            "from": {"kind": "DockerImage", "name": self.from_image},
            "referencePolicy": {"type": "Local"},
        }
        if self.insecure:
            tag["importPolicy"] = {"insecure": True}
        return Resource(
            kind=Kind.IMAGE_STREAM_TAG,
            metadata={"name": self.name, "namespace": self.namespace},
            extra={"tag": tag},
        )
