"""Keystore secret builder."""
from __future__ import annotations

import base64
from typing import Dict, Optional

from pydantic import Field

from .. import constants
from ..keystore import generate_keystore
from .base import Kind, Resource, ResourceModel


class KeystoreSecretConfig(ResourceModel):
    """Configuration for a generated keystore Secret."""

    name: str
    common_name: str = Field(..., alias="commonName")
    application_name: str = Field(..., alias="applicationName")
    password: str = ""
    alias: str = constants.KEYSTORE_ALIAS
    namespace: Optional[str] = None

    def to_resource(self) -> Resource:
        metadata: Dict[str, object] = {
            "name": self.name,
            "labels": {
                "app": self.application_name,
                "application": self.application_name,
            },
        }
        if self.namespace:
            metadata["namespace"] = self.namespace

        keystore = generate_keystore(self.common_name, self.alias, self.password.encode())
        return Resource(
            kind=Kind.SECRET,
            metadata=metadata,
            extra={
                "type": "Opaque",
                "data": {constants.KEYSTORE_KEY: base64.b64encode(keystore).decode()},
            },
        )
