"""Configuration models and helpers for the KieApp reconciler."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import BaseModel, Field

from . import constants

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in _TRUTHY


class OperatorSettings(BaseModel):
    """Connection and defaulting settings used by every reconciliation pass."""

    namespace: Optional[str] = None
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    verify_ssl: bool = True
    registry: str = Field(default=constants.IMAGE_REGISTRY)
    insecure: bool = False
    route_requeue_delay: float = Field(default=constants.ROUTE_REQUEUE_DELAY, ge=0)
    environment_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OperatorSettings":
        environ = os.environ if environ is None else environ
        return cls(
            namespace=environ.get("WATCH_NAMESPACE") or None,
            kubeconfig=environ.get("KUBECONFIG") or None,
            registry=environ.get("REGISTRY") or constants.IMAGE_REGISTRY,
            insecure=_env_flag(environ, "INSECURE"),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "OperatorSettings":
        document_path = Path(path)
        data = yaml.safe_load(document_path.read_text())
        if not isinstance(data, dict):
            raise ValueError("Settings file must contain a mapping at the top level.")
        defaults = cls.from_env().model_dump(exclude_none=True)
        defaults.update(data)
        return cls.model_validate(defaults)
