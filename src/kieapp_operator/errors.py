"""Exceptions raised while reconciling a KieApp."""
from __future__ import annotations

from typing import Optional


class KieAppError(Exception):
    """Base class for reconciler errors."""


class ClusterError(KieAppError):
    """A cluster API call failed for a reason other than not-found or conflict."""

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class NotFoundError(ClusterError):
    """The requested object does not exist."""


class AlreadyExistsError(ClusterError):
    """A create call found an object with the same name."""


class ConflictError(ClusterError):
    """A write was rejected because the observed resourceVersion is stale."""


class ConfigurationError(KieAppError):
    """The declared KieApp spec cannot be turned into resources."""
