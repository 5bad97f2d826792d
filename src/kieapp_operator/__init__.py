"""KieApp reconciliation package."""

from .config import OperatorSettings  # noqa: F401
from .kube import KieAppAPI  # noqa: F401
from .reconciler import ReconcileResult, Reconciler  # noqa: F401

__all__ = ["OperatorSettings", "KieAppAPI", "ReconcileResult", "Reconciler"]
