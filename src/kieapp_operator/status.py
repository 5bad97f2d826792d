"""Condition bookkeeping for the KieApp status.

``Provisioning``, ``Deployed`` and ``Failed`` are independent conditions.
Every mutator returns whether it changed the status so callers only write the
KieApp back when there is something to persist.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from .resources.base import Resource
from .resources.kieapp import Condition, ConditionType, DeploymentSummary, KieApp, ReasonType

_LOG = logging.getLogger(__name__)

TRUE = "True"
FALSE = "False"


def _condition_index(cr: KieApp, condition_type: ConditionType) -> int:
    for index, condition in enumerate(cr.status.conditions):
        if condition.type == condition_type:
            return index
    return -1


def _log(logger: Optional[logging.Logger]) -> logging.Logger:
    return logger or _LOG


def set_provisioning(cr: KieApp, logger: Optional[logging.Logger] = None) -> bool:
    """Record that a convergence pass is under way.

    Earlier failures are kept until ``set_deployed`` is called.
    """

    log = _log(logger)
    if _condition_index(cr, ConditionType.PROVISIONING) != -1:
        log.debug("Status: unchanged status [provisioning] for %s.", cr.name)
        return False
    _set_deployed(cr, False, log)
    log.debug("Status: set provisioning for %s", cr.name)
    cr.status.conditions.append(Condition(type=ConditionType.PROVISIONING, status=TRUE))
    return True


def set_deployed(cr: KieApp, logger: Optional[logging.Logger] = None) -> bool:
    return _set_deployed(cr, True, _log(logger))


def set_failed(
    cr: KieApp,
    reason: ReasonType,
    error: BaseException | str,
    logger: Optional[logging.Logger] = None,
) -> None:
    log = _log(logger)
    log.debug("Status: set failed for %s", cr.name)
    _set_deployed(cr, False, log)
    condition = Condition(
        type=ConditionType.FAILED,
        status=TRUE,
        reason=reason.value,
        message=str(error),
    )
    index = _condition_index(cr, ConditionType.FAILED)
    if index == -1:
        cr.status.conditions.append(condition)
    else:
        cr.status.conditions[index] = condition


def set_deployments(cr: KieApp, deployment_configs: Iterable[Resource], logger: Optional[logging.Logger] = None) -> None:
    _log(logger).debug("Status: update deployments for %s", cr.name)
    cr.status.deployments = deployment_summary(deployment_configs)


def deployment_summary(deployment_configs: Iterable[Resource]) -> DeploymentSummary:
    summary = DeploymentSummary()
    for dc in deployment_configs:
        replicas = (dc.spec or {}).get("replicas", 1)
        ready = (dc.status or {}).get("readyReplicas", 0)
        if replicas == 0:
            summary.stopped.append(dc.name)
        elif ready < replicas:
            summary.starting.append(dc.name)
        else:
            summary.ready.append(dc.name)
    return summary


def _set_deployed(cr: KieApp, deployed: bool, log: logging.Logger) -> bool:
    status = TRUE if deployed else FALSE
    index = _condition_index(cr, ConditionType.DEPLOYED)
    if index != -1 and cr.status.conditions[index].status == status:
        log.debug("Status: unchanged status [deployed:%s] for %s.", status, cr.name)
        return False
    log.debug("Status: changed status [deployed:%s] for %s.", status, cr.name)

    condition = Condition(type=ConditionType.DEPLOYED, status=status)
    if deployed:
        cr.status.conditions = [condition]
    elif index == -1:
        cr.status.conditions.append(condition)
    else:
        cr.status.conditions[index] = condition
    return True
