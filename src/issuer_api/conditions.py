"""Condition helpers for CertificateRequests and Issuers.

Both resources keep at most one condition per type. Replacing a condition keeps
its position in the list, and keeps the transition time when the status does
not change.
"""

from datetime import datetime
from typing import List, Optional, Union

from .constants import (
    COND_APPROVED,
    COND_DENIED,
    COND_READY,
    CONDITION_TRUE,
)
from .types import (
    CertificateRequest,
    CertificateRequestCondition,
    IssuerCondition,
    IssuerStatus,
)

Condition = Union[CertificateRequestCondition, IssuerCondition]


def _find(conditions: List[Condition], condition_type: str) -> Optional[Condition]:
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def _upsert(conditions: List[Condition], new: Condition) -> None:
    for index, existing in enumerate(conditions):
        if existing.type != new.type:
            continue
        if existing.status == new.status:
            new.last_transition_time = existing.last_transition_time
        conditions[index] = new
        return
    conditions.append(new)


def get_condition(request: CertificateRequest, condition_type: str) -> Optional[CertificateRequestCondition]:
    return _find(request.status.conditions, condition_type)


def has_condition(
    request: CertificateRequest,
    condition_type: str,
    status: str,
    reason: Optional[str] = None,
) -> bool:
    """
    Check whether the request carries a matching condition.

    Args:
        request: CertificateRequest to inspect
        condition_type: Condition type to look for
        status: Required condition status
        reason: Required reason, or None to accept any reason

    Returns:
        True if a condition of that type has the given status (and reason)
    """
    condition = get_condition(request, condition_type)
    if condition is None or condition.status != status:
        return False
    return reason is None or condition.reason == reason


def set_condition(
    request: CertificateRequest,
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    now: datetime,
) -> None:
    """Set a condition on the request, replacing any condition of the same type."""
    _upsert(
        request.status.conditions,
        CertificateRequestCondition(
            type=condition_type,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=now,
        ),
    )


def set_ready_condition(request: CertificateRequest, status: str, reason: str, message: str, now: datetime) -> None:
    set_condition(request, COND_READY, status, reason, message, now)


def is_approved(request: CertificateRequest) -> bool:
    return has_condition(request, COND_APPROVED, CONDITION_TRUE)


def is_denied(request: CertificateRequest) -> bool:
    return has_condition(request, COND_DENIED, CONDITION_TRUE)


# Issuer conditions


def get_issuer_ready_condition(status: IssuerStatus) -> Optional[IssuerCondition]:
    return _find(status.conditions, COND_READY)


def set_issuer_ready_condition(status: IssuerStatus, condition_status: str, reason: str, message: str,
                               now: datetime) -> None:
    _upsert(
        status.conditions,
        IssuerCondition(
            type=COND_READY,
            status=condition_status,
            reason=reason,
            message=message,
            last_transition_time=now,
        ),
    )


def is_issuer_ready(status: IssuerStatus) -> bool:
    condition = get_issuer_ready_condition(status)
    return condition is not None and condition.status == CONDITION_TRUE
