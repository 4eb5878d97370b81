"""Persist a reconciled object's status on every exit path."""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from issuer_api.conditions import set_issuer_ready_condition, set_ready_condition
from issuer_api.constants import CONDITION_FALSE, REASON_PENDING
from issuer_api.types import AnyIssuer, CertificateRequest

from .errors import AggregateError, ErrorCategory, ReconcileCancelled, ReconcileError
from .result import Clock
from .store import ObjectStore, StoredObject, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def status_persisted(store: ObjectStore, obj: StoredObject, mark_failed: Callable[[str], None]) -> Iterator[None]:
    """
    Scope in which ``obj.status`` may be changed freely.

    Whatever way the block is left, the status is written back exactly once
    through ``store.update_status``:

    - normal exit (including early returns): the status is persisted; a store
      failure is raised as ``ReconcileError(PERSIST_STATUS)``.
    - exception: ``mark_failed`` records the error text, the status is
      persisted, and the original error is re-raised. If persisting fails as
      well, both errors are raised together as ``AggregateError``.
    - ``ReconcileCancelled``: nothing is persisted.

    Args:
        store: Object store holding ``obj``
        obj: Object whose status is persisted
        mark_failed: Callback that records an error message on the status
    """
    try:
        yield
    except ReconcileCancelled:
        logger.info(f"Reconcile of {obj.metadata.name} cancelled, status not persisted")
        raise
    except Exception as err:
        mark_failed(str(err))
        try:
            store.update_status(obj)
        except Exception as update_err:
            raise AggregateError([err, update_err]) from err
        raise
    else:
        try:
            store.update_status(obj)
        except StoreError as update_err:
            raise ReconcileError(ErrorCategory.PERSIST_STATUS, str(update_err)) from update_err


def certificate_request_status(store: ObjectStore, request: CertificateRequest, clock: Clock):
    """Persist scope for a CertificateRequest; failures become Ready=False/Pending."""

    def mark_failed(message: str) -> None:
        set_ready_condition(request, CONDITION_FALSE, REASON_PENDING, message, clock())

    return status_persisted(store, request, mark_failed)


def issuer_status(store: ObjectStore, issuer: AnyIssuer, reason: str, clock: Clock):
    """Persist scope for an Issuer; failures become Ready=False with ``reason``."""

    def mark_failed(message: str) -> None:
        set_issuer_ready_condition(issuer.status, CONDITION_FALSE, reason, message, clock())

    return status_persisted(store, issuer, mark_failed)
