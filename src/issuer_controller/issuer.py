"""Issuer reconciler - periodic health check of Horizon issuers."""

import logging
from datetime import timedelta

from issuer_api.conditions import get_issuer_ready_condition, set_issuer_ready_condition
from issuer_api.constants import (
    CONDITION_TRUE,
    CONDITION_UNKNOWN,
    ISSUER_FIRST_SEEN_MESSAGE,
    ISSUER_HEALTHY_MESSAGE,
    ISSUER_READY_REASON,
    KIND_ISSUER,
)
from issuer_api.issuers import (
    UnknownIssuerKindError,
    UnsupportedIssuerError,
    get_spec_and_status,
    is_supported,
    new_issuer,
    secret_namespace,
)
from issuer_api.types import Secret

from .condition_writer import issuer_status
from .errors import ErrorCategory, ReconcileError
from .result import Clock, Result, utc_now
from .store import NamespacedName, NotFoundError, ObjectStore, StoreError

logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL = timedelta(minutes=1)


class IssuerReconciler:
    """Keeps the Ready condition of one issuer kind up to date."""

    def __init__(self, store: ObjectStore, kind: str = KIND_ISSUER, clock: Clock = utc_now,
                 cluster_resource_namespace: str = "horizon-issuer",
                 health_check_interval: timedelta = HEALTH_CHECK_INTERVAL):
        self.store = store
        self.kind = kind
        self.clock = clock
        self.cluster_resource_namespace = cluster_resource_namespace
        self.health_check_interval = health_check_interval

    def reconcile(self, key: NamespacedName, cancel=None) -> Result:
        """
        Check one issuer and record the outcome in its Ready condition.

        An issuer seen for the first time gets Ready=Unknown. Afterwards the
        credential secret must be readable for the issuer to be Ready=True;
        the check repeats every ``health_check_interval``.
        """
        try:
            empty = new_issuer(self.kind, key.name, key.namespace)
        except UnknownIssuerKindError as e:
            logger.error(f"Unrecognised issuer type: {e}")
            return Result.done()

        try:
            issuer = self.store.get(type(empty), key)
        except NotFoundError:
            logger.info(f"{self.kind} {key} not found. Ignoring.")
            return Result.done()
        except StoreError as e:
            raise ReconcileError(ErrorCategory.GET_ISSUER, str(e)) from e

        spec, status = get_spec_and_status(issuer)

        with issuer_status(self.store, issuer, ISSUER_READY_REASON, self.clock):
            if get_issuer_ready_condition(status) is None:
                set_issuer_ready_condition(status, CONDITION_UNKNOWN, ISSUER_READY_REASON,
                                           ISSUER_FIRST_SEEN_MESSAGE, self.clock())
                return Result.done()

            if not is_supported(issuer):
                logger.error(f"Unexpected issuer type {issuer.kind} for {key}. Not retrying.")
                return Result.done()

            try:
                namespace = secret_namespace(issuer, key.namespace, self.cluster_resource_namespace)
            except UnsupportedIssuerError as e:
                logger.error(f"{e}. Not retrying.")
                return Result.done()

            secret_name = NamespacedName(namespace, spec.auth_secret_name)
            try:
                self.store.get(Secret, secret_name)
            except StoreError as e:
                raise ReconcileError(
                    ErrorCategory.GET_AUTH_SECRET,
                    f"secret name: {secret_name}, reason: {e}",
                ) from e

            set_issuer_ready_condition(status, CONDITION_TRUE, ISSUER_READY_REASON,
                                       ISSUER_HEALTHY_MESSAGE, self.clock())
            return Result.after(self.health_check_interval)
