"""CertificateRequest reconciler - drives a request through Horizon.

A request moves through submission, polling and finalization:

1. requests for another group, or already Ready / Failed / Denied, are ignored;
2. newly denied requests are marked Ready=False/Denied (FailureTime set once);
3. an unknown or inactive issuer kind marks the request Ready=False/Failed;
4. the issuer and its credentials are resolved and a Horizon session opened;
5. without a request id annotation the CSR is submitted and the id recorded;
6. with one, Horizon is polled until the request completes, then the
   certificate is stored and the request marked Ready=True/Issued.

Every step from 2 on runs inside a scope that persists the status on exit.
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Optional

from issuer_api.conditions import (
    has_condition,
    is_approved,
    is_denied,
    set_condition,
    set_ready_condition,
)
from issuer_api.constants import (
    API_GROUP,
    APPROVED_MESSAGE,
    APPROVED_REASON,
    COND_APPROVED,
    COND_READY,
    CONDITION_FALSE,
    CONDITION_TRUE,
    MESSAGE_DENIED,
    MESSAGE_ISSUED,
    MESSAGE_SUBMITTED,
    REASON_DENIED,
    REASON_FAILED,
    REASON_ISSUED,
    REASON_PENDING,
    REQUEST_ID_ANNOTATION,
)
from issuer_api.types import CertificateRequest
from pki_client import HorizonError, InvalidEndpointError, PKISession

from .condition_writer import certificate_request_status
from .errors import ErrorCategory, ReconcileCancelled, ReconcileError
from .issuer_resolver import IssuerResolver, ResolvedIssuer
from .result import Clock, Result, utc_now
from .store import NamespacedName, NotFoundError, ObjectStore, StoreError

logger = logging.getLogger(__name__)

POLL_INTERVAL = timedelta(minutes=1)

SessionFactory = Callable[[str, str, str], PKISession]


class CertificateRequestReconciler:
    """Reconciles cert-manager CertificateRequests that reference a Horizon issuer."""

    def __init__(
        self,
        store: ObjectStore,
        session_factory: SessionFactory,
        resolver: Optional[IssuerResolver] = None,
        clock: Clock = utc_now,
        group: str = API_GROUP,
        poll_interval: timedelta = POLL_INTERVAL,
    ):
        """
        Initialize the CertificateRequest reconciler.

        Args:
            store: Object store for requests, issuers and secrets
            session_factory: Builds a Horizon session from (url, username, password)
            resolver: Issuer resolver (defaults to one over ``store``)
            clock: Source of condition and failure timestamps
            group: API group whose issuer references this controller owns
            poll_interval: Delay between Horizon polls
        """
        self.store = store
        self.session_factory = session_factory
        self.resolver = resolver or IssuerResolver(store)
        self.clock = clock
        self.group = group
        self.poll_interval = poll_interval

    def reconcile(self, key: NamespacedName, cancel: Optional[threading.Event] = None) -> Result:
        """
        Reconcile one CertificateRequest.

        Args:
            key: Namespace and name of the request
            cancel: Event set when the surrounding operation is cancelled

        Returns:
            Result telling the scheduler whether to come back later

        Raises:
            ReconcileError: On transient failures (retried with backoff)
            AggregateError: When a failure could not be persisted either
            ReconcileCancelled: When ``cancel`` was set before an external call
        """
        try:
            request = self.store.get(CertificateRequest, key)
        except NotFoundError:
            logger.info(f"CertificateRequest {key} not found. Ignoring.")
            return Result.done()
        except StoreError as e:
            raise ReconcileError(ErrorCategory.GET_REQUEST, str(e)) from e

        group = request.spec.issuer_ref.group
        if group != self.group:
            logger.info(f"CertificateRequest {key} has foreign group {group}. Ignoring.")
            return Result.done()

        if has_condition(request, COND_READY, CONDITION_TRUE):
            logger.info(f"CertificateRequest {key} is Ready. Ignoring.")
            return Result.done()
        if has_condition(request, COND_READY, CONDITION_FALSE, REASON_FAILED):
            logger.info(f"CertificateRequest {key} is Failed. Ignoring.")
            return Result.done()
        if has_condition(request, COND_READY, CONDITION_FALSE, REASON_DENIED):
            logger.info(f"CertificateRequest {key} already has a Ready condition with Denied Reason. Ignoring.")
            return Result.done()

        # From here on this controller owns the request's Ready condition.
        with certificate_request_status(self.store, request, self.clock):
            return self._reconcile_owned(key, request, cancel)

    def _set_ready(self, request: CertificateRequest, status: str, reason: str, message: str) -> None:
        set_ready_condition(request, status, reason, message, self.clock())

    def _reconcile_owned(self, key: NamespacedName, request: CertificateRequest,
                         cancel: Optional[threading.Event]) -> Result:
        if is_denied(request):
            logger.info(f"CertificateRequest {key} has been denied. Marking as failed.")
            if request.status.failure_time is None:
                request.status.failure_time = self.clock()
            self._set_ready(request, CONDITION_FALSE, REASON_DENIED, MESSAGE_DENIED)
            return Result.done()

        issuer_ref = request.spec.issuer_ref
        try:
            self.resolver.issuer_for_ref(issuer_ref, request.namespace)
        except ReconcileError as e:
            if e.category is ErrorCategory.ISSUER_REF:
                logger.error(f"CertificateRequest {key}: {e}. Unrecognised kind. Ignoring.")
            elif e.category is ErrorCategory.UNSUPPORTED_ISSUER:
                logger.error(f"CertificateRequest {key}: {e}. "
                             "The issuerRef referred to a registered Kind which is not yet handled. Ignoring.")
            else:
                raise
            self._set_ready(request, CONDITION_FALSE, REASON_FAILED, str(e))
            return Result.done()

        resolved = self.resolver.resolve(issuer_ref, request.namespace)

        try:
            session = self.session_factory(resolved.spec.url, resolved.username, resolved.password)
        except InvalidEndpointError as e:
            raise ReconcileError(ErrorCategory.INVALID_BASE_URL, str(e)) from e

        with session:
            if is_approved(request):
                return Result.done()

            if REQUEST_ID_ANNOTATION in request.metadata.annotations:
                request_id = request.metadata.annotations[REQUEST_ID_ANNOTATION]
                return self._poll(key, request, session, request_id, cancel)
            return self._submit(key, request, session, resolved, cancel)

    def _submit(self, key: NamespacedName, request: CertificateRequest, session: PKISession,
                resolved: ResolvedIssuer, cancel: Optional[threading.Event]) -> Result:
        _check_cancelled(cancel)
        try:
            external = session.submit_enrollment(resolved.spec.profile, request.spec.request, [])
        except HorizonError as e:
            raise ReconcileError(ErrorCategory.EXTERNAL_SERVICE, str(e)) from e

        logger.info(f"CertificateRequest {key} submitted to Horizon as request {external.id}")

        # Record the id before anything else so the submission is never repeated.
        request.metadata.annotations[REQUEST_ID_ANNOTATION] = external.id
        try:
            self.store.update(request)
        except StoreError as e:
            raise ReconcileError(
                ErrorCategory.PERSIST_ANNOTATION,
                f"request id {external.id}, reason: {e}",
            ) from e

        self._set_ready(request, CONDITION_FALSE, REASON_PENDING, MESSAGE_SUBMITTED)
        return Result.after(self.poll_interval)

    def _poll(self, key: NamespacedName, request: CertificateRequest, session: PKISession,
              request_id: str, cancel: Optional[threading.Event]) -> Result:
        _check_cancelled(cancel)
        logger.info(f"Pulling request {request_id} for CertificateRequest {key}")
        try:
            external = session.get_by_id(request_id)
        except HorizonError as e:
            raise ReconcileError(ErrorCategory.EXTERNAL_SERVICE, str(e)) from e

        if not external.completed:
            logger.debug(f"Horizon request {request_id} is {external.status}")
            return Result.after(self.poll_interval)

        set_condition(request, COND_APPROVED, CONDITION_TRUE, APPROVED_REASON, APPROVED_MESSAGE, self.clock())
        request.status.certificate = (external.certificate or "").encode()
        self._set_ready(request, CONDITION_TRUE, REASON_ISSUED, MESSAGE_ISSUED)
        logger.info(f"CertificateRequest {key} issued by Horizon request {request_id}")
        return Result.done()


def _check_cancelled(cancel: Optional[threading.Event]) -> None:
    if cancel is not None and cancel.is_set():
        raise ReconcileCancelled("reconcile cancelled before calling Horizon")
