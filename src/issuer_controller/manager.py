"""Controller manager - work queues and a bounded worker pool.

Each controller owns a work queue of object keys. A key is handed to at most
one worker at a time; adding it again while it is being processed marks it
for another pass once the current one finishes. Failed reconciles are retried
with per-key exponential backoff; ``Result.requeue_after`` schedules a plain
delayed retry and clears the backoff.
"""

import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Dict, Hashable, List, Optional, Protocol, Set, Tuple

from issuer_api.constants import KIND_ISSUER

from .certificaterequest import CertificateRequestReconciler, SessionFactory
from .errors import ReconcileCancelled
from .issuer import IssuerReconciler
from .issuer_resolver import IssuerResolver
from .result import Clock, Result, utc_now
from .settings import ControllerSettings
from .store import NamespacedName, ObjectStore

logger = logging.getLogger(__name__)

# Per-key failure backoff
BACKOFF_BASE_SECONDS = 0.005
BACKOFF_MAX_SECONDS = 1000.0

CERTIFICATE_REQUESTS = "certificaterequests"
ISSUERS = "issuers"


class WorkQueue:
    """Deduplicating, rate-limited queue of object keys."""

    def __init__(self, base_delay: float = BACKOFF_BASE_SECONDS, max_delay: float = BACKOFF_MAX_SECONDS):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._queue: List[Hashable] = []
        self._dirty: Set[Hashable] = set()
        self._processing: Set[Hashable] = set()
        self._waiting: List[Tuple[float, int, Hashable]] = []
        self._failures: Dict[Hashable, int] = {}
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self._shutting_down = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def _add_locked(self, item: Hashable) -> None:
        if self._shutting_down or item in self._dirty:
            return
        self._dirty.add(item)
        if item not in self._processing:
            self._queue.append(item)
            self._cond.notify()

    def add(self, item: Hashable) -> None:
        with self._cond:
            self._add_locked(item)

    def add_after(self, item: Hashable, delay: float) -> None:
        """Add ``item`` once ``delay`` seconds have passed."""
        if delay <= 0:
            self.add(item)
            return
        with self._cond:
            if self._shutting_down:
                return
            heapq.heappush(self._waiting, (time.monotonic() + delay, next(self._counter), item))
            self._cond.notify()

    def _backoff_locked(self, item: Hashable) -> float:
        failures = self._failures.get(item, 0)
        if failures == 0:
            return 0.0
        return min(self.base_delay * (2 ** (failures - 1)), self.max_delay)

    def backoff_for(self, item: Hashable) -> float:
        with self._cond:
            return self._backoff_locked(item)

    def add_rate_limited(self, item: Hashable) -> float:
        """Re-add ``item`` after its exponential backoff; returns the delay used."""
        with self._cond:
            self._failures[item] = self._failures.get(item, 0) + 1
            delay = self._backoff_locked(item)
        self.add_after(item, delay)
        return delay

    def forget(self, item: Hashable) -> None:
        with self._cond:
            self._failures.pop(item, None)

    def num_requeues(self, item: Hashable) -> int:
        with self._cond:
            return self._failures.get(item, 0)

    def _promote_ready_locked(self) -> Optional[float]:
        now = time.monotonic()
        while self._waiting and self._waiting[0][0] <= now:
            _, _, item = heapq.heappop(self._waiting)
            self._add_locked(item)
        if self._waiting:
            return self._waiting[0][0] - now
        return None

    def get(self, timeout: Optional[float] = None) -> Optional[Hashable]:
        """
        Take the next item for processing.

        Returns None on shutdown or when ``timeout`` expires first. Every
        returned item must be passed to ``done`` afterwards.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                next_ready = self._promote_ready_locked()
                if self._queue:
                    item = self._queue.pop(0)
                    self._processing.add(item)
                    self._dirty.discard(item)
                    return item
                if self._shutting_down:
                    return None

                wait = next_ready
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    wait = remaining if wait is None else min(wait, remaining)
                self._cond.wait(wait)

    def done(self, item: Hashable) -> None:
        with self._cond:
            self._processing.discard(item)
            if item in self._dirty:
                self._queue.append(item)
                self._cond.notify()

    def shutdown(self) -> None:
        with self._cond:
            self._shutting_down = True
            self._cond.notify_all()


class Reconciler(Protocol):
    def reconcile(self, key: NamespacedName, cancel: Optional[threading.Event] = None) -> Result:
        ...


class Controller:
    """A reconciler bound to its work queue."""

    def __init__(self, name: str, reconciler: Reconciler, queue: Optional[WorkQueue] = None):
        self.name = name
        self.reconciler = reconciler
        self.queue = queue or WorkQueue()

    def process_next(self, cancel: threading.Event, timeout: Optional[float] = None) -> bool:
        """
        Reconcile one key from the queue.

        Returns:
            False when the queue is shut down or empty until ``timeout``
        """
        key = self.queue.get(timeout=timeout)
        if key is None:
            return False

        try:
            result = self.reconciler.reconcile(key, cancel=cancel)
        except ReconcileCancelled:
            logger.info(f"[{self.name}] Reconcile of {key} cancelled")
        except Exception as e:
            delay = self.queue.add_rate_limited(key)
            logger.error(f"[{self.name}] Reconcile of {key} failed, retrying in {delay:.3f}s: {e}")
        else:
            self.queue.forget(key)
            if result.requeue:
                self.queue.add_after(key, result.requeue_after.total_seconds())
        finally:
            self.queue.done(key)
        return True


class ControllerManager:
    """Runs the CertificateRequest and Issuer controllers on a worker pool."""

    def __init__(self, settings: ControllerSettings, store: ObjectStore, session_factory: SessionFactory,
                 clock: Clock = utc_now):
        """
        Initialize the controller manager.

        Args:
            settings: Controller settings
            store: Object store shared by the reconcilers
            session_factory: Builds Horizon sessions
            clock: Timestamp source for conditions
        """
        self.settings = settings
        self.store = store
        self._stop = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None

        resolver = IssuerResolver(store, settings.cluster_resource_namespace)
        self.controllers: Dict[str, Controller] = {
            CERTIFICATE_REQUESTS: Controller(
                CERTIFICATE_REQUESTS,
                CertificateRequestReconciler(
                    store,
                    session_factory,
                    resolver=resolver,
                    clock=clock,
                    group=settings.group,
                    poll_interval=timedelta(seconds=settings.poll_interval_seconds),
                ),
            ),
            ISSUERS: Controller(
                ISSUERS,
                IssuerReconciler(
                    store,
                    kind=KIND_ISSUER,
                    clock=clock,
                    cluster_resource_namespace=settings.cluster_resource_namespace,
                    health_check_interval=timedelta(seconds=settings.health_check_interval_seconds),
                ),
            ),
        }

        logger.info(f"Controller manager initialized with {settings.workers} workers per controller")

    @property
    def running(self) -> bool:
        return self._executor is not None and not self._stop.is_set()

    def enqueue(self, controller: str, key: NamespacedName) -> None:
        """Queue a key for reconciliation by the named controller."""
        if controller not in self.controllers:
            raise KeyError(f"unknown controller: {controller}")
        self.controllers[controller].queue.add(key)

    def _worker(self, controller: Controller) -> None:
        while not self._stop.is_set():
            try:
                controller.process_next(self._stop, timeout=0.5)
            except Exception as e:
                logger.error(f"[{controller.name}] Worker error: {e}")

    def start(self) -> None:
        if self._executor is not None:
            return
        workers = self.settings.workers
        self._executor = ThreadPoolExecutor(
            max_workers=workers * len(self.controllers),
            thread_name_prefix="reconcile",
        )
        for controller in self.controllers.values():
            for _ in range(workers):
                self._executor.submit(self._worker, controller)
        logger.info("Controller manager started")

    def stop(self, wait: bool = True) -> None:
        """Cancel in-flight reconciles and stop the workers."""
        self._stop.set()
        for controller in self.controllers.values():
            controller.queue.shutdown()
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
        logger.info("Controller manager stopped")
