"""Error categories raised by the reconcilers."""

from enum import Enum
from typing import Iterable, List, Optional


class ErrorCategory(str, Enum):
    """Stable markers for reconcile failures."""

    GET_REQUEST = "unexpected get error"
    ISSUER_REF = "error interpreting issuerRef"
    UNSUPPORTED_ISSUER = "unsupported issuer type"
    GET_ISSUER = "error getting issuer"
    ISSUER_NOT_READY = "issuer is not ready"
    GET_AUTH_SECRET = "failed to get Secret containing Issuer credentials"
    INVALID_BASE_URL = "invalid base url"
    EXTERNAL_SERVICE = "horizon returned an error"
    PERSIST_ANNOTATION = "failed to record the Horizon request id"
    PERSIST_STATUS = "failed to update status"


class ReconcileError(Exception):
    """
    Exception raised by a reconcile step.

    The category lets callers branch on the failure without inspecting the
    message; the detail carries the underlying cause.
    """

    def __init__(self, category: ErrorCategory, detail: Optional[str] = None):
        self.category = category
        self.detail = detail
        super().__init__(f"{category.value}: {detail}" if detail else category.value)


class AggregateError(Exception):
    """Several errors that must all be reported."""

    def __init__(self, errors: Iterable[BaseException]):
        self.errors: List[BaseException] = [e for e in errors if e is not None]
        messages = [str(e) for e in self.errors]
        if len(messages) == 1:
            message = messages[0]
        else:
            message = "[" + ", ".join(messages) + "]"
        super().__init__(message)


class ReconcileCancelled(Exception):
    """Raised when the surrounding operation was cancelled mid-reconcile."""
    pass
