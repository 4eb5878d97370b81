"""Unit tests for the status persistence scope."""

import pytest

from issuer_api.conditions import get_condition, set_ready_condition
from issuer_api.constants import COND_READY, CONDITION_FALSE, CONDITION_TRUE, REASON_PENDING
from issuer_api.types import CertificateRequest
from issuer_controller.condition_writer import certificate_request_status
from issuer_controller.errors import AggregateError, ErrorCategory, ReconcileCancelled, ReconcileError
from issuer_controller.store import NamespacedName, StoreError

from ..utils.test_helpers import NAMESPACE, conflict, make_certificate_request

KEY = NamespacedName(NAMESPACE, "cr1")


@pytest.fixture
def request_obj(store) -> CertificateRequest:
    store.create(make_certificate_request())
    return store.get(CertificateRequest, KEY)


class TestStatusPersistedScope:
    """Test persistence on every exit path."""

    def test_persists_on_normal_exit(self, store, request_obj, clock):
        with certificate_request_status(store, request_obj, clock):
            set_ready_condition(request_obj, CONDITION_TRUE, "Issued", "Signed", clock())

        assert store.status_updates == 1
        stored = store.get(CertificateRequest, KEY)
        assert get_condition(stored, COND_READY).status == CONDITION_TRUE

    def test_persists_on_early_return(self, store, request_obj, clock):
        def step():
            with certificate_request_status(store, request_obj, clock):
                return "early"

        assert step() == "early"
        assert store.status_updates == 1

    def test_error_recorded_as_pending_and_reraised(self, store, request_obj, clock):
        error = ReconcileError(ErrorCategory.ISSUER_NOT_READY, "Issuer default/iss1")

        with pytest.raises(ReconcileError) as exc_info:
            with certificate_request_status(store, request_obj, clock):
                raise error

        assert exc_info.value is error
        stored = store.get(CertificateRequest, KEY)
        ready = get_condition(stored, COND_READY)
        assert ready.status == CONDITION_FALSE
        assert ready.reason == REASON_PENDING
        assert ready.message == "issuer is not ready: Issuer default/iss1"

    def test_persist_failure_after_success(self, store, request_obj, clock):
        store.fail_status_update = conflict()

        with pytest.raises(ReconcileError) as exc_info:
            with certificate_request_status(store, request_obj, clock):
                pass

        assert exc_info.value.category is ErrorCategory.PERSIST_STATUS

    def test_both_failures_combined(self, store, request_obj, clock):
        store.fail_status_update = StoreError("connection refused")
        error = ReconcileError(ErrorCategory.EXTERNAL_SERVICE, "503")

        with pytest.raises(AggregateError) as exc_info:
            with certificate_request_status(store, request_obj, clock):
                raise error

        assert exc_info.value.errors[0] is error
        assert exc_info.value.errors[1] is store.fail_status_update
        assert "503" in str(exc_info.value)
        assert "connection refused" in str(exc_info.value)

    def test_cancellation_skips_persist(self, store, request_obj, clock):
        with pytest.raises(ReconcileCancelled):
            with certificate_request_status(store, request_obj, clock):
                set_ready_condition(request_obj, CONDITION_TRUE, "Issued", "Signed", clock())
                raise ReconcileCancelled("stop")

        assert store.status_updates == 0
        assert store.get(CertificateRequest, KEY).status.conditions == []


class TestAggregateError:
    """Test composite error formatting."""

    def test_single_error_message(self):
        assert str(AggregateError([None, ValueError("only")])) == "only"

    def test_multiple_errors_message(self):
        error = AggregateError([ValueError("a"), ValueError("b")])

        assert str(error) == "[a, b]"
        assert len(error.errors) == 2
