"""Unit tests for the in-memory object store."""

import pytest

from issuer_api.constants import REQUEST_ID_ANNOTATION
from issuer_api.types import CertificateRequest, Issuer, Secret
from issuer_controller.store import ConflictError, InMemoryObjectStore, NamespacedName, NotFoundError

from ..utils.test_helpers import NAMESPACE, make_certificate_request, make_issuer, make_secret

KEY = NamespacedName(NAMESPACE, "cr1")


@pytest.fixture
def memory_store() -> InMemoryObjectStore:
    store = InMemoryObjectStore()
    store.create(make_certificate_request())
    return store


class TestInMemoryObjectStore:
    """Test get/update/update_status semantics."""

    def test_get_returns_copy(self, memory_store):
        first = memory_store.get(CertificateRequest, KEY)
        first.metadata.annotations["x"] = "y"

        assert "x" not in memory_store.get(CertificateRequest, KEY).metadata.annotations

    def test_get_missing(self, memory_store):
        with pytest.raises(NotFoundError):
            memory_store.get(CertificateRequest, NamespacedName(NAMESPACE, "ghost"))

    def test_kinds_are_separate(self, memory_store):
        memory_store.create(make_issuer(name="cr1"))
        memory_store.create(make_secret(name="cr1"))

        assert memory_store.get(Issuer, KEY).spec.profile == "webserver"
        assert memory_store.get(Secret, KEY).data["username"] == b"api-user"

    def test_create_duplicate(self, memory_store):
        with pytest.raises(ConflictError):
            memory_store.create(make_certificate_request())

    def test_update_writes_annotations_only(self, memory_store):
        obj = memory_store.get(CertificateRequest, KEY)
        obj.metadata.annotations[REQUEST_ID_ANNOTATION] = "req-1"
        obj.status.certificate = b"ignored"
        obj.spec.request = b"ignored"

        memory_store.update(obj)

        stored = memory_store.get(CertificateRequest, KEY)
        assert stored.metadata.annotations[REQUEST_ID_ANNOTATION] == "req-1"
        assert stored.status.certificate is None
        assert stored.spec.request != b"ignored"

    def test_update_status_keeps_metadata(self, memory_store):
        obj = memory_store.get(CertificateRequest, KEY)
        obj.metadata.annotations[REQUEST_ID_ANNOTATION] = "ignored"
        obj.status.certificate = b"CERT"

        memory_store.update_status(obj)

        stored = memory_store.get(CertificateRequest, KEY)
        assert stored.status.certificate == b"CERT"
        assert REQUEST_ID_ANNOTATION not in stored.metadata.annotations

    def test_writer_receives_new_version(self, memory_store):
        obj = memory_store.get(CertificateRequest, KEY)
        before = obj.metadata.resource_version

        memory_store.update(obj)
        memory_store.update_status(obj)

        assert obj.metadata.resource_version != before
        assert obj.metadata.resource_version == memory_store.get(CertificateRequest, KEY).metadata.resource_version

    def test_stale_write_rejected(self, memory_store):
        first = memory_store.get(CertificateRequest, KEY)
        second = memory_store.get(CertificateRequest, KEY)
        memory_store.update_status(first)
        second.status.certificate = b"late"

        with pytest.raises(ConflictError):
            memory_store.update_status(second)

        assert memory_store.get(CertificateRequest, KEY).status.certificate is None

    def test_update_missing(self, memory_store):
        ghost = make_certificate_request(name="ghost")

        with pytest.raises(NotFoundError):
            memory_store.update_status(ghost)
