"""Unit tests for the issuer resolver."""

import pytest

from issuer_api.types import ClusterIssuer, IssuerRef, ObjectMeta
from issuer_controller.errors import ErrorCategory, ReconcileError
from issuer_controller.issuer_resolver import IssuerResolver
from issuer_controller.store import StoreError

from ..utils.test_helpers import NAMESPACE, make_issuer, make_secret


def _ref(name="iss1", kind="Issuer"):
    return IssuerRef(name=name, kind=kind, group="horizon.k8s.evertrust.io")


class TestIssuerResolution:
    """Test issuer and secret lookup."""

    def test_resolves_issuer_and_credentials(self, store):
        resolver = IssuerResolver(store)

        resolved = resolver.resolve(_ref(), NAMESPACE)

        assert resolved.issuer.name == "iss1"
        assert resolved.spec.url == "https://pki.example"
        assert resolved.spec.profile == "webserver"
        assert resolved.username == "api-user"
        assert resolved.password == "api-key"

    def test_issuer_looked_up_in_request_namespace(self, store):
        store.create(make_issuer(namespace="team-b"))
        store.create(make_secret(namespace="team-b", username="b-user"))
        resolver = IssuerResolver(store)

        resolved = resolver.resolve(_ref(), "team-b")

        assert resolved.issuer.metadata.namespace == "team-b"
        assert resolved.username == "b-user"

    @pytest.mark.parametrize("kind,category", [
        ("Certificate", ErrorCategory.ISSUER_REF),
        ("ClusterIssuer", ErrorCategory.UNSUPPORTED_ISSUER),
    ])
    def test_issuer_for_ref_rejects_kinds(self, store, kind, category):
        resolver = IssuerResolver(store)

        with pytest.raises(ReconcileError) as exc_info:
            resolver.issuer_for_ref(_ref(kind=kind), NAMESPACE)

        assert exc_info.value.category is category

    def test_unsupported_variant_not_resolved(self, store):
        store.create(ClusterIssuer(metadata=ObjectMeta(name="iss1")))
        resolver = IssuerResolver(store)

        with pytest.raises(ReconcileError) as exc_info:
            resolver.resolve(_ref(kind="ClusterIssuer"), NAMESPACE)

        assert exc_info.value.category is ErrorCategory.UNSUPPORTED_ISSUER

    def test_missing_issuer(self, store):
        with pytest.raises(ReconcileError) as exc_info:
            IssuerResolver(store).resolve(_ref(name="ghost"), NAMESPACE)

        assert exc_info.value.category is ErrorCategory.GET_ISSUER
        assert isinstance(exc_info.value.__cause__, StoreError)

    def test_issuer_not_ready(self, store):
        store.create(make_issuer(name="cold", ready=False))

        with pytest.raises(ReconcileError) as exc_info:
            IssuerResolver(store).resolve(_ref(name="cold"), NAMESPACE)

        assert exc_info.value.category is ErrorCategory.ISSUER_NOT_READY

    def test_missing_secret(self, store):
        store.create(make_issuer(name="lonely", auth_secret_name="gone"))

        with pytest.raises(ReconcileError) as exc_info:
            IssuerResolver(store).resolve(_ref(name="lonely"), NAMESPACE)

        assert exc_info.value.category is ErrorCategory.GET_AUTH_SECRET
        assert "default/gone" in str(exc_info.value)
