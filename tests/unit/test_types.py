"""Unit tests for Kubernetes object conversion."""

import base64
from datetime import datetime, timezone

from issuer_api.constants import REQUEST_ID_ANNOTATION
from issuer_api.types import CertificateRequest, Issuer, Secret


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode()


CR_OBJECT = {
    "apiVersion": "cert-manager.io/v1",
    "kind": "CertificateRequest",
    "metadata": {
        "name": "cr1",
        "namespace": "default",
        "resourceVersion": "17",
        "annotations": {REQUEST_ID_ANNOTATION: "req-42"},
    },
    "spec": {
        "issuerRef": {"name": "iss1", "kind": "Issuer", "group": "horizon.k8s.evertrust.io"},
        "request": _b64(b"CSR"),
    },
    "status": {
        "conditions": [{
            "type": "Ready",
            "status": "False",
            "reason": "Pending",
            "message": "Submitted request to Horizon",
            "lastTransitionTime": "2025-01-01T00:00:00Z",
        }],
        "failureTime": "2025-01-02T03:04:05Z",
    },
}


class TestCertificateRequestConversion:
    """Test CertificateRequest dict conversion."""

    def test_from_k8s_object(self):
        request = CertificateRequest.from_k8s_object(CR_OBJECT)

        assert request.name == "cr1"
        assert request.namespace == "default"
        assert request.metadata.resource_version == "17"
        assert request.metadata.annotations[REQUEST_ID_ANNOTATION] == "req-42"
        assert request.spec.issuer_ref.group == "horizon.k8s.evertrust.io"
        assert request.spec.request == b"CSR"
        assert request.status.conditions[0].reason == "Pending"
        assert request.status.conditions[0].last_transition_time == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert request.status.failure_time == datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert request.status.certificate is None

    def test_to_k8s_object_encodes_bytes(self):
        request = CertificateRequest.from_k8s_object(CR_OBJECT)
        request.status.certificate = b"CERTDATA"

        obj = request.to_k8s_object()

        assert obj["spec"]["request"] == _b64(b"CSR")
        assert obj["status"]["certificate"] == _b64(b"CERTDATA")
        assert obj["status"]["failureTime"] == "2025-01-02T03:04:05Z"
        assert obj["status"]["conditions"][0]["lastTransitionTime"] == "2025-01-01T00:00:00Z"
        assert obj["metadata"]["resourceVersion"] == "17"

    def test_missing_status(self):
        obj = {"metadata": {"name": "cr2"}, "spec": {"issuerRef": {"name": "x"}}}

        request = CertificateRequest.from_k8s_object(obj)

        assert request.status.conditions == []
        assert request.metadata.annotations == {}
        assert request.spec.issuer_ref.kind == "Issuer"


class TestIssuerAndSecretConversion:
    """Test issuer and secret conversion."""

    def test_issuer_round_trip_fields(self):
        obj = {
            "metadata": {"name": "iss1", "namespace": "default"},
            "spec": {"url": "https://pki.example", "profile": "webserver", "authSecretName": "cred"},
            "status": {"conditions": [{"type": "Ready", "status": "True"}]},
        }

        issuer = Issuer.from_k8s_object(obj)
        out = issuer.to_k8s_object()

        assert issuer.spec.auth_secret_name == "cred"
        assert out["kind"] == "Issuer"
        assert out["apiVersion"] == "horizon.k8s.evertrust.io/v1alpha1"
        assert out["spec"]["authSecretName"] == "cred"
        assert out["status"]["conditions"][0]["status"] == "True"

    def test_secret_data_decoded(self):
        obj = {
            "metadata": {"name": "cred", "namespace": "default"},
            "data": {"username": _b64(b"api-user"), "password": _b64(b"s3cret")},
        }

        secret = Secret.from_k8s_object(obj)

        assert secret.data == {"username": b"api-user", "password": b"s3cret"}


class TestFieldsKeptFromSource:
    """Test that untracked fields survive a conversion back to a dict."""

    def test_status_keeps_ca_and_observed_generation(self):
        obj = {
            "metadata": {"name": "cr1", "namespace": "default", "labels": {"app": "web"}},
            "spec": {"issuerRef": {"name": "iss1"}, "request": _b64(b"CSR"), "usages": ["server auth"]},
            "status": {
                "ca": _b64(b"CA"),
                "conditions": [{"type": "Approved", "status": "True", "observedGeneration": 3}],
            },
        }
        request = CertificateRequest.from_k8s_object(obj)
        request.status.certificate = b"CERTDATA"

        out = request.to_k8s_object()

        assert out["status"]["ca"] == _b64(b"CA")
        assert out["status"]["conditions"][0]["observedGeneration"] == 3
        assert out["metadata"]["labels"] == {"app": "web"}
        assert request.metadata_update_object()["spec"] == obj["spec"]

    def test_copy_keeps_source(self):
        obj = {"metadata": {"name": "iss1", "labels": {"tier": "pki"}}, "spec": {"url": "https://pki.example"}}

        issuer = Issuer.from_k8s_object(obj).model_copy(deep=True)

        assert issuer.metadata_update_object()["metadata"]["labels"] == {"tier": "pki"}
