"""Resource models for certificate requests, issuers and credential secrets.

Kubernetes returns custom resources as raw ``dict`` objects, so every model
offers ``from_k8s_object`` / ``to_k8s_object`` to move between the camelCase
wire shape (byte fields base64 encoded) and the typed model.

The models only track the fields the controllers read or write. The object a
model was built from is kept, and write bodies are laid over it, so labels,
owner references, the rest of the spec and status fields owned by other
controllers are sent back untouched.
"""

import base64
import copy
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr

from .constants import (
    API_GROUP_VERSION,
    CERT_MANAGER_GROUP,
    CERT_MANAGER_VERSION,
    CONDITION_UNKNOWN,
    KIND_CLUSTER_ISSUER,
    KIND_ISSUER,
)

ConditionStatus = Literal["True", "False", "Unknown"]


def _b64decode(value: Optional[str]) -> Optional[bytes]:
    if value is None:
        return None
    return base64.b64decode(value)


def _b64encode(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    return base64.b64encode(value).decode()


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _format_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


class ObjectMeta(BaseModel):
    """Subset of Kubernetes object metadata used by the controllers."""

    name: str = Field(..., description="Object name")
    namespace: Optional[str] = Field(None, description="Namespace (None for cluster scoped objects)")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Object annotations")
    resource_version: Optional[str] = Field(None, description="Optimistic concurrency token")

    @classmethod
    def from_k8s_object(cls, obj: Dict[str, Any]) -> "ObjectMeta":
        return cls(
            name=obj.get("name", ""),
            namespace=obj.get("namespace"),
            annotations=obj.get("annotations") or {},
            resource_version=obj.get("resourceVersion"),
        )

    def to_k8s_object(self, source: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Wire metadata, laid over ``source`` (the metadata as read) when given."""
        obj = copy.deepcopy(source) if source else {}
        obj.update(_drop_none({
            "name": self.name,
            "namespace": self.namespace,
            "resourceVersion": self.resource_version,
        }))
        if self.annotations:
            obj["annotations"] = dict(self.annotations)
        else:
            obj.pop("annotations", None)
        return obj


class _KubeResource(BaseModel):
    """Custom resource that remembers the object it was read from."""

    _source: Dict[str, Any] = PrivateAttr(default_factory=dict)

    def _remember(self, obj: Dict[str, Any]):
        self._source = copy.deepcopy(obj)
        return self

    def _source_section(self, key: str) -> Dict[str, Any]:
        return copy.deepcopy(self._source.get(key) or {})

    def metadata_update_object(self) -> Dict[str, Any]:
        """
        Body for a full replace that changes metadata only.

        The spec and status are sent back exactly as they were read.
        """
        if not self._source:
            return self.to_k8s_object()
        body = copy.deepcopy(self._source)
        body["metadata"] = self.metadata.to_k8s_object(body.get("metadata"))
        return body

    def status_update_object(self) -> Dict[str, Any]:
        """Body for a replace of the status sub-resource."""
        if not self._source:
            return self.to_k8s_object()
        body = copy.deepcopy(self._source)
        body["metadata"] = self.metadata.to_k8s_object(body.get("metadata"))
        body["status"] = self.status_to_k8s_object()
        return body


# =============================================================================
# CertificateRequest
# =============================================================================


class IssuerRef(BaseModel):
    """Reference from a CertificateRequest to the issuer that should sign it."""

    name: str = Field(..., description="Issuer name")
    kind: str = Field(default=KIND_ISSUER, description="Issuer kind (Issuer or ClusterIssuer)")
    group: str = Field(default=CERT_MANAGER_GROUP, description="Issuer API group")


class CertificateRequestCondition(BaseModel):
    """Status condition from ``.status.conditions[]``."""

    type: str = Field(..., description="Condition type (Ready, Approved, Denied)")
    status: ConditionStatus = Field(default=CONDITION_UNKNOWN, description="Condition status")
    reason: str = Field(default="", description="Machine-readable reason")
    message: str = Field(default="", description="Human-readable message")
    last_transition_time: Optional[datetime] = Field(None, description="Last transition timestamp")
    observed_generation: Optional[int] = Field(None, description="Generation the condition was set for")

    @classmethod
    def from_k8s_object(cls, obj: Dict[str, Any]) -> "CertificateRequestCondition":
        return cls(
            type=obj.get("type", ""),
            status=obj.get("status", CONDITION_UNKNOWN),
            reason=obj.get("reason", ""),
            message=obj.get("message", ""),
            last_transition_time=_parse_time(obj.get("lastTransitionTime")),
            observed_generation=obj.get("observedGeneration"),
        )

    def to_k8s_object(self) -> Dict[str, Any]:
        return _drop_none({
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": _format_time(self.last_transition_time),
            "observedGeneration": self.observed_generation,
        })


class CertificateRequestSpec(BaseModel):
    issuer_ref: IssuerRef
    request: bytes = Field(default=b"", description="PEM-encoded certificate signing request")


class CertificateRequestStatus(BaseModel):
    conditions: List[CertificateRequestCondition] = Field(default_factory=list)
    certificate: Optional[bytes] = Field(None, description="PEM-encoded signed certificate")
    failure_time: Optional[datetime] = Field(None, description="Time the request was marked failed")


class CertificateRequest(_KubeResource):
    """cert-manager CertificateRequest resource."""

    metadata: ObjectMeta
    spec: CertificateRequestSpec
    status: CertificateRequestStatus = Field(default_factory=CertificateRequestStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    @classmethod
    def from_k8s_object(cls, obj: Dict[str, Any]) -> "CertificateRequest":
        """Create from a cert-manager CertificateRequest CRD dict."""
        spec: Dict[str, Any] = obj.get("spec", {})
        status: Dict[str, Any] = obj.get("status") or {}
        issuer_ref: Dict[str, Any] = spec.get("issuerRef", {})

        request = cls(
            metadata=ObjectMeta.from_k8s_object(obj.get("metadata", {})),
            spec=CertificateRequestSpec(
                issuer_ref=IssuerRef(
                    name=issuer_ref.get("name", ""),
                    kind=issuer_ref.get("kind", KIND_ISSUER),
                    group=issuer_ref.get("group", CERT_MANAGER_GROUP),
                ),
                request=_b64decode(spec.get("request")) or b"",
            ),
            status=CertificateRequestStatus(
                conditions=[
                    CertificateRequestCondition.from_k8s_object(c)
                    for c in status.get("conditions", [])
                ],
                certificate=_b64decode(status.get("certificate")),
                failure_time=_parse_time(status.get("failureTime")),
            ),
        )
        return request._remember(obj)

    def to_k8s_object(self) -> Dict[str, Any]:
        return {
            "apiVersion": f"{CERT_MANAGER_GROUP}/{CERT_MANAGER_VERSION}",
            "kind": "CertificateRequest",
            "metadata": self.metadata.to_k8s_object(self._source.get("metadata")),
            "spec": {
                "issuerRef": self.spec.issuer_ref.model_dump(),
                "request": _b64encode(self.spec.request),
            },
            "status": self.status_to_k8s_object(),
        }

    def status_to_k8s_object(self) -> Dict[str, Any]:
        status = self._source_section("status")
        status.update(_drop_none({
            "conditions": [c.to_k8s_object() for c in self.status.conditions],
            "certificate": _b64encode(self.status.certificate),
            "failureTime": _format_time(self.status.failure_time),
        }))
        return status


# =============================================================================
# Issuer / ClusterIssuer
# =============================================================================


class IssuerSpec(BaseModel):
    """Horizon endpoint, enrollment profile and credential secret name."""

    url: str = Field(default="", description="Base URL of the Horizon instance")
    profile: str = Field(default="", description="Horizon enrollment profile")
    auth_secret_name: str = Field(default="", description="Secret holding username/password")


class IssuerCondition(BaseModel):
    type: str = Field(..., description="Condition type")
    status: ConditionStatus = Field(default=CONDITION_UNKNOWN)
    reason: str = Field(default="")
    message: str = Field(default="")
    last_transition_time: Optional[datetime] = None
    observed_generation: Optional[int] = None

    @classmethod
    def from_k8s_object(cls, obj: Dict[str, Any]) -> "IssuerCondition":
        return cls(
            type=obj.get("type", ""),
            status=obj.get("status", CONDITION_UNKNOWN),
            reason=obj.get("reason", ""),
            message=obj.get("message", ""),
            last_transition_time=_parse_time(obj.get("lastTransitionTime")),
            observed_generation=obj.get("observedGeneration"),
        )

    def to_k8s_object(self) -> Dict[str, Any]:
        return _drop_none({
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": _format_time(self.last_transition_time),
            "observedGeneration": self.observed_generation,
        })


class IssuerStatus(BaseModel):
    conditions: List[IssuerCondition] = Field(default_factory=list)


class _IssuerBase(_KubeResource):
    metadata: ObjectMeta
    spec: IssuerSpec = Field(default_factory=IssuerSpec)
    status: IssuerStatus = Field(default_factory=IssuerStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @classmethod
    def from_k8s_object(cls, obj: Dict[str, Any]):
        spec: Dict[str, Any] = obj.get("spec", {})
        status: Dict[str, Any] = obj.get("status") or {}
        issuer = cls(
            metadata=ObjectMeta.from_k8s_object(obj.get("metadata", {})),
            spec=IssuerSpec(
                url=spec.get("url", ""),
                profile=spec.get("profile", ""),
                auth_secret_name=spec.get("authSecretName", ""),
            ),
            status=IssuerStatus(
                conditions=[IssuerCondition.from_k8s_object(c) for c in status.get("conditions", [])],
            ),
        )
        return issuer._remember(obj)

    def to_k8s_object(self) -> Dict[str, Any]:
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": self.kind,
            "metadata": self.metadata.to_k8s_object(self._source.get("metadata")),
            "spec": {
                "url": self.spec.url,
                "profile": self.spec.profile,
                "authSecretName": self.spec.auth_secret_name,
            },
            "status": self.status_to_k8s_object(),
        }

    def status_to_k8s_object(self) -> Dict[str, Any]:
        status = self._source_section("status")
        status["conditions"] = [c.to_k8s_object() for c in self.status.conditions]
        return status


class Issuer(_IssuerBase):
    """Namespaced Horizon issuer."""

    kind: Literal["Issuer"] = KIND_ISSUER


class ClusterIssuer(_IssuerBase):
    """Cluster scoped Horizon issuer."""

    kind: Literal["ClusterIssuer"] = KIND_CLUSTER_ISSUER


AnyIssuer = Union[Issuer, ClusterIssuer]


# =============================================================================
# Secret
# =============================================================================


class Secret(BaseModel):
    """Credential secret referenced by an issuer."""

    metadata: ObjectMeta
    data: Dict[str, bytes] = Field(default_factory=dict)

    @classmethod
    def from_k8s_object(cls, obj: Dict[str, Any]) -> "Secret":
        return cls(
            metadata=ObjectMeta.from_k8s_object(obj.get("metadata", {})),
            data={key: base64.b64decode(value) for key, value in (obj.get("data") or {}).items()},
        )
