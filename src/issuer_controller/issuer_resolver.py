"""Locate the issuer referenced by a CertificateRequest and its credentials."""

import logging
from dataclasses import dataclass
from typing import Optional

from issuer_api.conditions import is_issuer_ready
from issuer_api.constants import SECRET_PASSWORD_KEY, SECRET_USERNAME_KEY
from issuer_api.issuers import (
    UnknownIssuerKindError,
    UnsupportedIssuerError,
    get_spec_and_status,
    is_supported,
    new_issuer,
    secret_namespace,
)
from issuer_api.types import AnyIssuer, IssuerRef, IssuerSpec, IssuerStatus, Secret

from .errors import ErrorCategory, ReconcileError
from .store import NamespacedName, ObjectStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class ResolvedIssuer:
    """A Ready issuer together with its credential secret."""

    issuer: AnyIssuer
    spec: IssuerSpec
    status: IssuerStatus
    secret: Secret

    @property
    def username(self) -> str:
        return self.secret.data.get(SECRET_USERNAME_KEY, b"").decode()

    @property
    def password(self) -> str:
        return self.secret.data.get(SECRET_PASSWORD_KEY, b"").decode()


class IssuerResolver:
    """Resolves issuer references against the object store."""

    def __init__(self, store: ObjectStore, cluster_resource_namespace: str = "horizon-issuer"):
        """
        Initialize Issuer Resolver.

        Args:
            store: Object store to read issuers and secrets from
            cluster_resource_namespace: Namespace holding secrets of cluster scoped issuers
        """
        self.store = store
        self.cluster_resource_namespace = cluster_resource_namespace

    def issuer_for_ref(self, issuer_ref: IssuerRef, namespace: Optional[str]) -> AnyIssuer:
        """
        Build an empty issuer of the referenced kind.

        Raises:
            ReconcileError: ISSUER_REF for an unregistered kind,
                UNSUPPORTED_ISSUER for a registered but inactive variant
        """
        try:
            issuer = new_issuer(issuer_ref.kind, issuer_ref.name, namespace)
        except UnknownIssuerKindError as e:
            raise ReconcileError(ErrorCategory.ISSUER_REF, str(e)) from e

        if not is_supported(issuer):
            raise ReconcileError(ErrorCategory.UNSUPPORTED_ISSUER, f"unexpected issuer type: {issuer.kind}")
        return issuer

    def resolve(self, issuer_ref: IssuerRef, namespace: Optional[str]) -> ResolvedIssuer:
        """
        Fetch the referenced issuer and its credential secret.

        Args:
            issuer_ref: Reference taken from the CertificateRequest
            namespace: Namespace of the CertificateRequest

        Returns:
            ResolvedIssuer with spec, status and secret

        Raises:
            ReconcileError: GET_ISSUER, ISSUER_NOT_READY, UNSUPPORTED_ISSUER,
                GET_AUTH_SECRET (and ISSUER_REF for an unknown kind)
        """
        empty = self.issuer_for_ref(issuer_ref, namespace)
        issuer_name = NamespacedName(empty.metadata.namespace, empty.metadata.name)

        try:
            issuer = self.store.get(type(empty), issuer_name)
        except StoreError as e:
            raise ReconcileError(ErrorCategory.GET_ISSUER, str(e)) from e

        try:
            spec, status = get_spec_and_status(issuer)
            namespace_for_secret = secret_namespace(issuer, namespace, self.cluster_resource_namespace)
        except UnsupportedIssuerError as e:
            raise ReconcileError(ErrorCategory.UNSUPPORTED_ISSUER, str(e)) from e

        if not is_issuer_ready(status):
            raise ReconcileError(ErrorCategory.ISSUER_NOT_READY, f"{issuer.kind} {issuer_name}")

        secret_name = NamespacedName(namespace_for_secret, spec.auth_secret_name)
        try:
            secret = self.store.get(Secret, secret_name)
        except StoreError as e:
            raise ReconcileError(
                ErrorCategory.GET_AUTH_SECRET,
                f"secret name: {secret_name}, reason: {e}",
            ) from e

        logger.debug(f"Resolved {issuer.kind} {issuer_name} with secret {secret_name}")
        return ResolvedIssuer(issuer=issuer, spec=spec, status=status, secret=secret)
