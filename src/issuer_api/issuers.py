"""Issuer variants and the capability shared by them.

The set of issuer kinds is closed: ``Issuer`` (namespaced) and
``ClusterIssuer`` (cluster scoped). Dispatch is done by explicit matching on
the variant type.
"""

from typing import Dict, Optional, Tuple, Type

from .constants import KIND_CLUSTER_ISSUER, KIND_ISSUER
from .types import AnyIssuer, ClusterIssuer, Issuer, IssuerSpec, IssuerStatus, ObjectMeta

ISSUER_KINDS: Dict[str, Type[AnyIssuer]] = {
    KIND_ISSUER: Issuer,
    KIND_CLUSTER_ISSUER: ClusterIssuer,
}

# Variants the controllers currently act on.
SUPPORTED_ISSUER_KINDS = frozenset({KIND_ISSUER})


class UnknownIssuerKindError(Exception):
    """Raised when an issuer kind is not registered."""
    pass


class UnsupportedIssuerError(Exception):
    """Raised when an issuer is of a registered but inactive variant."""
    pass


def new_issuer(kind: str, name: str, namespace: Optional[str] = None) -> AnyIssuer:
    """
    Create an empty issuer object of the given kind.

    Args:
        kind: Issuer kind from an issuer reference
        name: Issuer name
        namespace: Namespace for namespaced issuers

    Returns:
        Issuer or ClusterIssuer instance

    Raises:
        UnknownIssuerKindError: If the kind is not registered
    """
    issuer_cls = ISSUER_KINDS.get(kind)
    if issuer_cls is None:
        raise UnknownIssuerKindError(f'no kind "{kind}" is registered')
    if issuer_cls is ClusterIssuer:
        namespace = None
    return issuer_cls(metadata=ObjectMeta(name=name, namespace=namespace))


def is_supported(issuer: AnyIssuer) -> bool:
    return issuer.kind in SUPPORTED_ISSUER_KINDS


def get_spec_and_status(issuer: AnyIssuer) -> Tuple[IssuerSpec, IssuerStatus]:
    if isinstance(issuer, (Issuer, ClusterIssuer)):
        return issuer.spec, issuer.status
    raise UnsupportedIssuerError(f"not an issuer: {type(issuer).__name__}")


def secret_namespace(issuer: AnyIssuer, request_namespace: Optional[str],
                     cluster_resource_namespace: str) -> Optional[str]:
    """Namespace in which the issuer's credential secret lives."""
    if isinstance(issuer, Issuer):
        return request_namespace
    if isinstance(issuer, ClusterIssuer):
        return cluster_resource_namespace
    raise UnsupportedIssuerError(f"unexpected issuer type: {type(issuer).__name__}")
