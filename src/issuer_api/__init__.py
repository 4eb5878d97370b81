"""Resource models and helpers for the Horizon issuer."""

from .types import (
    CertificateRequest,
    ClusterIssuer,
    Issuer,
    IssuerRef,
    ObjectMeta,
    Secret,
)
from .issuers import UnknownIssuerKindError, UnsupportedIssuerError

__all__ = [
    'CertificateRequest',
    'ClusterIssuer',
    'Issuer',
    'IssuerRef',
    'ObjectMeta',
    'Secret',
    'UnknownIssuerKindError',
    'UnsupportedIssuerError',
]
