"""Horizon issuer controller - reconciles CertificateRequests against Horizon."""

from .certificaterequest import CertificateRequestReconciler
from .errors import AggregateError, ErrorCategory, ReconcileCancelled, ReconcileError
from .issuer import IssuerReconciler
from .issuer_resolver import IssuerResolver
from .manager import ControllerManager
from .result import Result
from .store import InMemoryObjectStore, NamespacedName

__all__ = [
    'CertificateRequestReconciler',
    'AggregateError',
    'ErrorCategory',
    'ReconcileCancelled',
    'ReconcileError',
    'IssuerReconciler',
    'IssuerResolver',
    'ControllerManager',
    'Result',
    'InMemoryObjectStore',
    'NamespacedName',
]
