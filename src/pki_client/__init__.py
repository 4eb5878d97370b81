"""Horizon PKI client - sessions for enrollment submission and polling."""

from .models import ExternalRequest, LabelElement
from .session import (
    HorizonError,
    HorizonSession,
    HorizonSessionFactory,
    InvalidEndpointError,
    PKISession,
)

__all__ = [
    'ExternalRequest',
    'LabelElement',
    'HorizonError',
    'HorizonSession',
    'HorizonSessionFactory',
    'InvalidEndpointError',
    'PKISession',
]
