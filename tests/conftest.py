"""Pytest configuration and shared fixtures for issuer controller testing."""

import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Generator

from issuer_controller.certificaterequest import CertificateRequestReconciler
from issuer_controller.issuer_resolver import IssuerResolver

from .utils.test_helpers import (
    CSRFactory,
    FakeSessionFactory,
    FixedClock,
    RecordingStore,
    make_issuer,
    make_secret,
)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test artifacts."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def clock() -> FixedClock:
    """Provide a clock fixed at 2025-01-01T00:00:00Z."""
    return FixedClock()


@pytest.fixture(scope="session")
def csr_pem() -> bytes:
    """Provide a real PEM-encoded CSR."""
    return CSRFactory.create_csr_pem("app.example.com")


@pytest.fixture
def store() -> RecordingStore:
    """Provide an object store seeded with a Ready issuer and its secret."""
    store = RecordingStore()
    store.create(make_issuer())
    store.create(make_secret())
    return store


@pytest.fixture
def horizon() -> FakeSessionFactory:
    """Provide a fake Horizon that hands out request id "req-42"."""
    return FakeSessionFactory(next_id="req-42")


@pytest.fixture
def reconciler(store, horizon, clock) -> CertificateRequestReconciler:
    """Provide a CertificateRequest reconciler wired to the fakes."""
    return CertificateRequestReconciler(
        store,
        horizon,
        resolver=IssuerResolver(store),
        clock=clock,
    )
