"""Unit tests for settings loading."""

import json
import os

import pytest
from pydantic import ValidationError

from issuer_api.constants import API_GROUP
from issuer_controller.settings import ENV_PREFIX, ControllerSettings, load_settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Drop any controller variables inherited from the test runner."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


@pytest.fixture
def settings_file(temp_dir, monkeypatch):
    """Write a JSON settings file and point the environment at it."""
    def write(values):
        path = temp_dir / "settings.json"
        path.write_text(json.dumps(values))
        monkeypatch.setenv("HORIZON_ISSUER_CONFIG", str(path))
        return path
    return write


class TestLoadSettings:
    """Test defaults, file values and environment overrides."""

    def test_defaults(self):
        settings = load_settings()

        assert settings.group == API_GROUP
        assert settings.store == "kubernetes"
        assert settings.workers == 4
        assert settings.poll_interval_seconds == 60.0
        assert settings.port == 8081

    def test_file_values(self, settings_file):
        settings_file({"store": "memory", "workers": 8, "cluster_resource_namespace": "pki"})

        settings = load_settings()

        assert settings.store == "memory"
        assert settings.workers == 8
        assert settings.cluster_resource_namespace == "pki"

    def test_missing_file_ignored(self, temp_dir, monkeypatch):
        monkeypatch.setenv("HORIZON_ISSUER_CONFIG", str(temp_dir / "absent.json"))

        assert load_settings().store == "kubernetes"

    def test_environment_overrides_file(self, settings_file, monkeypatch):
        settings_file({"workers": 8, "in_cluster": True})
        monkeypatch.setenv("HORIZON_ISSUER_WORKERS", "2")
        monkeypatch.setenv("HORIZON_ISSUER_IN_CLUSTER", "false")
        monkeypatch.setenv("HORIZON_ISSUER_LOG_LEVEL", "DEBUG")

        settings = load_settings()

        assert settings.workers == 2
        assert settings.in_cluster is False
        assert settings.log_level == "DEBUG"

    def test_arguments_override_environment(self, monkeypatch):
        monkeypatch.setenv("HORIZON_ISSUER_STORE", "kubernetes")

        assert ControllerSettings(store="memory").store == "memory"

    @pytest.mark.parametrize("name,value", [
        ("HORIZON_ISSUER_WORKERS", "0"),
        ("HORIZON_ISSUER_STORE", "etcd"),
        ("HORIZON_ISSUER_POLL_INTERVAL_SECONDS", "-1"),
    ])
    def test_invalid_values_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            load_settings()

    def test_model_direct(self):
        settings = ControllerSettings(store="memory", in_cluster=False)

        assert settings.kubeconfig is None
        assert settings.health_check_interval_seconds == 60.0
