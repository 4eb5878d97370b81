"""Controller settings loaded from environment variables and a JSON file."""

import logging
import os
from typing import Literal, Optional, Tuple, Type

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from issuer_api.constants import API_GROUP

logger = logging.getLogger(__name__)

ENV_PREFIX = "HORIZON_ISSUER_"
CONFIG_FILE_ENV = f"{ENV_PREFIX}CONFIG"


class ControllerSettings(BaseSettings):
    """
    Runtime configuration of the controller manager.

    Sources, highest priority first: constructor arguments,
    ``HORIZON_ISSUER_<FIELD>`` environment variables, then the JSON file named
    by ``HORIZON_ISSUER_CONFIG``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
    )

    group: str = Field(default=API_GROUP, description="API group of the issuers this controller owns")
    cluster_resource_namespace: str = Field(
        default="horizon-issuer", description="Namespace holding secrets of cluster scoped issuers"
    )
    store: Literal["kubernetes", "memory"] = Field(default="kubernetes", description="Object store backend")
    in_cluster: bool = Field(default=True, description="Use the in-cluster service account")
    kubeconfig: Optional[str] = Field(None, description="Kubeconfig path when not in cluster")
    workers: int = Field(default=4, ge=1, le=64, description="Concurrent reconciles")
    poll_interval_seconds: float = Field(default=60.0, gt=0, description="Delay between Horizon polls")
    health_check_interval_seconds: float = Field(default=60.0, gt=0, description="Issuer health check period")
    horizon_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call Horizon timeout")
    log_level: str = Field(default="INFO", description="Root log level")
    host: str = Field(default="0.0.0.0", description="Health endpoint bind address")
    port: int = Field(default=8081, ge=1, le=65535, description="Health endpoint port")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        config_file = os.environ.get(CONFIG_FILE_ENV)
        if not config_file:
            return (init_settings, env_settings)
        return (init_settings, env_settings, JsonConfigSettingsSource(settings_cls, json_file=config_file))


def load_settings() -> ControllerSettings:
    """Load and validate the settings from the environment."""
    config_file = os.environ.get(CONFIG_FILE_ENV)
    if config_file and not os.path.isfile(config_file):
        logger.warning(f"Settings file {config_file} not found, ignoring it")
    settings = ControllerSettings()
    logger.info(f"Settings loaded (store={settings.store}, workers={settings.workers})")
    return settings
