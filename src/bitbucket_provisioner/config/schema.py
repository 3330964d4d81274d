"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from bitbucket_provisioner.core.client import DEFAULT_BASE_URL
from bitbucket_provisioner.resources.base import Resource  # noqa: TC001
from bitbucket_provisioner.resources.deployment_variable import (
    DeploymentVariableResource,  # noqa: TC001
)


class ProviderConfig(BaseSettings):
    """Bitbucket connection and handler settings.

    Constructor kwargs (the YAML ``provider`` mapping) win, then
    ``BITBUCKET_<FIELD>`` environment variables, then the ``.env`` file
    passed as ``_env_file``. Credentials belong in the environment, not
    in YAML.
    """

    model_config = SettingsConfigDict(
        env_prefix="BITBUCKET_", env_file_encoding="utf-8-sig", extra="ignore"
    )

    workspace: str
    host: str = DEFAULT_BASE_URL
    username: str | None = None
    app_password: str | None = None
    access_token: str | None = None
    timeout: float = Field(default=30, gt=0)

    # Deployment variable handler tuning
    create_timeout: float = Field(default=5.0, ge=0)
    poll_interval: float = Field(default=1.0, ge=0)
    strict_status: bool = False


def _none_to_list(v: Any) -> Any:
    return v if v is not None else []


class Config(BaseModel):
    """Provisioning configuration, validated straight from the YAML document."""

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig
    state_path: Path = Path(".bitbucket-state.json")
    deployment_variables: Annotated[
        list[DeploymentVariableResource], BeforeValidator(_none_to_list)
    ] = []
    config_dir: Path = Path()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def resources(self) -> list[Resource]:
        """All declared resources. Ordering is not significant."""
        return [*self.deployment_variables]
