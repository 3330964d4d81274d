"""Read ``bitbucket-provisioner.yaml`` into a :class:`Config`."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from bitbucket_provisioner.config.schema import Config, ProviderConfig

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bitbucket_provisioner.resources.deployment_variable import DeploymentVariableResource

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration file cannot be read or does not validate."""


def _provider(raw: Any, config_dir: Path) -> ProviderConfig:
    """Build provider settings from the YAML ``provider`` mapping.

    YAML values win over ``BITBUCKET_*`` environment variables, which win
    over a ``.env`` file next to the config.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("provider must be a mapping")
    unknown = sorted(set(raw) - set(ProviderConfig.model_fields))
    if unknown:
        raise ConfigError(f"Unknown provider field(s): {', '.join(unknown)}")
    given = {field: value for field, value in raw.items() if value is not None}
    return ProviderConfig(_env_file=config_dir / ".env", **given)


def _duplicates(variables: Iterable[DeploymentVariableResource]) -> list[str]:
    problems: list[str] = []
    names: set[str] = set()
    owners: dict[tuple[str, str], str] = {}
    for variable in variables:
        if variable.name in names:
            problems.append(f"Duplicate name '{variable.name}' in deployment_variables")
        names.add(variable.name)

        owner = owners.setdefault((variable.deployment, variable.key), variable.address)
        if owner != variable.address:
            problems.append(
                f"Duplicate key '{variable.key}' for deployment '{variable.deployment}': "
                f"found in both {owner} and {variable.address}"
            )
    return problems


def load_config(path: Path | str) -> Config:
    """Parse and validate the YAML file at *path*.

    Raises:
        ConfigError: unreadable YAML, invalid fields, or duplicate variables.
    """
    path = Path(path)
    try:
        raw = YAML(typ="safe").load(path)
    except (OSError, YAMLError) as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        provider = _provider(raw.pop("provider", None), path.parent)
        config = Config.model_validate({**raw, "provider": provider, "config_dir": path.parent})
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    problems = _duplicates(config.deployment_variables)
    if problems:
        raise ConfigError("\n".join(problems))

    logger.info("Loaded %d resources from %s", len(config.resources), path)
    return config
