"""Python API: load a YAML config, then plan, apply, refresh or check drift."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import SecretStr

from bitbucket_provisioner.config.loader import ConfigError, load_config
from bitbucket_provisioner.config.registry import default_registry
from bitbucket_provisioner.config.schema import Config, ProviderConfig
from bitbucket_provisioner.core.provider import AppPasswordAuth, BitbucketProvider, TokenAuth
from bitbucket_provisioner.core.state import State
from bitbucket_provisioner.engine.engine import BitbucketEngine, ProgressCallback, attribute_diff
from bitbucket_provisioner.engine.lock import StateLock
from bitbucket_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from bitbucket_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "drift_between",
    "engine_for",
    "load",
    "load_config",
    "plan",
    "plan_and_apply",
    "provider_from_config",
    "refresh",
    "save_state",
]


def load(path: Path | str) -> Config:
    return load_config(path)


def provider_from_config(cfg: ProviderConfig) -> BitbucketProvider:
    """An authenticated provider; an access token is preferred over an app password."""
    auth: AppPasswordAuth | TokenAuth
    if cfg.access_token:
        auth = TokenAuth(access_token=SecretStr(cfg.access_token))
    elif cfg.username and cfg.app_password:
        auth = AppPasswordAuth(username=cfg.username, app_password=SecretStr(cfg.app_password))
    else:
        raise ConfigError(
            "No Bitbucket credentials: set BITBUCKET_ACCESS_TOKEN, or provider.username "
            "together with BITBUCKET_APP_PASSWORD"
        )
    return BitbucketProvider(host=cfg.host, auth=auth, timeout=cfg.timeout)


def engine_for(config: Config) -> BitbucketEngine:
    return BitbucketEngine(
        provider=provider_from_config(config.provider),
        workspace=config.provider.workspace,
        state_path=config.state_path,
        registry=default_registry(config.provider),
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    return engine_for(config).plan(config.resources, destroy=destroy, refresh=refresh)


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    return engine_for(config).apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    return apply(plan(config, destroy=destroy, refresh=refresh), config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Re-read every tracked variable without writing the state file.

    Returns the drift and the refreshed state; pass the state to
    :func:`save_state` to keep it.
    """
    before, after = engine_for(config).refresh()
    return drift_between(before, after), after


def save_state(config: Config, state: State) -> None:
    with StateLock(config.state_path):
        state.commit(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    return refresh(config)[0]


def drift_between(before: State, after: State) -> list[ResourceChange]:
    """Changes that turn *before* into *after*, ordered by address.

    Objects that changed remotely become UPDATEs; objects that disappeared
    become DELETEs.
    """
    changes: list[ResourceChange] = []
    for address in sorted(before.resources):
        old = before.resources[address]
        new = after.resources.get(address)
        if new is None:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=old.resource_type,
                    action=Action.DELETE,
                    prior=dict(old.attributes),
                )
            )
        elif new.attributes != old.attributes:
            changes.append(
                ResourceChange(
                    address=address,
                    resource_type=new.resource_type,
                    action=Action.UPDATE,
                    prior=dict(old.attributes),
                    planned=dict(new.attributes),
                    diff=attribute_diff(new.attributes, old.attributes),
                )
            )
    return changes
