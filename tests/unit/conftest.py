"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from bitbucket_provisioner.config import load

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from bitbucket_provisioner.config.schema import Config

_BITBUCKET_ENV_VARS = (
    "BITBUCKET_WORKSPACE",
    "BITBUCKET_HOST",
    "BITBUCKET_USERNAME",
    "BITBUCKET_APP_PASSWORD",
    "BITBUCKET_ACCESS_TOKEN",
    "BITBUCKET_TIMEOUT",
    "BITBUCKET_CREATE_TIMEOUT",
    "BITBUCKET_POLL_INTERVAL",
    "BITBUCKET_STRICT_STATUS",
    "BITBUCKET_LOG",
)


@pytest.fixture(autouse=True)
def _clean_bitbucket_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove BITBUCKET_* env vars so unit tests don't leak host config."""
    for var in _BITBUCKET_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


def http_response(status_code: int, body: Any = None) -> MagicMock:
    """Fake ``requests.Response`` carrying a JSON body."""
    response = MagicMock()
    response.status_code = status_code
    raw = json.dumps(body if body is not None else {})
    response.content = raw.encode("utf-8")
    response.text = raw
    return response
