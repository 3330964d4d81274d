"""Report failures on stderr without a traceback."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

import requests
import typer

from bitbucket_provisioner.config.loader import ConfigError
from bitbucket_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    StalePlanError,
    StateLockError,
    StateWorkspaceMismatchError,
    UnexpectedStatusError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

# First match wins, so subclasses go before their bases.
_HEADLINES: list[tuple[type[BaseException], str]] = [
    (ConfigError, "Configuration error"),
    (StalePlanError, "Plan is stale"),
    (StateWorkspaceMismatchError, "State mismatch"),
    (StateLockError, "State is locked"),
    (ApplyCanceled, "Apply canceled"),
    (UnexpectedStatusError, "Bitbucket API error"),
    (requests.RequestException, "Connection error"),
]


def _partial(exc: ApplyError) -> str | None:
    counts = exc.result.summary()
    done = [
        f"{counts[action]} {verb}"
        for action, verb in (("create", "added"), ("update", "changed"), ("delete", "destroyed"))
        if counts[action]
    ]
    return f"Partial result: {', '.join(done)}." if done else None


def error_lines(exc: Exception) -> list[str]:
    """The message printed for *exc*, one entry per line."""
    if isinstance(exc, ValidationError):
        return ["Validation failed:", *(f"  - {problem}" for problem in exc.errors)]
    if isinstance(exc, ApplyError):
        partial = _partial(exc)
        return [f"Apply failed: {exc}", *([f"  {partial}"] if partial else [])]
    for kind, headline in _HEADLINES:
        if isinstance(exc, kind):
            return [f"{headline}: {exc}"]
    return [f"Error: {exc}"]


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print *exc* to stderr and return the exit code (always 1)."""
    logger.debug("Command failed", exc_info=exc)
    for line in error_lines(exc):
        typer.secho(line, fg=typer.colors.RED if color else None, err=True)
    return 1


@contextmanager
def reported(*, color: bool) -> Iterator[None]:
    """Turn any exception raised in the block into a printed error and exit 1."""
    try:
        yield
    except typer.Exit:
        raise
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc
