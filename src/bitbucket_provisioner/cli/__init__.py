"""``bitbucket-provisioner`` command line."""

from __future__ import annotations

import logging
import os

import typer
from rich.console import Console
from rich.logging import RichHandler

from bitbucket_provisioner import __version__

app = typer.Typer(
    name="bitbucket-provisioner",
    help="Terraform-style provisioning of Bitbucket deployment variables.",
    no_args_is_help=True,
    add_completion=False,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def log_level(verbose: int, env_value: str | None) -> int | None:
    """Package log level from ``BITBUCKET_LOG`` or the ``-v`` count.

    ``BITBUCKET_LOG`` wins; an unknown name falls back to INFO. Returns None
    when neither asks for logging.
    """
    if env_value:
        name = env_value.upper()
        if name in LOG_LEVELS:
            return logging.getLevelNamesMapping()[name]
        typer.echo(
            f"WARNING: invalid BITBUCKET_LOG level '{env_value}', expected one of "
            f"{', '.join(LOG_LEVELS)}; defaulting to INFO",
            err=True,
        )
        return logging.INFO
    if verbose <= 0:
        return None
    return logging.INFO if verbose == 1 else logging.DEBUG


def _configure_logging(verbose: int) -> None:
    level = log_level(verbose, os.environ.get("BITBUCKET_LOG"))
    if level is None:
        return
    logging.basicConfig(
        level=logging.WARNING,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("bitbucket_provisioner").setLevel(level)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"bitbucket-provisioner {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=_print_version,
        is_eager=True,
        help="Print the version and exit.",
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Log more (-v info, -vv debug)."
    ),
) -> None:
    _ = version
    _configure_logging(verbose)


from bitbucket_provisioner.cli import commands as _commands  # noqa: E402, F401
