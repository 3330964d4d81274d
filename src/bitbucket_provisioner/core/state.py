"""The state file: what this tool last saw of every variable it manages."""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def attributes_hash(attrs: dict[str, Any]) -> str:
    """SHA-256 of *attrs* in canonical JSON form (sorted keys, no whitespace)."""
    blob = json.dumps(attrs, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _replace_file(path: Path, text: str) -> None:
    """Write *text* to *path* via a sibling temp file and ``os.replace``.

    The previous content, if any, is copied to ``<path>.backup`` first.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists():
        shutil.copyfile(path, path.with_name(path.name + ".backup"))

    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", delete=False
    ) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
    try:
        os.replace(tmp.name, path)
    except OSError:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp.name)
        raise


class ResourceInstance(BaseModel):
    """One managed address and the attributes last read for it.

    For deployment variables ``attributes`` carries ``deployment``, ``key``,
    ``value``, ``secured`` and the server-assigned ``uuid``.
    """

    address: str
    resource_type: str
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def record(self, attrs: dict[str, Any], *, dependencies: list[str] | None = None) -> None:
        """Store freshly observed *attrs* (and optionally new dependencies)."""
        self.attributes = dict(attrs)
        self.attributes_hash = attributes_hash(self.attributes)
        if dependencies is not None:
            self.dependencies = list(dependencies)
        self.updated_at = _utcnow()


class State(BaseModel):
    version: int = STATE_VERSION
    workspace: str
    # Bumped by every commit; plans remember it to detect concurrent writers.
    serial: int = 0
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> State:
        state = cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
        logger.debug("Read state serial=%d from %s", state.serial, path)
        return state

    @classmethod
    def load_or_new(cls, path: Path, workspace: str) -> State:
        """Read *path*, or start an empty state for *workspace* if it is missing."""
        if Path(path).exists():
            return cls.load(path)
        logger.debug("No state file at %s yet", path)
        return cls(workspace=workspace)

    def commit(self, path: Path) -> None:
        """Increment ``serial`` and write the state to *path* atomically."""
        self.serial += 1
        _replace_file(Path(path), self.model_dump_json(indent=2) + "\n")
        logger.debug("Wrote state serial=%d to %s", self.serial, path)
