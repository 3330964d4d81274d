"""Local state locking."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import IO, TYPE_CHECKING

from bitbucket_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

if sys.platform == "win32":  # pragma: no cover
    import msvcrt

    def _lock(fd: int) -> None:
        msvcrt.locking(fd, msvcrt.LK_LOCK, 1)

    def _unlock(fd: int) -> None:
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _lock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_EX)

    def _unlock(fd: int) -> None:
        fcntl.flock(fd, fcntl.LOCK_UN)


class StateLock:
    """Exclusive lock on ``<state>.lock`` held for the duration of a block."""

    def __init__(self, state_path: Path) -> None:
        self._lock_path = Path(str(state_path) + ".lock")
        self._file: IO[str] | None = None

    def __enter__(self) -> StateLock:
        self._lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self._lock_path.open("a+", encoding="utf-8")
        try:
            _lock(self._file.fileno())
        except OSError as e:
            self._file.close()
            self._file = None
            raise StateLockError(f"Cannot lock {self._lock_path}: {e}") from e
        logger.debug("Acquired state lock %s", self._lock_path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._file is None:
            return
        try:
            _unlock(self._file.fileno())
        finally:
            self._file.close()
            self._file = None
        logger.debug("Released state lock %s", self._lock_path)
