"""Persistent storage for the single GitHub access token."""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class TokenStore(ABC):
    @abstractmethod
    def save(self, token: str) -> None: ...

    @abstractmethod
    def load(self) -> str | None: ...

    @abstractmethod
    def clear(self) -> None: ...


class FileTokenStore(TokenStore):
    """Token kept in a single owner-only file.

    Writes go through a temp file in the same directory and os.replace, and a
    process-local lock serialises save/load/clear. Cross-process races are not handled.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".git-polish-token.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(token)
                self._restrict(Path(tmp_name))
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.debug("Saved token to %s", self.path)

    def load(self) -> str | None:
        with self._lock:
            try:
                token = self.path.read_text(encoding="utf-8").strip()
            except FileNotFoundError:
                return None
        return token or None

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)
        logger.debug("Removed %s", self.path)

    @staticmethod
    def _restrict(path: Path) -> None:
        # mkstemp already creates 0600 files on POSIX; Windows ignores most of chmod
        try:
            path.chmod(0o600)
        except OSError as exc:
            logger.warning("Could not restrict permissions on %s: %s", path, exc)
