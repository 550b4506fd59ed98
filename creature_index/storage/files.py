"""File storage backends for the index snapshot.

Paths are relative, ``/``-separated and scoped to one deployment (for
Foundry, ``worlds/<world-id>/...``).
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from ..config import DATA_DIR

logger = logging.getLogger(__name__)


class FileStorage(ABC):
    """Whole-file storage addressed by deployment-scoped paths."""

    @abstractmethod
    def read_text(self, path: str) -> str | None:
        """Read a file. Returns None if it does not exist."""
        ...

    @abstractmethod
    def write_text(self, path: str, content: str) -> None:
        """Write a file, replacing any previous content."""
        ...

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete a file. Returns False if it did not exist."""
        ...

    @abstractmethod
    def list_dir(self, directory: str) -> list[str] | None:
        """List file names in a directory, or None if it does not exist."""
        ...

    def exists(self, path: str) -> bool:
        """Check whether a file exists by browsing its directory."""
        directory, _, name = path.rpartition("/")
        files = self.list_dir(directory)
        if files is None:
            return False
        return any(f == name or f.endswith("/" + name) for f in files)


class LocalFileStorage(FileStorage):
    """Storage rooted in a local directory."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or DATA_DIR
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        return self.base_dir / path

    def read_text(self, path: str) -> str | None:
        file_path = self._resolve(path)
        if not file_path.exists():
            return None
        with open(file_path, encoding="utf-8") as f:
            return f.read()

    def write_text(self, path: str, content: str) -> None:
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        # Write beside the target and swap so readers never see a partial file
        tmp_path = file_path.with_name(file_path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        tmp_path.replace(file_path)

    def delete(self, path: str) -> bool:
        file_path = self._resolve(path)
        if not file_path.exists():
            return False
        file_path.unlink()
        return True

    def list_dir(self, directory: str) -> list[str] | None:
        dir_path = self._resolve(directory) if directory else self.base_dir
        if not dir_path.is_dir():
            return None
        return sorted(p.name for p in dir_path.iterdir() if p.is_file())

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()
