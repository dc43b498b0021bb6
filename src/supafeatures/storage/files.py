"""
File store abstraction.

The installer never touches the filesystem directly; it goes through a
FileStore so that every primitive (existence checks, reads, writes,
copies, listings) has one implementation and one place to log.
"""

import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from supafeatures.utils.logging import get_logger

log = get_logger(__name__)


class FileStore(ABC):
    """
    Abstract base class for file primitives used by the installer.

    Listing methods return sorted paths so that installation order is
    deterministic across platforms.
    """

    @abstractmethod
    def file_exists(self, path: Path) -> bool:
        """Return True if path is an existing regular file."""
        ...

    @abstractmethod
    def dir_exists(self, path: Path) -> bool:
        """Return True if path is an existing directory."""
        ...

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """Read a UTF-8 text file."""
        ...

    @abstractmethod
    def write_text(self, path: Path, content: str, *, create_dirs: bool = True) -> None:
        """Write a UTF-8 text file, replacing existing content."""
        ...

    @abstractmethod
    def write_text_atomic(self, path: Path, content: str) -> None:
        """Write a UTF-8 text file without exposing partial content."""
        ...

    @abstractmethod
    def copy_file(
        self,
        src: Path,
        dest: Path,
        *,
        overwrite: bool = False,
        create_dirs: bool = True,
    ) -> None:
        """
        Copy a single file.

        Raises:
            FileExistsError: If dest exists and overwrite is False.
        """
        ...

    @abstractmethod
    def list_files(self, path: Path, *, recursive: bool = True) -> list[Path]:
        """List files below a directory; empty list if it does not exist."""
        ...

    @abstractmethod
    def list_dirs(self, path: Path) -> list[Path]:
        """List direct subdirectories; empty list if it does not exist."""
        ...

    @abstractmethod
    def remove_file(self, path: Path) -> bool:
        """Remove a file. Returns False if it did not exist."""
        ...

    @abstractmethod
    def remove_empty_dirs(self, path: Path, stop_at: Path) -> None:
        """Remove path and its empty parents up to (excluding) stop_at."""
        ...

    def exists(self, path: Path) -> bool:
        """Return True if path is a file or a directory."""
        return self.file_exists(path) or self.dir_exists(path)


class LocalFileStore(FileStore):
    """FileStore backed by the local filesystem."""

    def file_exists(self, path: Path) -> bool:
        return path.is_file()

    def dir_exists(self, path: Path) -> bool:
        return path.is_dir()

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str, *, create_dirs: bool = True) -> None:
        if create_dirs:
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        log.debug("Wrote file", path=str(path), chars=len(content))

    def write_text_atomic(self, path: Path, content: str) -> None:
        """
        Write a text file so readers never observe a partial write.

        Content goes to a temporary sibling first and is moved into place
        with os.replace.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.debug("Wrote file atomically", path=str(path))

    def copy_file(
        self,
        src: Path,
        dest: Path,
        *,
        overwrite: bool = False,
        create_dirs: bool = True,
    ) -> None:
        if dest.exists() and not overwrite:
            msg = f"File already exists: {dest}"
            raise FileExistsError(msg)
        if create_dirs:
            dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        log.debug("Copied file", src=str(src), dest=str(dest))

    def list_files(self, path: Path, *, recursive: bool = True) -> list[Path]:
        if not path.is_dir():
            return []
        candidates = path.rglob("*") if recursive else path.iterdir()
        return sorted(p for p in candidates if p.is_file())

    def list_dirs(self, path: Path) -> list[Path]:
        if not path.is_dir():
            return []
        return sorted(p for p in path.iterdir() if p.is_dir())

    def remove_file(self, path: Path) -> bool:
        if not path.is_file():
            return False
        path.unlink()
        log.debug("Removed file", path=str(path))
        return True

    def remove_empty_dirs(self, path: Path, stop_at: Path) -> None:
        current = path
        stop = stop_at.resolve()
        while current.is_dir() and current.resolve() != stop:
            if any(current.iterdir()):
                return
            current.rmdir()
            log.debug("Removed empty directory", path=str(current))
            current = current.parent
