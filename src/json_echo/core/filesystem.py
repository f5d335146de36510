"""
JSON Echo Filesystem

Locates the project root and reads/writes files relative to it.

Blocking file I/O runs in a worker thread so callers on an event loop
never stall other tasks. Writes go to a temporary sibling file which is
renamed over the target, so a cancelled or failed save never leaves a
half-written file behind.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

from .errors import from_os_error


# Files whose presence marks a directory as a json-echo project root
ROOT_MARKERS: Tuple[str, ...] = ("db.json", ".db.json", "json-echo.json")


def find_root(start: Optional[Union[str, Path]] = None) -> Path:
    """
    Find the nearest directory containing a root marker.

    Args:
        start: Directory to start from (defaults to the working directory)

    Returns:
        The first directory, walking upwards from `start`, that contains one
        of ROOT_MARKERS; `start` itself when no marker is found.
    """
    origin = Path(start) if start is not None else Path.cwd()
    origin = normalize_path(origin)

    for directory in (origin, *origin.parents):
        for marker in ROOT_MARKERS:
            try:
                if (directory / marker).exists():
                    return directory
            except OSError:
                # Unreadable ancestors are skipped, not fatal
                continue

    return origin


def normalize_path(path: Path) -> Path:
    """Resolve `path` when possible, otherwise return it unchanged."""
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return path


class FileSystemManager:
    """
    Byte-level file access relative to a project root.

    Example:
        fs = FileSystemManager()            # root discovered from cwd
        raw = await fs.load_file('json-echo.json')
        await fs.save_file('backup/json-echo.json', raw)
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        """
        Initialize the manager.

        Args:
            root: Project root. When None, it is discovered with find_root().
        """
        self.root = normalize_path(Path(root)) if root is not None else find_root()

    def resolve(self, relative_path: Union[str, Path]) -> Path:
        """Join `relative_path` onto the root. Absolute paths pass through."""
        path = Path(relative_path)
        if path.is_absolute():
            return path
        return self.root / path

    async def load_file(self, relative_path: Union[str, Path]) -> bytes:
        """
        Read the full contents of a file.

        Raises:
            PathNotFoundError, PathIsDirectoryError, PathPermissionError,
            FileIOError
        """
        path = self.resolve(relative_path)
        return await asyncio.to_thread(self._read, path)

    async def save_file(self, relative_path: Union[str, Path], content: bytes) -> None:
        """
        Atomically replace the contents of a file, creating parent
        directories as needed.

        Raises:
            PathIsDirectoryError, PathPermissionError, FileIOError
        """
        path = self.resolve(relative_path)
        await asyncio.to_thread(self._write, path, bytes(content))

    @staticmethod
    def _read(path: Path) -> bytes:
        try:
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise from_os_error(path, e) from e

    @staticmethod
    def _write(path: Path, content: bytes) -> None:
        if path.is_dir():
            raise from_os_error(path, IsADirectoryError(str(path)))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise from_os_error(path.parent, e) from e

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
        except OSError as e:
            raise from_os_error(path, e) from e

        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise from_os_error(path, e) from e
            raise

    def __repr__(self) -> str:
        return f"FileSystemManager(root={str(self.root)!r})"


__all__ = [
    'ROOT_MARKERS',
    'FileSystemManager',
    'find_root',
    'normalize_path',
]
