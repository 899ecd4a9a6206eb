"""
Host file capability used by the editable calendars.

Paths are vault-relative POSIX paths ("Events/2024-01-10.md"). The
abstract VaultIO lets the cache run against any host; LocalVault maps the
paths onto a directory on disk.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath


def normalize_path(path: str) -> str:
    """Normalize a vault path: forward slashes, no leading or trailing slash, no '.' parts."""
    parts = [p for p in PurePosixPath(path.replace("\\", "/")).parts if p not in ("", ".", "/")]
    if ".." in parts:
        raise ValueError(f"Path escapes the vault: {path}")
    return "/".join(parts)


class VaultIO(ABC):
    """
    Abstract file access for a vault of markdown notes.

    All methods may suspend; implementations must not block the event loop.
    """

    @abstractmethod
    async def read(self, path: str) -> str:
        """Return the text of a note. Raises FileNotFoundError if it does not exist."""
        pass

    @abstractmethod
    async def write(self, path: str, text: str) -> None:
        """Replace the text of an existing note."""
        pass

    @abstractmethod
    async def create(self, path: str, text: str) -> None:
        """Create a new note. Raises FileExistsError if the path is taken."""
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a note."""
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def list_files(self, directory: str) -> list[str]:
        """List every file below a directory, recursively, as vault paths."""
        pass


class LocalVault(VaultIO):
    """
    Vault stored in a directory on the local file system.

    Structure:
    - {root}/{path} - one file per vault path
    """

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    def _resolve(self, path: str) -> Path:
        return self.root / normalize_path(path)

    def _read(self, path: str) -> str:
        with open(self._resolve(path), "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, path: str, text: str, mode: str) -> None:
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, mode, encoding="utf-8") as f:
            f.write(text)

    def _list(self, directory: str) -> list[str]:
        base = self._resolve(directory)
        if not base.is_dir():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in base.rglob("*")
            if p.is_file()
        )

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self._read, path)

    async def write(self, path: str, text: str) -> None:
        await asyncio.to_thread(self._write, path, text, "w")

    async def create(self, path: str, text: str) -> None:
        # "x" fails if the file already exists
        await asyncio.to_thread(self._write, path, text, "x")

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._resolve(path).unlink)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).exists)

    async def list_files(self, directory: str) -> list[str]:
        return await asyncio.to_thread(self._list, directory)
