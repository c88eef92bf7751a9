"""ContentsManager — routes drive-prefixed paths to mounted drives."""

from __future__ import annotations

from typing import TYPE_CHECKING

from object_drive._errors import InvalidPath
from object_drive._path import split_drive
from object_drive._signal import Signal

if TYPE_CHECKING:
    from object_drive._drive import Drive, SaveContent
    from object_drive._models import ChangeEvent, Checkpoint, Entry


class ContentsManager:
    """Composes several drives behind one file-system interface.

    Every path must carry a drive prefix (``"name:a/b"``). Change
    notifications of all mounted drives are relayed on :attr:`file_changed`.
    """

    def __init__(self) -> None:
        self._drives: dict[str, Drive] = {}
        self.file_changed: Signal[ChangeEvent] = Signal("contents.file_changed")

    def __repr__(self) -> str:
        return f"ContentsManager(drives={sorted(self._drives)!r})"

    def add_drive(self, drive: Drive) -> None:
        """Mount ``drive`` under its name.

        :raises ValueError: If a drive with the same name is already mounted.
        """
        if drive.name in self._drives:
            raise ValueError(f"Drive {drive.name!r} is already mounted")
        self._drives[drive.name] = drive
        drive.file_changed.connect(self.file_changed.emit)

    def remove_drive(self, name: str) -> Drive:
        """Unmount and return the drive called ``name``."""
        drive = self._drives.pop(name)
        drive.file_changed.disconnect(self.file_changed.emit)
        return drive

    @property
    def drives(self) -> tuple[str, ...]:
        return tuple(sorted(self._drives))

    def drive(self, name: str) -> Drive:
        """Return the mounted drive called ``name``.

        :raises KeyError: If no such drive is mounted.
        """
        if name not in self._drives:
            raise KeyError(f"Unknown drive '{name}'. Mounted drives: {sorted(self._drives)}")
        return self._drives[name]

    def _route(self, path: str) -> Drive:
        name, _ = split_drive(path)
        if not name:
            raise InvalidPath("Path has no drive prefix", path=path)
        if name not in self._drives:
            raise InvalidPath(f"No drive mounted as {name!r}", path=path)
        return self._drives[name]

    async def list(self, path: str) -> list[Entry]:
        return await self._route(path).list(path)

    async def get(self, path: str, *, content: bool = True) -> Entry:
        return await self._route(path).get(path, content=content)

    async def save(self, path: str, content: SaveContent) -> Entry:
        return await self._route(path).save(path, content)

    async def create_directory(self, path: str) -> Entry:
        return await self._route(path).create_directory(path)

    async def delete(self, path: str) -> None:
        await self._route(path).delete(path)

    async def rename(self, old_path: str, new_path: str) -> Entry:
        """Rename within one drive.

        :raises InvalidPath: If the paths belong to different drives.
        """
        drive = self._route(old_path)
        if self._route(new_path) is not drive:
            raise InvalidPath("Cannot rename across drives", path=new_path)
        return await drive.rename(old_path, new_path)

    async def get_download_url(self, path: str, *, expires: int = 3600) -> str:
        return await self._route(path).get_download_url(path, expires=expires)

    async def create_checkpoint(self, path: str) -> Checkpoint:
        return await self._route(path).create_checkpoint(path)

    async def list_checkpoints(self, path: str) -> list[Checkpoint]:
        return await self._route(path).list_checkpoints(path)

    async def restore_checkpoint(self, path: str, checkpoint_id: str) -> None:
        await self._route(path).restore_checkpoint(path, checkpoint_id)

    async def delete_checkpoint(self, path: str, checkpoint_id: str) -> None:
        await self._route(path).delete_checkpoint(path, checkpoint_id)
