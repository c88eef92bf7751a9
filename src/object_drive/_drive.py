"""Drive — a file-system view over one object store scope."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional, Union

from object_drive._errors import (
    DriveError,
    InvalidPath,
    ListTruncated,
    NotFound,
    PartialDelete,
    PartialRename,
    RenameConflict,
)
from object_drive._models import ChangeEvent, ChangeType, Checkpoint, Entry, EntryType
from object_drive._path import PathTranslator, basename, is_root, relative_to
from object_drive._signal import Signal

if TYPE_CHECKING:
    from types import TracebackType

    from object_drive._client import ObjectStoreClient
    from object_drive._models import ObjectInfo

log = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 1000

SaveContent = Union[bytes, bytearray, str, dict[str, Any]]


class Drive:
    """Presents a bucket (or a prefix inside it) as a directory tree.

    Directories are inferred from key prefixes on every listing; a zero-byte
    marker object at ``dir_key + "/"`` keeps an empty directory visible. The
    drive caches nothing: every call goes to the client. Successful mutations
    are announced on :attr:`file_changed`.

    :param name: Drive name, the prefix of every virtual path (``"name:a/b"``).
    :param client: Transport to the object store.
    :param bucket: Bucket the drive is confined to.
    :param root_prefix: Optional key prefix inside the bucket.
    :param max_pages: Listing page cap; exceeding it raises ``ListTruncated``.
    """

    def __init__(
        self,
        name: str,
        client: ObjectStoreClient,
        *,
        bucket: str,
        root_prefix: str = "",
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self._translator = PathTranslator(name, bucket, root_prefix)
        self._client = client
        self._max_pages = max_pages
        self.file_changed: Signal[ChangeEvent] = Signal(f"{name}.file_changed")

    def __repr__(self) -> str:
        return f"Drive(name={self.name!r}, client={self._client.name!r}, root_key={self._translator.root_key!r})"

    @property
    def name(self) -> str:
        return self._translator.drive_name

    @property
    def translator(self) -> PathTranslator:
        return self._translator

    @property
    def client(self) -> ObjectStoreClient:
        return self._client

    # region: listing internals

    async def _scan(self, prefix: str, *, delimiter: Optional[str]) -> tuple[list[ObjectInfo], list[str]]:
        """Drain every page under ``prefix``; duplicates across pages are dropped."""
        objects: dict[str, ObjectInfo] = {}
        prefixes: dict[str, None] = {}
        token: Optional[str] = None
        pages = 0
        while True:
            page = await self._client.list_objects(prefix, page_token=token, delimiter=delimiter)
            pages += 1
            for info in page.objects:
                objects.setdefault(info.key, info)
            for common in page.prefixes:
                prefixes.setdefault(common, None)
            if page.next_page_token is None:
                break
            if pages >= self._max_pages:
                raise ListTruncated(
                    f"Listing exceeded {self._max_pages} pages",
                    path=prefix,
                    backend=self._client.name,
                    pages=pages,
                )
            token = page.next_page_token
        log.debug("Scanned %s: %d objects, %d prefixes, %d pages", prefix, len(objects), len(prefixes), pages)
        return list(objects.values()), list(prefixes)

    def _child_path(self, key: str) -> Optional[str]:
        try:
            return self._translator.to_virtual_path(key)
        except InvalidPath:
            log.warning("Skipping key with no virtual path: %r", key)
            return None

    def _collapse(self, prefix: str, objects: list[ObjectInfo], prefixes: list[str]) -> list[Entry]:
        """Build the immediate children of ``prefix``: directories first, then files."""
        dirs: dict[str, Entry] = {}
        files: dict[str, Entry] = {}

        def add_dir(name: str) -> None:
            if not name or name in dirs:
                return
            path = self._child_path(prefix + name)
            if path is not None:
                dirs[name] = Entry.directory(path, name)

        for common in prefixes:
            add_dir(common[len(prefix) :].split("/", 1)[0])
        for info in objects:
            rest = info.key[len(prefix) :]
            if not rest:
                continue
            name, sep, _ = rest.partition("/")
            if sep:
                add_dir(name)
                continue
            path = self._child_path(info.key)
            if path is not None:
                files[name] = Entry.file(path, name, info.size, info.last_modified)
        return [dirs[n] for n in sorted(dirs)] + [files[n] for n in sorted(files) if n not in dirs]

    async def _exists(self, key: str) -> bool:
        """Whether an object exists at ``key`` or anything exists beneath it."""
        if await self._head(key) is not None:
            return True
        return await self._has_children(key)

    async def _has_children(self, key: str) -> bool:
        page = await self._client.list_objects(key + "/")
        return bool(page.objects or page.prefixes)

    async def _head(self, key: str) -> Optional[ObjectInfo]:
        try:
            return await self._client.head_object(key)
        except NotFound:
            return None

    def _require_entry_path(self, path: str, action: str) -> str:
        virtual = self._translator.virtual(path)
        if is_root(virtual):
            raise InvalidPath(f"Cannot {action} the drive root", path=path)
        return virtual

    def _notify(self, event: ChangeEvent) -> None:
        log.debug("%s %s", event.type.value, event.new_path)
        self.file_changed.emit(event)

    # endregion

    # region: content codec

    @staticmethod
    def _encode(content: SaveContent) -> bytes:
        if isinstance(content, (bytes, bytearray)):
            return bytes(content)
        if isinstance(content, str):
            return content.encode("utf-8")
        if isinstance(content, dict):
            return json.dumps(content, indent=1).encode("utf-8")
        raise TypeError(f"Unsupported content type: {type(content).__name__}")

    @staticmethod
    def _decode(entry: Entry, data: bytes) -> Any:
        if entry.type is EntryType.NOTEBOOK:
            try:
                return json.loads(data)
            except ValueError as exc:
                raise DriveError(f"Notebook is not valid JSON: {exc}", path=entry.path) from exc
        return data

    # endregion

    # region: file-system contract

    async def list(self, path: str = "") -> list[Entry]:
        """List the immediate children of a directory.

        :raises NotFound: If nothing exists under a non-root ``path``.
        :raises ListTruncated: If the listing needs more than ``max_pages`` pages.
        """
        virtual = self._translator.virtual(path)
        prefix = self._translator.dir_prefix(virtual)
        objects, prefixes = await self._scan(prefix, delimiter="/")
        if not objects and not prefixes and not is_root(virtual):
            raise NotFound(f"Directory not found: {virtual}", path=virtual, backend=self._client.name)
        return self._collapse(prefix, objects, prefixes)

    async def get(self, path: str = "", *, content: bool = True) -> Entry:
        """Get a file or directory, with its content unless ``content`` is ``False``.

        Files carry ``bytes`` (notebooks their parsed JSON); directories carry
        a tuple of their children.

        :raises NotFound: If neither a file nor a non-empty directory exists.
        """
        virtual = self._translator.virtual(path)
        if not is_root(virtual):
            key = self._translator.to_key(virtual)
            info = await self._head(key)
            if info is not None:
                entry = Entry.file(virtual, basename(virtual), info.size, info.last_modified)
                if content:
                    entry = entry.with_content(self._decode(entry, await self._client.get_object(key)))
                return entry
        entry = Entry.directory(virtual, basename(virtual))
        if content:
            return entry.with_content(tuple(await self.list(virtual)))
        if not is_root(virtual) and not await self._exists(self._translator.to_key(virtual)):
            raise NotFound(f"Not found: {virtual}", path=virtual, backend=self._client.name)
        return entry

    async def save(self, path: str, content: SaveContent) -> Entry:
        """Write a file. Overwrites an existing file unconditionally (last writer wins).

        :raises RenameConflict: If a directory exists at ``path``.
        """
        virtual = self._require_entry_path(path, "save")
        key = self._translator.to_key(virtual)
        data = self._encode(content)
        if await self._has_children(key):
            raise RenameConflict(f"A directory exists at {virtual}", path=virtual, backend=self._client.name)
        existed = await self._head(key) is not None
        await self._client.put_object(key, data)
        entry = Entry.file(virtual, basename(virtual), len(data), datetime.now(tz=timezone.utc))
        self._notify(
            ChangeEvent(
                type=ChangeType.MODIFIED if existed else ChangeType.CREATED,
                new_path=virtual,
                entry=entry,
            )
        )
        return entry

    async def create_directory(self, path: str) -> Entry:
        """Write the zero-byte marker object for a directory. Idempotent for directories.

        :raises RenameConflict: If a file exists at ``path``.
        """
        virtual = self._require_entry_path(path, "create")
        if await self._head(self._translator.to_key(virtual)) is not None:
            raise RenameConflict(f"A file exists at {virtual}", path=virtual, backend=self._client.name)
        await self._client.put_object(self._translator.dir_prefix(virtual), b"")
        entry = Entry.directory(virtual, basename(virtual))
        self._notify(ChangeEvent(type=ChangeType.CREATED, new_path=virtual, entry=entry))
        return entry

    async def delete(self, path: str) -> None:
        """Delete a file, or a directory and every object beneath it.

        Directory deletes are not atomic. Every object is attempted; the ones
        that failed are reported together.

        :raises NotFound: If nothing exists at ``path``.
        :raises PartialDelete: If some objects could not be deleted.
        """
        virtual = self._require_entry_path(path, "delete")
        key = self._translator.to_key(virtual)
        if await self._head(key) is not None:
            await self._client.delete_object(key)
            self._notify(ChangeEvent(type=ChangeType.DELETED, new_path=virtual))
            return

        objects, _ = await self._scan(key + "/", delimiter=None)
        if not objects:
            raise NotFound(f"Not found: {virtual}", path=virtual, backend=self._client.name)
        failed: list[str] = []
        for info in objects:
            try:
                await self._client.delete_object(info.key)
            except DriveError as exc:
                log.warning("Failed to delete %s: %s", info.key, exc)
                failed.append(info.key)
        if len(failed) < len(objects):
            self._notify(ChangeEvent(type=ChangeType.DELETED, new_path=virtual))
        if failed:
            raise PartialDelete(
                f"{len(failed)} of {len(objects)} objects could not be deleted",
                path=virtual,
                backend=self._client.name,
                failed_keys=tuple(failed),
            )

    async def rename(self, old_path: str, new_path: str) -> Entry:
        """Move a file or directory by copying each object and deleting the source.

        :raises RenameConflict: If anything exists at ``new_path``; checked
            before the first copy.
        :raises NotFound: If nothing exists at ``old_path``.
        :raises PartialRename: If a directory move stopped part way. Nothing
            is rolled back.
        """
        old_virtual = self._require_entry_path(old_path, "rename")
        new_virtual = self._require_entry_path(new_path, "rename onto")
        if relative_to(new_virtual, old_virtual) is not None:
            raise InvalidPath(f"Cannot move {old_virtual} into itself", path=new_virtual)
        old_key = self._translator.to_key(old_virtual)
        new_key = self._translator.to_key(new_virtual)

        if await self._exists(new_key):
            raise RenameConflict(f"Destination already exists: {new_virtual}", path=new_virtual)

        info = await self._head(old_key)
        if info is not None:
            await self._client.copy_object(old_key, new_key)
            await self._client.delete_object(old_key)
            entry = Entry.file(new_virtual, basename(new_virtual), info.size, info.last_modified)
            self._notify(ChangeEvent(type=ChangeType.RENAMED, old_path=old_virtual, new_path=new_virtual, entry=entry))
            return entry

        objects, _ = await self._scan(old_key + "/", delimiter=None)
        if not objects:
            raise NotFound(f"Not found: {old_virtual}", path=old_virtual, backend=self._client.name)
        completed: list[str] = []
        failed: list[str] = []
        for obj in objects:
            target = new_key + obj.key[len(old_key) :]
            try:
                await self._client.copy_object(obj.key, target)
                await self._client.delete_object(obj.key)
            except DriveError as exc:
                log.warning("Failed to move %s to %s: %s", obj.key, target, exc)
                failed.append(obj.key)
            else:
                completed.append(obj.key)
        entry = Entry.directory(new_virtual, basename(new_virtual))
        if completed:
            self._notify(ChangeEvent(type=ChangeType.RENAMED, old_path=old_virtual, new_path=new_virtual, entry=entry))
        if failed:
            raise PartialRename(
                f"{len(failed)} of {len(objects)} objects were not moved",
                path=old_virtual,
                backend=self._client.name,
                completed=tuple(completed),
                failed=tuple(failed),
            )
        return entry

    async def get_download_url(self, path: str, *, expires: int = 3600) -> str:
        """Return a URL for downloading the file at ``path``.

        :raises NotFound: If no object exists at ``path``.
        """
        virtual = self._translator.virtual(path)
        key = self._translator.to_key(virtual)
        if is_root(virtual) or await self._head(key) is None:
            raise NotFound(f"File not found: {virtual}", path=virtual, backend=self._client.name)
        return await self._client.get_url(key, expires=expires)

    # endregion

    # region: checkpoints

    async def create_checkpoint(self, path: str) -> Checkpoint:
        entry = await self.get(path, content=False)
        return Checkpoint(id="checkpoint", last_modified=entry.last_modified or datetime.now(tz=timezone.utc))

    async def list_checkpoints(self, path: str) -> list[Checkpoint]:
        self._translator.virtual(path)
        return []

    async def restore_checkpoint(self, path: str, checkpoint_id: str) -> None:
        self._translator.virtual(path)

    async def delete_checkpoint(self, path: str, checkpoint_id: str) -> None:
        self._translator.virtual(path)

    # endregion

    # region: lifecycle

    async def close(self) -> None:
        """Close the underlying client."""
        await self._client.close()

    async def __aenter__(self) -> Drive:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # endregion
