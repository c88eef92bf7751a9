"""BrowserModel — directory state, selection and refresh loop for one browser."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from typing import TYPE_CHECKING, Iterable, Optional

from object_drive._errors import DriveError, InvalidPath, NotFound
from object_drive._path import DRIVE_SEPARATOR, normalize, parent_of, relative_to, split_drive
from object_drive._signal import Signal

if TYPE_CHECKING:
    from types import TracebackType

    from object_drive._config import BrowserOptions
    from object_drive._contents import ContentsManager
    from object_drive._drive import SaveContent
    from object_drive._models import ChangeEvent, Entry
    from object_drive._state import StateStore

log = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 300.0
DEFAULT_NAMESPACE = "object-drive-browser"


class BrowserStatus(enum.Enum):
    IDLE = "idle"
    LISTING = "listing"
    ERROR = "error"


class BrowserModel:
    """Current directory, cached listing and selection of one browser view.

    Every listing is tagged with a generation number. Only the result of the
    most recent ``cd``/``refresh`` is applied; older results are dropped when
    they arrive, successful or not. A failed listing keeps the previous items
    and is reported on :attr:`failed`.

    Signals:

    * ``path_changed`` emits ``(old_path, new_path)``.
    * ``refreshed`` emits the new items.
    * ``failed`` emits the :class:`~object_drive.DriveError`.

    :param manager: Contents manager with the browsed drive mounted.
    :param drive_name: Name of the drive to browse.
    :param refresh_interval: Seconds between background refreshes; ``None`` disables polling.
    :param state: Optional store used to remember the current path.
    :param namespace: Key namespace in ``state``.
    """

    def __init__(
        self,
        manager: ContentsManager,
        drive_name: str,
        *,
        refresh_interval: Optional[float] = DEFAULT_REFRESH_INTERVAL,
        state: Optional[StateStore] = None,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        manager.drive(drive_name)
        if refresh_interval is not None and refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive or None")
        self._manager = manager
        self._drive_name = drive_name
        self._root = f"{drive_name}{DRIVE_SEPARATOR}"
        self._refresh_interval = refresh_interval
        self._state = state
        self._state_key = f"{namespace}:path"

        self._path = self._root
        self._items: tuple[Entry, ...] = ()
        self._selection: set[str] = set()
        self._status = BrowserStatus.IDLE
        self._generation = 0
        self._pending: Optional[asyncio.Future[None]] = None
        self._pending_generation = 0
        self._poll_task: Optional[asyncio.Task[None]] = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._disposed = False

        self.path_changed: Signal[tuple[str, str]] = Signal("browser.path_changed")
        self.refreshed: Signal[tuple[Entry, ...]] = Signal("browser.refreshed")
        self.failed: Signal[DriveError] = Signal("browser.failed")
        self._disconnect = manager.file_changed.connect(self._on_file_changed)

    def __repr__(self) -> str:
        return f"BrowserModel(path={self._path!r}, items={len(self._items)}, status={self._status.value!r})"

    # region: state

    @property
    def manager(self) -> ContentsManager:
        return self._manager

    @property
    def path(self) -> str:
        """Virtual path of the current directory."""
        return self._path

    @property
    def segments(self) -> tuple[str, ...]:
        rel = split_drive(self._path)[1]
        return tuple(rel.split("/")) if rel else ()

    @property
    def items(self) -> tuple[Entry, ...]:
        return self._items

    @property
    def status(self) -> BrowserStatus:
        return self._status

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _resolve(self, path: str) -> str:
        """Resolve an absolute, drive-relative or ``..`` path against the current directory."""
        drive, rel = split_drive(path)
        if drive:
            if drive != self._drive_name:
                raise InvalidPath(f"Browser is bound to drive {self._drive_name!r}", path=path)
            parts: list[str] = []
        else:
            parts = list(self.segments)
        for segment in rel.replace("\\", "/").split("/"):
            if segment == "" or segment == ".":
                continue
            if segment == "..":
                if parts:
                    parts.pop()
                continue
            parts.append(segment)
        return normalize(self._root + "/".join(parts))

    # endregion

    # region: listing

    def _start(self, path: str) -> asyncio.Future[None]:
        if self._disposed:
            raise RuntimeError("BrowserModel is disposed")
        self._generation += 1
        task = asyncio.ensure_future(self._load(self._generation, path))
        task.add_done_callback(_retrieve)
        self._pending = task
        self._pending_generation = self._generation
        return task

    async def _load(self, generation: int, path: str) -> None:
        self._status = BrowserStatus.LISTING
        try:
            entries = await self._manager.list(path)
        except DriveError as exc:
            if generation != self._generation:
                log.debug("Dropping failed listing of %s from generation %d", path, generation)
                return
            self._status = BrowserStatus.ERROR
            log.warning("Listing %s failed: %s", path, exc)
            self.failed.emit(exc)
            raise
        except Exception:
            if generation == self._generation:
                self._status = BrowserStatus.ERROR
            log.exception("Listing %s failed unexpectedly", path)
            raise
        if generation != self._generation:
            log.debug("Dropping stale listing of %s from generation %d", path, generation)
            return

        unique: dict[str, Entry] = {}
        for entry in entries:
            unique.setdefault(entry.path, entry)
        old_path = self._path
        self._path = path
        self._items = tuple(unique.values())
        self._selection &= set(unique)
        self._status = BrowserStatus.IDLE
        if path != old_path:
            if self._state is not None:
                self._state.set(self._state_key, path)
            self.path_changed.emit((old_path, path))
        self.refreshed.emit(self._items)

    async def cd(self, path: str = "") -> None:
        """Change directory and load its listing.

        ``path`` may be absolute (``"drive:a/b"``), relative to the current
        directory, or ``".."``. A newer ``cd`` supersedes this one.
        """
        await asyncio.shield(self._start(self._resolve(path)))

    async def refresh(self) -> None:
        """Reload the current directory, joining a listing already in flight."""
        await self._refresh(since=None)

    async def _refresh(self, *, since: Optional[int]) -> None:
        # A listing started at or before generation ``since`` may predate a
        # mutation and is not joined.
        pending = self._pending
        if pending is not None and not pending.done() and (since is None or self._pending_generation > since):
            log.debug("Joining in-flight listing")
            await asyncio.shield(pending)
            return
        await asyncio.shield(self._start(self._path))

    async def _refresh_quietly(self, *, since: Optional[int] = None) -> None:
        if self._disposed:
            return
        try:
            await self._refresh(since=since)
        except DriveError as exc:
            log.debug("Background refresh of %s failed: %s", self._path, exc)
        except Exception:
            log.exception("Background refresh of %s failed", self._path)

    def _on_file_changed(self, event: ChangeEvent) -> None:
        if self._disposed:
            return
        touched = [event.new_path] if event.old_path is None else [event.new_path, event.old_path]
        if any(parent_of(p) == self._path or relative_to(self._path, p) is not None for p in touched):
            task = asyncio.ensure_future(self._refresh_quietly(since=self._generation))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._refresh_quietly()

    # endregion

    # region: mutations

    async def delete(self, paths: Optional[Iterable[str]] = None) -> None:
        """Delete ``paths`` (default: the selection), then refresh.

        Every path is attempted; the first error is raised after the refresh.
        """
        targets = tuple(paths) if paths is not None else self.selected
        errors: list[DriveError] = []
        mark = self._generation
        try:
            for path in targets:
                try:
                    await self._manager.delete(self._resolve(path))
                except DriveError as exc:
                    errors.append(exc)
                    self.failed.emit(exc)
        finally:
            await self._refresh_quietly(since=mark)
        if errors:
            raise errors[0]

    async def rename(self, path: str, new_path: str) -> Entry:
        """Rename an item, then refresh. ``new_path`` may be a bare name."""
        mark = self._generation
        try:
            return await self._manager.rename(self._resolve(path), self._resolve(new_path))
        except DriveError as exc:
            self.failed.emit(exc)
            raise
        finally:
            await self._refresh_quietly(since=mark)

    async def create_directory(self, name: str) -> Entry:
        mark = self._generation
        try:
            return await self._manager.create_directory(self._resolve(name))
        except DriveError as exc:
            self.failed.emit(exc)
            raise
        finally:
            await self._refresh_quietly(since=mark)

    async def save(self, name: str, content: SaveContent) -> Entry:
        mark = self._generation
        try:
            return await self._manager.save(self._resolve(name), content)
        except DriveError as exc:
            self.failed.emit(exc)
            raise
        finally:
            await self._refresh_quietly(since=mark)

    async def get_download_url(self, path: str, *, expires: int = 3600) -> str:
        return await self._manager.get_download_url(self._resolve(path), expires=expires)

    # endregion

    # region: selection

    @property
    def selected(self) -> tuple[str, ...]:
        """Selected paths in listing order."""
        return tuple(e.path for e in self._items if e.path in self._selection)

    def select(self, *paths: str) -> None:
        """Add paths to the selection.

        :raises KeyError: If a path is not among the current items.
        """
        known = {e.path for e in self._items}
        for path in paths:
            if path not in known:
                raise KeyError(f"Not in current listing: {path}")
        self._selection.update(paths)

    def deselect(self, *paths: str) -> None:
        self._selection.difference_update(paths)

    def select_all(self) -> None:
        self._selection = {e.path for e in self._items}

    def clear_selection(self) -> None:
        self._selection.clear()

    # endregion

    # region: lifecycle

    async def start(self) -> None:
        """Restore the remembered path (or the drive root) and start polling."""
        if self._refresh_interval is not None and self._poll_task is None:
            self._poll_task = asyncio.ensure_future(self._poll(self._refresh_interval))
        target = self._root
        remembered = self._state.get(self._state_key) if self._state is not None else None
        if remembered:
            try:
                target = self._resolve(remembered)
            except InvalidPath:
                log.info("Ignoring unusable remembered path %r", remembered)
        try:
            await self.cd(target)
        except (NotFound, InvalidPath):
            if target == self._root:
                raise
            log.info("Remembered path %s is gone; opening %s", target, self._root)
            await self.cd(self._root)

    async def dispose(self) -> None:
        """Stop polling and ignore every listing still in flight."""
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        self._disconnect()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

    async def __aenter__(self) -> BrowserModel:
        try:
            await self.start()
        except BaseException:
            await self.dispose()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.dispose()

    # endregion


def _retrieve(task: asyncio.Future[None]) -> None:
    # Errors were already delivered on ``failed``; mark them retrieved for
    # listings whose awaiters went away.
    if not task.cancelled():
        task.exception()


def create_browser(
    manager: ContentsManager,
    options: BrowserOptions,
    *,
    state: Optional[StateStore] = None,
) -> BrowserModel:
    """Build a :class:`BrowserModel` from options. Call ``start()`` or use ``async with``."""
    return BrowserModel(
        manager,
        options.drive,
        refresh_interval=options.refresh_interval,
        state=state,
        namespace=options.namespace,
    )
