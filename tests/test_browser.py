"""Tests for BrowserModel — generations, coalescing, polling and selection."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import pytest

from object_drive._browser import BrowserModel, BrowserStatus, create_browser
from object_drive._config import BrowserOptions
from object_drive._contents import ContentsManager
from object_drive._drive import Drive
from object_drive._errors import DriveError, InvalidPath, NotFound, TransportError
from object_drive._models import Entry, ListPage
from object_drive._state import MemoryStateStore
from object_drive.clients._memory import MemoryClient


class GatedClient(MemoryClient):
    """Memory client whose listings can be held back, failed or crashed per prefix."""

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.gates: dict[str, asyncio.Event] = {}
        self.failing: set[str] = set()
        self.crashing: set[str] = set()
        self.calls: list[str] = []

    def hold(self, prefix: str) -> asyncio.Event:
        gate = self.gates[prefix] = asyncio.Event()
        return gate

    async def list_objects(
        self,
        prefix: str,
        *,
        page_token: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> ListPage:
        self.calls.append(prefix)
        gate = self.gates.get(prefix)
        if gate is not None:
            await gate.wait()
        if prefix in self.failing:
            raise TransportError("injected listing failure", path=prefix, backend=self.name)
        if prefix in self.crashing:
            raise RuntimeError("injected listing crash")
        return await super().list_objects(prefix, page_token=page_token, delimiter=delimiter)


class SnapshotClient(GatedClient):
    """Gated client that reads the listing first and then waits once on the gate."""

    async def list_objects(
        self,
        prefix: str,
        *,
        page_token: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> ListPage:
        page = await MemoryClient.list_objects(self, prefix, page_token=page_token, delimiter=delimiter)
        self.calls.append(prefix)
        gate = self.gates.pop(prefix, None)
        if gate is not None:
            await gate.wait()
        return page


async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def wait() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(wait(), timeout)


def _names(items: tuple[Entry, ...]) -> list[str]:
    return [e.name for e in items]


@pytest.fixture
def gated() -> GatedClient:
    return GatedClient(
        objects={
            "bucket/slow/s.txt": b"s",
            "bucket/fast/f.txt": b"f",
            "bucket/docs/a.txt": b"a",
            "bucket/docs/b.txt": b"b",
            "bucket/docs/sub/c.txt": b"c",
            "bucket/top.txt": b"t",
        }
    )


@pytest.fixture
def contents(gated: GatedClient) -> ContentsManager:
    manager = ContentsManager()
    manager.add_drive(Drive("cloud", gated, bucket="bucket"))
    return manager


@pytest.fixture
def browser(contents: ContentsManager) -> BrowserModel:
    return BrowserModel(contents, "cloud", refresh_interval=None)


# region: navigation


class TestNavigation:
    """cd with absolute, relative and parent paths."""

    @pytest.mark.asyncio
    async def test_cd_replaces_path_and_items(self, browser: BrowserModel) -> None:
        changes: list[tuple[str, str]] = []
        browser.path_changed.connect(changes.append)
        await browser.cd("cloud:docs")
        assert browser.path == "cloud:docs"
        assert _names(browser.items) == ["sub", "a.txt", "b.txt"]
        assert browser.status is BrowserStatus.IDLE
        assert changes == [("cloud:", "cloud:docs")]

    @pytest.mark.asyncio
    async def test_relative_and_parent(self, browser: BrowserModel) -> None:
        await browser.cd("docs")
        await browser.cd("sub")
        assert browser.path == "cloud:docs/sub"
        assert browser.segments == ("docs", "sub")
        await browser.cd("..")
        assert browser.path == "cloud:docs"
        await browser.cd("../..")
        assert browser.path == "cloud:"

    @pytest.mark.asyncio
    async def test_refreshed_emitted_without_path_change(self, browser: BrowserModel) -> None:
        changes: list[tuple[str, str]] = []
        refreshed: list[tuple[Entry, ...]] = []
        browser.path_changed.connect(changes.append)
        browser.refreshed.connect(refreshed.append)
        await browser.refresh()
        assert changes == []
        assert len(refreshed) == 1
        assert _names(refreshed[0]) == ["docs", "fast", "slow", "top.txt"]

    @pytest.mark.asyncio
    async def test_other_drive_rejected(self, browser: BrowserModel) -> None:
        with pytest.raises(InvalidPath):
            await browser.cd("elsewhere:a")

    def test_unknown_drive(self, contents: ContentsManager) -> None:
        with pytest.raises(KeyError):
            BrowserModel(contents, "nope")

    def test_invalid_interval(self, contents: ContentsManager) -> None:
        with pytest.raises(ValueError, match="refresh_interval"):
            BrowserModel(contents, "cloud", refresh_interval=0)


# endregion

# region: generations


class TestGenerations:
    """Only the latest listing is applied."""

    @pytest.mark.asyncio
    async def test_slow_listing_superseded_by_newer_cd(self, browser: BrowserModel, gated: GatedClient) -> None:
        gate = gated.hold("bucket/slow/")
        changes: list[tuple[str, str]] = []
        browser.path_changed.connect(changes.append)

        slow = asyncio.ensure_future(browser.cd("cloud:slow"))
        await _eventually(lambda: "bucket/slow/" in gated.calls)
        await browser.cd("cloud:fast")
        gate.set()
        await slow

        assert browser.path == "cloud:fast"
        assert _names(browser.items) == ["f.txt"]
        assert changes == [("cloud:", "cloud:fast")]

    @pytest.mark.asyncio
    async def test_stale_failure_is_dropped(self, browser: BrowserModel, gated: GatedClient) -> None:
        gate = gated.hold("bucket/slow/")
        gated.failing.add("bucket/slow/")
        failures: list[DriveError] = []
        browser.failed.connect(failures.append)

        slow = asyncio.ensure_future(browser.cd("cloud:slow"))
        await _eventually(lambda: "bucket/slow/" in gated.calls)
        await browser.cd("cloud:fast")
        gate.set()
        await slow

        assert failures == []
        assert browser.status is BrowserStatus.IDLE
        assert browser.path == "cloud:fast"

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_state(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        before = browser.items
        failures: list[DriveError] = []
        browser.failed.connect(failures.append)

        with pytest.raises(NotFound):
            await browser.cd("cloud:missing")

        assert browser.path == "cloud:docs"
        assert browser.items == before
        assert browser.status is BrowserStatus.ERROR
        assert len(failures) == 1 and isinstance(failures[0], NotFound)

    @pytest.mark.asyncio
    async def test_recovers_after_error(self, browser: BrowserModel, gated: GatedClient) -> None:
        gated.failing.add("bucket/")
        with pytest.raises(TransportError):
            await browser.refresh()
        assert browser.status is BrowserStatus.ERROR
        gated.failing.clear()
        await browser.refresh()
        assert browser.status is BrowserStatus.IDLE
        assert _names(browser.items) == ["docs", "fast", "slow", "top.txt"]

    @pytest.mark.asyncio
    async def test_unexpected_error_sets_error_status(self, browser: BrowserModel, gated: GatedClient) -> None:
        await browser.refresh()
        gated.crashing.add("bucket/")
        with pytest.raises(RuntimeError, match="injected listing crash"):
            await browser.refresh()
        assert browser.status is BrowserStatus.ERROR
        assert _names(browser.items) == ["docs", "fast", "slow", "top.txt"]

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_listing(self, browser: BrowserModel, gated: GatedClient) -> None:
        gate = gated.hold("bucket/docs/")
        waiter = asyncio.ensure_future(browser.cd("cloud:docs"))
        await _eventually(lambda: "bucket/docs/" in gated.calls)
        waiter.cancel()
        gate.set()
        await _eventually(lambda: browser.path == "cloud:docs")
        assert _names(browser.items) == ["sub", "a.txt", "b.txt"]


# endregion

# region: coalescing and background refresh


class TestRefresh:
    """Coalescing, change notifications and polling."""

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_listing(self, browser: BrowserModel, gated: GatedClient) -> None:
        gate = gated.hold("bucket/")
        first = asyncio.ensure_future(browser.refresh())
        await _eventually(lambda: gated.calls.count("bucket/") == 1)
        others = [asyncio.ensure_future(browser.refresh()) for _ in range(3)]
        await asyncio.sleep(0.01)
        gate.set()
        await asyncio.gather(first, *others)
        assert gated.calls.count("bucket/") == 1

    @pytest.mark.asyncio
    async def test_refresh_after_completion_lists_again(self, browser: BrowserModel, gated: GatedClient) -> None:
        await browser.refresh()
        await browser.refresh()
        assert gated.calls.count("bucket/") == 2

    @pytest.mark.asyncio
    async def test_change_in_current_directory_triggers_refresh(
        self, browser: BrowserModel, contents: ContentsManager
    ) -> None:
        await browser.cd("cloud:docs")
        await contents.save("cloud:docs/new.txt", b"n")
        await _eventually(lambda: "new.txt" in _names(browser.items))

    @pytest.mark.asyncio
    async def test_unrelated_change_is_ignored(
        self, browser: BrowserModel, contents: ContentsManager, gated: GatedClient
    ) -> None:
        await browser.cd("cloud:docs")
        await contents.save("cloud:fast/other.txt", b"o")
        calls = len(gated.calls)
        await asyncio.sleep(0.02)
        assert len(gated.calls) == calls

    @pytest.mark.asyncio
    async def test_deleting_current_directory_triggers_refresh(
        self, browser: BrowserModel, contents: ContentsManager
    ) -> None:
        await browser.cd("cloud:docs/sub")
        failures: list[DriveError] = []
        browser.failed.connect(failures.append)
        await contents.delete("cloud:docs")
        await _eventually(lambda: browser.status is BrowserStatus.ERROR)
        assert isinstance(failures[0], NotFound)
        assert _names(browser.items) == ["c.txt"]

    @pytest.mark.asyncio
    async def test_polling_picks_up_external_changes(self, contents: ContentsManager, gated: GatedClient) -> None:
        async with BrowserModel(contents, "cloud", refresh_interval=0.01) as model:
            await gated.put_object("bucket/external.txt", b"e")
            await _eventually(lambda: "external.txt" in _names(model.items))
        calls = len(gated.calls)
        await asyncio.sleep(0.05)
        assert len(gated.calls) == calls
        assert model.is_disposed

    @pytest.mark.asyncio
    async def test_polling_survives_unexpected_errors(
        self, contents: ContentsManager, gated: GatedClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level("ERROR", logger="object_drive._browser"):
            async with BrowserModel(contents, "cloud", refresh_interval=0.01) as model:
                gated.crashing.add("bucket/")
                await _eventually(lambda: model.status is BrowserStatus.ERROR)
                gated.crashing.clear()
                await gated.put_object("bucket/external.txt", b"e")
                await _eventually(lambda: "external.txt" in _names(model.items))
                assert model.status is BrowserStatus.IDLE
        assert "Background refresh of cloud: failed" in caplog.text


# endregion

# region: mutations


class TestMutations:
    """Mutations delegate and then refresh."""

    @pytest.mark.asyncio
    async def test_delete_selection(self, browser: BrowserModel, gated: GatedClient) -> None:
        await browser.cd("cloud:docs")
        browser.select("cloud:docs/a.txt", "cloud:docs/sub")
        await browser.delete()
        assert gated.keys() == [
            "bucket/docs/b.txt",
            "bucket/fast/f.txt",
            "bucket/slow/s.txt",
            "bucket/top.txt",
        ]
        assert _names(browser.items) == ["b.txt"]
        assert browser.selected == ()

    @pytest.mark.asyncio
    async def test_delete_reports_first_error_after_refresh(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        failures: list[DriveError] = []
        browser.failed.connect(failures.append)
        with pytest.raises(NotFound):
            await browser.delete(["ghost.txt", "a.txt"])
        assert _names(browser.items) == ["sub", "b.txt"]
        assert len(failures) == 1

    @pytest.mark.asyncio
    async def test_refresh_after_mutation_skips_older_listing(self) -> None:
        client = SnapshotClient(objects={"bucket/docs/a.txt": b"a", "bucket/docs/b.txt": b"b"})
        manager = ContentsManager()
        manager.add_drive(Drive("cloud", client, bucket="bucket"))
        browser = BrowserModel(manager, "cloud", refresh_interval=None)
        await browser.cd("cloud:docs")

        gate = client.hold("bucket/docs/")
        earlier = asyncio.ensure_future(browser.refresh())
        await _eventually(lambda: client.calls.count("bucket/docs/") == 2)
        await asyncio.wait_for(browser.delete(["cloud:docs/a.txt"]), 1.0)
        assert _names(browser.items) == ["b.txt"]

        gate.set()
        await earlier
        assert _names(browser.items) == ["b.txt"]
        await browser.dispose()

    @pytest.mark.asyncio
    async def test_rename_with_bare_name(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        entry = await browser.rename("a.txt", "z.txt")
        assert entry.path == "cloud:docs/z.txt"
        assert _names(browser.items) == ["sub", "b.txt", "z.txt"]

    @pytest.mark.asyncio
    async def test_rename_conflict_emits_failed(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        failures: list[DriveError] = []
        browser.failed.connect(failures.append)
        with pytest.raises(DriveError):
            await browser.rename("a.txt", "b.txt")
        assert len(failures) == 1

    @pytest.mark.asyncio
    async def test_create_directory_and_save(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        await browser.create_directory("empty")
        await browser.save("note.md", "# hi")
        assert _names(browser.items) == ["empty", "sub", "a.txt", "b.txt", "note.md"]

    @pytest.mark.asyncio
    async def test_download_url(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        assert await browser.get_download_url("a.txt") == "memory://bucket/docs/a.txt"


# endregion

# region: selection


class TestSelection:
    @pytest.mark.asyncio
    async def test_selected_in_listing_order(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        browser.select("cloud:docs/b.txt", "cloud:docs/sub")
        assert browser.selected == ("cloud:docs/sub", "cloud:docs/b.txt")
        browser.deselect("cloud:docs/sub")
        assert browser.selected == ("cloud:docs/b.txt",)
        browser.select_all()
        assert len(browser.selected) == 3
        browser.clear_selection()
        assert browser.selected == ()

    @pytest.mark.asyncio
    async def test_select_unknown_path(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        with pytest.raises(KeyError):
            browser.select("cloud:docs/zzz")

    @pytest.mark.asyncio
    async def test_pruned_on_directory_change(self, browser: BrowserModel) -> None:
        await browser.cd("cloud:docs")
        browser.select_all()
        await browser.cd("cloud:fast")
        assert browser.selected == ()


# endregion

# region: lifecycle


class TestLifecycle:
    """start/dispose and path persistence."""

    @pytest.mark.asyncio
    async def test_path_is_persisted_and_restored(self, contents: ContentsManager) -> None:
        state = MemoryStateStore()
        async with BrowserModel(contents, "cloud", refresh_interval=None, state=state) as first:
            await first.cd("docs/sub")
        assert state.get("object-drive-browser:path") == "cloud:docs/sub"

        async with BrowserModel(contents, "cloud", refresh_interval=None, state=state) as second:
            assert second.path == "cloud:docs/sub"
            assert _names(second.items) == ["c.txt"]

    @pytest.mark.asyncio
    async def test_missing_remembered_path_falls_back_to_root(self, contents: ContentsManager) -> None:
        state = MemoryStateStore({"ns:path": "cloud:gone"})
        async with BrowserModel(contents, "cloud", refresh_interval=None, state=state, namespace="ns") as model:
            assert model.path == "cloud:"
            assert "top.txt" in _names(model.items)

    @pytest.mark.asyncio
    async def test_remembered_path_of_other_drive_ignored(self, contents: ContentsManager) -> None:
        state = MemoryStateStore({"ns:path": "other:docs"})
        async with BrowserModel(contents, "cloud", refresh_interval=None, state=state, namespace="ns") as model:
            assert model.path == "cloud:"

    @pytest.mark.asyncio
    async def test_dispose_drops_in_flight_listing(self, browser: BrowserModel, gated: GatedClient) -> None:
        gate = gated.hold("bucket/docs/")
        pending = asyncio.ensure_future(browser.cd("cloud:docs"))
        await _eventually(lambda: "bucket/docs/" in gated.calls)
        await browser.dispose()
        gate.set()
        await pending
        assert browser.path == "cloud:"
        assert browser.items == ()

    @pytest.mark.asyncio
    async def test_dispose_waits_for_notification_refreshes(
        self, browser: BrowserModel, contents: ContentsManager, gated: GatedClient
    ) -> None:
        await browser.refresh()
        gate = gated.hold("bucket/")
        await contents.save("cloud:new.txt", b"n")
        await _eventually(lambda: gated.calls.count("bucket/") == 2)
        tasks = list(browser._tasks)
        assert tasks
        await browser.dispose()
        assert all(task.done() for task in tasks)
        assert browser._tasks == set()
        gate.set()
        await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_disposed_model_refuses_listing(self, browser: BrowserModel) -> None:
        await browser.dispose()
        await browser.dispose()
        with pytest.raises(RuntimeError, match="disposed"):
            await browser.refresh()

    @pytest.mark.asyncio
    async def test_disposed_model_ignores_notifications(
        self, browser: BrowserModel, contents: ContentsManager, gated: GatedClient
    ) -> None:
        await browser.dispose()
        await contents.save("cloud:late.txt", b"")
        calls = len(gated.calls)
        await asyncio.sleep(0.02)
        assert len(gated.calls) == calls

    @pytest.mark.asyncio
    async def test_create_browser_from_options(self, contents: ContentsManager) -> None:
        options = BrowserOptions(drive="cloud", refresh_interval=None, namespace="custom")
        state = MemoryStateStore({"custom:path": "cloud:fast"})
        async with create_browser(contents, options, state=state) as model:
            assert model.path == "cloud:fast"


# endregion
