"""Browser — navigate a drive, react to signals, and remember the last path.

Demonstrates:
- Building a BrowserModel from BrowserOptions
- Connecting to path_changed, refreshed and failed
- Change notifications refreshing the view without polling
- Restoring the remembered path in a second browser
"""

from __future__ import annotations

import asyncio

from object_drive import BrowserOptions, ContentsManager, Drive, MemoryStateStore, NotFound, create_browser
from object_drive.clients import MemoryClient


async def main() -> None:
    client = MemoryClient(objects={"data/docs/a.txt": b"a", "data/docs/img/logo.png": b"\x89PNG"})
    contents = ContentsManager()
    contents.add_drive(Drive("cloud", client, bucket="data"))
    state = MemoryStateStore()
    options = BrowserOptions(drive="cloud", refresh_interval=None)

    async with create_browser(contents, options, state=state) as browser:
        browser.path_changed.connect(lambda change: print(f"cd {change[0]} -> {change[1]}"))
        browser.refreshed.connect(lambda items: print(f"  {[e.name for e in items]}"))
        browser.failed.connect(lambda exc: print(f"  failed: {exc}"))

        await browser.cd("docs")
        await browser.cd("img")
        await browser.cd("..")

        # Saved elsewhere; the browser hears about it and refreshes itself
        await contents.save("cloud:docs/b.txt", b"b")
        await asyncio.sleep(0.1)

        try:
            await browser.cd("missing")
        except NotFound:
            print(f"  still at {browser.path}, status={browser.status.value}")

    async with create_browser(contents, options, state=state) as restored:
        print(f"Restored at {restored.path}")


if __name__ == "__main__":
    asyncio.run(main())
