"""Quickstart — mount a drive, write files, and list synthetic directories.

Demonstrates:
- Creating a RegistryConfig with an in-memory client
- Getting a ContentsManager with every configured drive mounted
- Saving files and listing the directories their keys imply
"""

from __future__ import annotations

import asyncio

from object_drive import ClientConfig, DriveProfile, Registry, RegistryConfig


async def main() -> None:
    config = RegistryConfig(
        clients={"mem": ClientConfig(type="memory")},
        drives={"cloud": DriveProfile(client="mem", bucket="data")},
    )

    async with Registry(config) as registry:
        contents = registry.contents()

        # Keys are flat; "reports/" exists only because a key starts with it
        await contents.save("cloud:reports/q4.csv", b"revenue,profit\n100,20\n")
        await contents.save("cloud:hello.txt", "Hello, world!")
        await contents.create_directory("cloud:empty")

        for entry in await contents.list("cloud:"):
            print(f"{entry.type.value:<10} {entry.path}")

        hello = await contents.get("cloud:hello.txt")
        print(f"Content: {hello.content!r} ({hello.size} bytes, {hello.mimetype})")
        print(f"URL: {await contents.get_download_url('cloud:hello.txt')}")


if __name__ == "__main__":
    asyncio.run(main())
