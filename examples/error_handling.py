"""Error handling — NotFound, InvalidPath, RenameConflict and partial failures.

Demonstrates the normalized error hierarchy and the structured attributes
multi-object operations report so the caller can retry the residue.
"""

from __future__ import annotations

import asyncio

from object_drive import (
    ContentsManager,
    Drive,
    DriveError,
    InvalidPath,
    NotFound,
    PartialDelete,
    RenameConflict,
    TransportError,
)
from object_drive.clients import MemoryClient


class StubbornClient(MemoryClient):
    """Refuses to delete one key, like a store with a restrictive policy."""

    async def delete_object(self, key: str) -> None:
        if key.endswith("locked.txt"):
            raise TransportError("Access Denied", path=key, backend=self.name)
        await super().delete_object(key)


async def main() -> None:
    contents = ContentsManager()
    contents.add_drive(Drive("cloud", StubbornClient(), bucket="data"))

    # --- NotFound ---
    try:
        await contents.get("cloud:nonexistent.txt")
    except NotFound as exc:
        print(f"NotFound: {exc}")
        print(f"  path={exc.path}, backend={exc.backend}")

    # --- InvalidPath (traversal attempt, unknown drive) ---
    for path in ["cloud:../../etc/passwd", "elsewhere:file.txt"]:
        try:
            await contents.get(path)
        except InvalidPath as exc:
            print(f"\nInvalidPath: {exc}")

    # --- RenameConflict is raised before anything is copied ---
    await contents.save("cloud:a.txt", b"a")
    await contents.save("cloud:b.txt", b"b")
    try:
        await contents.rename("cloud:a.txt", "cloud:b.txt")
    except RenameConflict as exc:
        print(f"\nRenameConflict: {exc}")

    # --- PartialDelete lists exactly the keys still present ---
    await contents.save("cloud:dir/one.txt", b"1")
    await contents.save("cloud:dir/locked.txt", b"2")
    try:
        await contents.delete("cloud:dir")
    except PartialDelete as exc:
        print(f"\nPartialDelete: {exc}")
        print(f"  failed_keys={exc.failed_keys}")

    # --- Catch any drive error with the base class ---
    try:
        await contents.list("cloud:missing")
    except DriveError as exc:
        print(f"\nDriveError ({type(exc).__name__}): {exc}")

    print("\nDone!")


if __name__ == "__main__":
    asyncio.run(main())
