"""In-process object store client backed by a dict."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Optional

from object_drive._client import ObjectStoreClient
from object_drive._errors import NotFound
from object_drive._models import ListPage, ObjectInfo


class MemoryClient(ObjectStoreClient):
    """Object store kept in memory, with S3-like listing semantics.

    Keys are listed in lexicographic order, ``page_size`` entries (objects
    plus rolled-up prefixes) per page. The continuation token is the last
    key consumed.

    :param page_size: Maximum entries per listing page.
    :param objects: Optional initial content, keyed by bucket-qualified key.
    """

    def __init__(self, *, page_size: int = 1000, objects: Optional[dict[str, bytes]] = None) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._page_size = page_size
        self._objects: dict[str, tuple[bytes, datetime]] = {}
        for key, data in (objects or {}).items():
            self._store(key, data)

    @property
    def name(self) -> str:
        return "memory"

    def _store(self, key: str, data: bytes) -> None:
        self._objects[key] = (bytes(data), datetime.now(tz=timezone.utc))

    def _info(self, key: str) -> ObjectInfo:
        data, modified = self._objects[key]
        return ObjectInfo(
            key=key,
            size=len(data),
            last_modified=modified,
            etag=hashlib.md5(data).hexdigest(),  # noqa: S324
        )

    def keys(self) -> list[str]:
        """All stored keys in lexicographic order."""
        return sorted(self._objects)

    async def list_objects(
        self,
        prefix: str,
        *,
        page_token: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> ListPage:
        candidates = sorted(
            key for key in self._objects if key.startswith(prefix) and (page_token is None or key > page_token)
        )
        objects: list[ObjectInfo] = []
        prefixes: list[str] = []
        count = 0
        last: Optional[str] = None
        truncated = False
        for key in candidates:
            if delimiter:
                rest = key[len(prefix) :]
                idx = rest.find(delimiter)
                if idx >= 0:
                    common = prefix + rest[: idx + len(delimiter)]
                    if prefixes and prefixes[-1] == common:
                        last = key
                        continue
                    if count >= self._page_size:
                        truncated = True
                        break
                    prefixes.append(common)
                    count += 1
                    last = key
                    continue
            if count >= self._page_size:
                truncated = True
                break
            objects.append(self._info(key))
            count += 1
            last = key
        return ListPage(
            objects=tuple(objects),
            prefixes=tuple(prefixes),
            next_page_token=last if truncated else None,
        )

    async def head_object(self, key: str) -> ObjectInfo:
        if key not in self._objects:
            raise NotFound(f"Object not found: {key}", path=key, backend=self.name)
        return self._info(key)

    async def get_object(self, key: str) -> bytes:
        if key not in self._objects:
            raise NotFound(f"Object not found: {key}", path=key, backend=self.name)
        return self._objects[key][0]

    async def put_object(self, key: str, data: bytes) -> None:
        self._store(key, data)

    async def delete_object(self, key: str) -> None:
        self._objects.pop(key, None)

    async def copy_object(self, src_key: str, dst_key: str) -> None:
        if src_key not in self._objects:
            raise NotFound(f"Source not found: {src_key}", path=src_key, backend=self.name)
        self._store(dst_key, self._objects[src_key][0])

    async def get_url(self, key: str, *, expires: int = 3600) -> str:
        return f"memory://{key}"

    def __repr__(self) -> str:
        return f"MemoryClient(objects={len(self._objects)}, page_size={self._page_size})"
