"""ObjectStoreClient abstract base class — the transport contract."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from object_drive._models import ListPage, ObjectInfo


class ObjectStoreClient(abc.ABC):
    """Abstract base class for object store transports.

    Keys are bucket-qualified (``"bucket/a/b.txt"``). Clients hold no
    business logic: no directory inference, no ordering beyond the store's
    own key order. Library exceptions must never leak; they are mapped to
    ``object_drive`` errors (``NotFound``, ``Timeout``, ``TransportError``).
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Identifier for this client type (e.g. ``'memory'``, ``'s3'``)."""

    @abc.abstractmethod
    async def list_objects(
        self,
        prefix: str,
        *,
        page_token: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> ListPage:
        """Return one page of objects whose key starts with ``prefix``.

        :param page_token: Continuation token from the previous page.
        :param delimiter: When set, keys containing the delimiter after the
            prefix are rolled up into :attr:`ListPage.prefixes`.
        """

    @abc.abstractmethod
    async def head_object(self, key: str) -> ObjectInfo:
        """Return object metadata.

        :raises NotFound: If no object exists at ``key``.
        """

    @abc.abstractmethod
    async def get_object(self, key: str) -> bytes:
        """Download an object.

        :raises NotFound: If no object exists at ``key``.
        """

    @abc.abstractmethod
    async def put_object(self, key: str, data: bytes) -> None:
        """Store ``data`` at ``key``, replacing any existing object."""

    @abc.abstractmethod
    async def delete_object(self, key: str) -> None:
        """Delete the object at ``key``. Missing objects are not an error."""

    @abc.abstractmethod
    async def copy_object(self, src_key: str, dst_key: str) -> None:
        """Server-side copy, replacing any object at ``dst_key``.

        :raises NotFound: If ``src_key`` does not exist.
        """

    @abc.abstractmethod
    async def get_url(self, key: str, *, expires: int = 3600) -> str:
        """Return a URL from which the object can be downloaded."""

    async def close(self) -> None:  # noqa: B027
        """Release resources. Default is a no-op."""

    @staticmethod
    def split_key(key: str) -> tuple[str, str]:
        """Split a bucket-qualified key into ``(bucket, object_key)``."""
        bucket, _, rest = key.partition("/")
        return bucket, rest
