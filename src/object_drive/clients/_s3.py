"""S3-compatible object store client using s3fs in asynchronous mode."""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from object_drive._client import ObjectStoreClient
from object_drive._errors import DriveError, NotFound, Timeout, TransportError
from object_drive._models import ListPage, ObjectInfo

if TYPE_CHECKING:
    from collections.abc import Iterator

T = TypeVar("T")

log = logging.getLogger(__name__)

_TRANSIENT_MARKERS = (
    "throttl",
    "slowdown",
    "slow down",
    "serviceunavailable",
    "service unavailable",
    "internalerror",
    "503",
    "500",
    "connection reset",
    "connection aborted",
    "endpointconnectionerror",
    "could not connect",
)


def _is_transient(exc: BaseException) -> bool:
    """Whether a raw transport exception is worth retrying."""
    if isinstance(exc, (FileNotFoundError, PermissionError, DriveError)):
        return False
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError)):
        return True
    text = f"{type(exc).__name__} {exc}".lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


def _as_utc(value: Any) -> Optional[datetime]:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value if isinstance(value, datetime) else None


class S3Client(ObjectStoreClient):
    """S3-compatible client using s3fs/aiobotocore.

    Every request runs under ``timeout`` seconds and transient failures are
    retried with exponential backoff before being surfaced.

    :param endpoint_url: Custom endpoint URL (e.g. for MinIO).
    :param key: AWS access key ID.
    :param secret: AWS secret access key.
    :param region_name: AWS region name.
    :param timeout: Per-request deadline in seconds.
    :param max_attempts: Attempts per request, including the first.
    :param backoff_min: Minimum backoff between attempts in seconds.
    :param backoff_max: Maximum backoff between attempts in seconds.
    :param page_size: ``MaxKeys`` for listing requests.
    :param client_options: Additional options passed to s3fs.
    """

    def __init__(
        self,
        *,
        endpoint_url: str | None = None,
        key: str | None = None,
        secret: str | None = None,
        region_name: str | None = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        backoff_min: float = 0.5,
        backoff_max: float = 8.0,
        page_size: int = 1000,
        client_options: dict[str, Any] | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._endpoint_url = endpoint_url
        self._key = key
        self._secret = secret
        self._region_name = region_name
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff_min = backoff_min
        self._backoff_max = backoff_max
        self._page_size = page_size
        self._client_options = client_options or {}
        self._fs_instance: Any = None

    @property
    def name(self) -> str:
        return "s3"

    # region: lazy filesystem

    @property
    def _fs(self) -> Any:
        if self._fs_instance is None:
            import s3fs  # type: ignore[import-untyped]

            opts: dict[str, Any] = dict(self._client_options)
            if self._endpoint_url is not None:
                opts["endpoint_url"] = self._endpoint_url
            if self._key is not None:
                opts["key"] = self._key
            if self._secret is not None:
                opts["secret"] = self._secret
            if self._region_name is not None:
                client_kwargs: dict[str, Any] = opts.setdefault("client_kwargs", {})
                client_kwargs["region_name"] = self._region_name
            opts.setdefault("anon", False)
            opts.setdefault("skip_instance_cache", True)
            log.info("Creating s3fs filesystem (endpoint=%s)", self._endpoint_url or "default")
            self._fs_instance = s3fs.S3FileSystem(asynchronous=True, **opts)
        return self._fs_instance

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str = "") -> Iterator[None]:
        """Map s3fs/botocore exceptions to object_drive errors."""
        try:
            yield
        except DriveError:
            raise
        except asyncio.TimeoutError:
            raise Timeout(
                f"Request timed out after {self._timeout}s", path=path, backend=self.name
            ) from None
        except FileNotFoundError:
            raise NotFound(f"Not found: {path}", path=path, backend=self.name) from None
        except Exception as exc:
            raise self._classify_error(exc, path) from exc

    def _classify_error(self, exc: Exception, path: str) -> DriveError:
        """Classify an unknown exception into an object_drive error type."""
        msg = str(exc).lower()
        if "404" in msg or "nosuchkey" in msg or "not found" in msg:
            return NotFound(f"Not found: {path}", path=path, backend=self.name)
        return TransportError(str(exc) or type(exc).__name__, path=path, backend=self.name, cause=exc)

    async def _call(self, path: str, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run one request with a deadline and bounded retries."""
        with self._errors(path):
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_transient),
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._backoff_min, min=self._backoff_min, max=self._backoff_max),
                before_sleep=before_sleep_log(log, logging.WARNING),  # type: ignore[arg-type,unused-ignore]
                reraise=True,
            ):
                with attempt:
                    result = await asyncio.wait_for(func(*args, **kwargs), timeout=self._timeout)
        return result

    # endregion

    # region: operations

    async def list_objects(
        self,
        prefix: str,
        *,
        page_token: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> ListPage:
        bucket, key_prefix = self.split_key(prefix)
        kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": key_prefix, "MaxKeys": self._page_size}
        if page_token is not None:
            kwargs["ContinuationToken"] = page_token
        if delimiter is not None:
            kwargs["Delimiter"] = delimiter
        log.debug("list_objects_v2 %s token=%s", prefix, page_token)
        resp = await self._call(prefix, self._fs._call_s3, "list_objects_v2", **kwargs)
        objects = tuple(
            ObjectInfo(
                key=f"{bucket}/{item['Key']}",
                size=int(item.get("Size", 0) or 0),
                last_modified=_as_utc(item.get("LastModified")),
                etag=item.get("ETag"),
            )
            for item in resp.get("Contents", [])
        )
        prefixes = tuple(f"{bucket}/{item['Prefix']}" for item in resp.get("CommonPrefixes", []))
        next_token = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        return ListPage(objects=objects, prefixes=prefixes, next_page_token=next_token)

    async def head_object(self, key: str) -> ObjectInfo:
        bucket, obj = self.split_key(key)
        resp = await self._call(key, self._fs._call_s3, "head_object", Bucket=bucket, Key=obj)
        return ObjectInfo(
            key=key,
            size=int(resp.get("ContentLength", 0) or 0),
            last_modified=_as_utc(resp.get("LastModified")),
            etag=resp.get("ETag"),
        )

    async def _read_object(self, bucket: str, obj: str) -> bytes:
        resp = await self._fs._call_s3("get_object", Bucket=bucket, Key=obj)
        async with resp["Body"] as body:
            return bytes(await body.read())

    async def get_object(self, key: str) -> bytes:
        bucket, obj = self.split_key(key)
        return await self._call(key, self._read_object, bucket, obj)

    async def put_object(self, key: str, data: bytes) -> None:
        # Raw request: fsspec path handling would strip the trailing "/" of marker keys.
        bucket, obj = self.split_key(key)
        await self._call(key, self._fs._call_s3, "put_object", Bucket=bucket, Key=obj, Body=data)

    async def delete_object(self, key: str) -> None:
        bucket, obj = self.split_key(key)
        await self._call(key, self._fs._call_s3, "delete_object", Bucket=bucket, Key=obj)

    async def copy_object(self, src_key: str, dst_key: str) -> None:
        src_bucket, src_obj = self.split_key(src_key)
        dst_bucket, dst_obj = self.split_key(dst_key)
        await self._call(
            src_key,
            self._fs._call_s3,
            "copy_object",
            Bucket=dst_bucket,
            Key=dst_obj,
            CopySource={"Bucket": src_bucket, "Key": src_obj},
        )

    async def get_url(self, key: str, *, expires: int = 3600) -> str:
        return str(await self._call(key, self._fs._url, key, expires=expires))

    # endregion

    # region: lifecycle

    async def close(self) -> None:
        if self._fs_instance is not None:
            session = getattr(self._fs_instance, "_s3", None)
            if session is not None:
                await session.close()
            self._fs_instance = None
            log.info("s3fs filesystem closed.")

    # endregion

    def __repr__(self) -> str:
        return f"S3Client(endpoint_url={self._endpoint_url!r}, timeout={self._timeout})"
