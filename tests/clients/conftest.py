"""Client test fixtures -- parameterized for conformance testing."""

from __future__ import annotations

import socket
import uuid
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from object_drive.clients._memory import MemoryClient

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from object_drive._client import ObjectStoreClient

REGION = "us-east-1"
PAGE_SIZE = 2


def _s3_available() -> bool:
    try:
        import boto3  # noqa: F401
        import moto  # noqa: F401
        import s3fs  # noqa: F401

        return True
    except ImportError:
        return False


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("", 0))
        return s.getsockname()[1]


@pytest.fixture(scope="session")
def moto_server() -> Iterator[str | None]:
    """Start a moto HTTP server for the test session.

    Server mode keeps aiobotocore on a real socket instead of patched botocore.
    """
    if not _s3_available():
        yield None
        return
    from moto.moto_server.threaded_moto_server import ThreadedMotoServer

    port = _free_port()
    server = ThreadedMotoServer(port=port, verbose=False)
    server.start()
    yield f"http://127.0.0.1:{port}"
    server.stop()


@pytest.fixture
def bucket() -> str:
    return f"conformance-{uuid.uuid4().hex[:8]}"


def make_bucket(endpoint: str, name: str) -> None:
    import boto3

    boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        region_name=REGION,
    ).create_bucket(Bucket=name)


_s3_param = pytest.param(
    "s3",
    marks=[
        pytest.mark.integration,
        pytest.mark.skipif(not _s3_available(), reason="moto/s3fs not installed"),
    ],
)


@pytest_asyncio.fixture(params=["memory", _s3_param])
async def client(
    request: pytest.FixtureRequest,
    moto_server: str | None,
    bucket: str,
) -> AsyncIterator[ObjectStoreClient]:
    """Parameterized client fixture with an empty ``bucket``. Add new clients here."""
    if request.param == "memory":
        yield MemoryClient(page_size=PAGE_SIZE)
    elif request.param == "s3":
        from object_drive.clients._s3 import S3Client

        assert moto_server is not None
        make_bucket(moto_server, bucket)
        c = S3Client(
            endpoint_url=moto_server,
            key="testing",
            secret="testing",
            region_name=REGION,
            page_size=PAGE_SIZE,
            timeout=10.0,
        )
        yield c
        await c.close()
    else:
        pytest.skip(f"Unknown client: {request.param}")
