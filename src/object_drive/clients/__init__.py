"""Object store client implementations."""

from object_drive.clients._memory import MemoryClient

__all__ = ["MemoryClient"]

try:
    from object_drive.clients._s3 import S3Client

    __all__ = [*__all__, "S3Client"]
except ImportError:  # pragma: no cover
    pass
