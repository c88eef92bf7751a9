"""Registry — client lifecycle management and drive access."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from object_drive._config import RegistryConfig
from object_drive._contents import ContentsManager
from object_drive._drive import Drive

if TYPE_CHECKING:
    from types import TracebackType

    from object_drive._client import ObjectStoreClient

log = logging.getLogger(__name__)

# Global client factory registry: maps type strings to client classes.
_CLIENT_FACTORIES: dict[str, type[ObjectStoreClient]] = {}


def register_client(type_name: str, cls: type[ObjectStoreClient]) -> None:
    """Register a client class for a given type string.

    :param type_name: The type identifier (e.g. ``"memory"``).
    :param cls: The client class to instantiate.
    """
    _CLIENT_FACTORIES[type_name] = cls


def _register_builtin_clients() -> None:
    """Register the built-in clients."""
    from object_drive.clients._memory import MemoryClient

    if "memory" not in _CLIENT_FACTORIES:
        register_client("memory", MemoryClient)
    if "s3" not in _CLIENT_FACTORIES:
        try:
            from object_drive.clients._s3 import S3Client
        except ImportError:  # pragma: no cover
            return
        register_client("s3", S3Client)


class Registry:
    """Manages client lifecycle and provides access to named drives.

    Clients are instantiated lazily and shared by every drive that names
    them. Drives are created once per name.

    :param config: Optional configuration. Validates immediately.
    :raises ValueError: If config is invalid.
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        _register_builtin_clients()
        self._config = config or RegistryConfig()
        self._config.validate()
        self._clients: dict[str, ObjectStoreClient] = {}
        self._drives: dict[str, Drive] = {}

    def __repr__(self) -> str:
        drives = sorted(self._config.drives.keys())
        return f"Registry(drives={drives!r})"

    def get_drive(self, name: str) -> Drive:
        """Get a drive by its profile name.

        :param name: The drive profile name.
        :raises KeyError: If no drive profile with this name exists.
        """
        if name not in self._config.drives:
            available = sorted(self._config.drives.keys())
            raise KeyError(f"Unknown drive '{name}'. Available drives: {available}")
        if name not in self._drives:
            profile = self._config.drives[name]
            self._drives[name] = Drive(
                name,
                self._get_client(profile.client),
                bucket=profile.bucket,
                root_prefix=profile.root_prefix,
                max_pages=profile.max_pages,
            )
        return self._drives[name]

    def contents(self) -> ContentsManager:
        """Build a :class:`ContentsManager` with every configured drive mounted."""
        manager = ContentsManager()
        for name in sorted(self._config.drives):
            manager.add_drive(self.get_drive(name))
        return manager

    def _get_client(self, name: str) -> ObjectStoreClient:
        """Lazily instantiate and cache a client."""
        if name not in self._clients:
            cfg = self._config.clients[name]
            if cfg.type not in _CLIENT_FACTORIES:
                raise ValueError(
                    f"Unknown client type '{cfg.type}'. Registered types: {sorted(_CLIENT_FACTORIES.keys())}"
                )
            factory = _CLIENT_FACTORIES[cfg.type]
            try:
                self._clients[name] = factory(**cfg.options)
            except TypeError as exc:
                raise ValueError(
                    f"Invalid options for client '{name}' (type={cfg.type!r}): {exc}. "
                    f"Provided options: {sorted(cfg.options.keys())}"
                ) from exc
            log.debug("Created client %r of type %r", name, cfg.type)
        return self._clients[name]

    async def aclose(self) -> None:
        """Close all instantiated clients."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
        self._drives.clear()

    async def __aenter__(self) -> Registry:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()
