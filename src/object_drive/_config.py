"""Configuration model — immutable data containers describing clients, drives and browsers."""

from __future__ import annotations

import dataclasses
from typing import Optional

from object_drive._browser import DEFAULT_NAMESPACE, DEFAULT_REFRESH_INTERVAL
from object_drive._drive import DEFAULT_MAX_PAGES


@dataclasses.dataclass(frozen=True)
class ClientConfig:
    """Describes an object store client instance.

    :param type: Client type identifier (e.g. ``"memory"``, ``"s3"``).
    :param options: Client-specific constructor options.
    """

    type: str
    options: dict[str, object] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class DriveProfile:
    """Describes a named drive.

    :param client: Name of the client config to use.
    :param bucket: Bucket the drive is confined to.
    :param root_prefix: Key prefix inside the bucket.
    :param max_pages: Listing page cap.
    """

    client: str
    bucket: str
    root_prefix: str = ""
    max_pages: int = DEFAULT_MAX_PAGES


@dataclasses.dataclass(frozen=True)
class BrowserOptions:
    """Describes a browser instance.

    :param drive: Name of the drive to browse.
    :param refresh_interval: Seconds between background refreshes, ``None`` to disable.
    :param namespace: Key namespace for persisted browser state.
    """

    drive: str
    refresh_interval: Optional[float] = DEFAULT_REFRESH_INTERVAL
    namespace: str = DEFAULT_NAMESPACE

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> BrowserOptions:
        """Construct from a plain dict (e.g. parsed TOML/JSON)."""
        interval = data.get("refresh_interval", DEFAULT_REFRESH_INTERVAL)
        return cls(
            drive=str(data["drive"]),
            refresh_interval=None if interval is None else float(interval),  # type: ignore[arg-type]
            namespace=str(data.get("namespace", DEFAULT_NAMESPACE)),
        )


@dataclasses.dataclass(frozen=True)
class RegistryConfig:
    """Top-level configuration container.

    :param clients: Mapping of client names to their configs.
    :param drives: Mapping of drive names to their profiles.
    """

    clients: dict[str, ClientConfig] = dataclasses.field(default_factory=dict)
    drives: dict[str, DriveProfile] = dataclasses.field(default_factory=dict)

    def validate(self) -> None:
        """Validate that all drive profiles reference existing clients.

        :raises ValueError: If a drive references a non-existent client.
        """
        for drive_name, profile in self.drives.items():
            if profile.client not in self.clients:
                raise ValueError(
                    f"Drive '{drive_name}' references unknown client '{profile.client}'. "
                    f"Available clients: {sorted(self.clients.keys())}"
                )

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> RegistryConfig:
        """Construct from a plain dict (e.g. parsed TOML/JSON).

        :param data: Dict with ``clients`` and ``drives`` keys.
        """
        raw_clients = data.get("clients", {})
        raw_drives = data.get("drives", {})
        if not isinstance(raw_clients, dict) or not isinstance(raw_drives, dict):
            msg = "Expected 'clients' and 'drives' to be dicts"
            raise TypeError(msg)

        clients: dict[str, ClientConfig] = {}
        for name, cfg in raw_clients.items():
            if not isinstance(cfg, dict):
                msg = f"Client config for '{name}' must be a dict"
                raise TypeError(msg)
            clients[str(name)] = ClientConfig(
                type=str(cfg["type"]),
                options=dict(cfg.get("options", {})),
            )

        drives: dict[str, DriveProfile] = {}
        for name, prof in raw_drives.items():
            if not isinstance(prof, dict):
                msg = f"Drive profile for '{name}' must be a dict"
                raise TypeError(msg)
            drives[str(name)] = DriveProfile(
                client=str(prof["client"]),
                bucket=str(prof["bucket"]),
                root_prefix=str(prof.get("root_prefix", "")),
                max_pages=int(prof.get("max_pages", DEFAULT_MAX_PAGES)),
            )

        return cls(clients=clients, drives=drives)
