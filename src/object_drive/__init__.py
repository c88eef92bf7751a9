"""Object store buckets presented as navigable, file-system-like drives."""

from object_drive._browser import BrowserModel, BrowserStatus, create_browser
from object_drive._client import ObjectStoreClient
from object_drive._config import BrowserOptions, ClientConfig, DriveProfile, RegistryConfig
from object_drive._contents import ContentsManager
from object_drive._drive import Drive
from object_drive._errors import (
    DriveError,
    InvalidPath,
    ListTruncated,
    NotFound,
    PartialDelete,
    PartialRename,
    RenameConflict,
    Timeout,
    TransportError,
)
from object_drive._models import (
    ChangeEvent,
    ChangeType,
    Checkpoint,
    Entry,
    EntryType,
    ListPage,
    ObjectInfo,
)
from object_drive._path import PathTranslator
from object_drive._registry import Registry, register_client
from object_drive._signal import Signal
from object_drive._state import MemoryStateStore, StateStore

__version__ = "0.1.0"

__all__ = [
    # Core
    "Drive",
    "ContentsManager",
    "BrowserModel",
    "BrowserStatus",
    "create_browser",
    "Registry",
    "register_client",
    "ObjectStoreClient",
    # Paths & Models
    "PathTranslator",
    "Entry",
    "EntryType",
    "ChangeEvent",
    "ChangeType",
    "Checkpoint",
    "ListPage",
    "ObjectInfo",
    "Signal",
    # State
    "StateStore",
    "MemoryStateStore",
    # Config
    "ClientConfig",
    "DriveProfile",
    "BrowserOptions",
    "RegistryConfig",
    # Errors
    "DriveError",
    "NotFound",
    "InvalidPath",
    "ListTruncated",
    "PartialDelete",
    "RenameConflict",
    "PartialRename",
    "Timeout",
    "TransportError",
    # Version
    "__version__",
]
