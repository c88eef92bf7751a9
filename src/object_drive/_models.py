"""Immutable value objects exchanged between clients, drives and browsers."""

from __future__ import annotations

import dataclasses
import enum
import mimetypes
from typing import TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from datetime import datetime

NOTEBOOK_SUFFIX = ".ipynb"
NOTEBOOK_MIMETYPE = "application/x-ipynb+json"


class EntryType(enum.Enum):
    """Kinds of items visible in a drive."""

    FILE = "file"
    DIRECTORY = "directory"
    NOTEBOOK = "notebook"

    @classmethod
    def for_name(cls, name: str) -> EntryType:
        """Classify a file by its name."""
        if name.endswith(NOTEBOOK_SUFFIX):
            return cls.NOTEBOOK
        return cls.FILE


EntryContent = Union[bytes, dict[str, Any], tuple["Entry", ...]]


@dataclasses.dataclass(frozen=True, eq=False)
class Entry:
    """Immutable snapshot of one item in a drive.

    :param path: Normalized virtual path (``"drive:a/b"``).
    :param name: Final path component, empty for a drive root.
    :param type: File, directory or notebook.
    :param size: Size in bytes, ``None`` for directories.
    :param last_modified: Modification time of the backing object, if any.
    :param mimetype: Guessed MIME type for files.
    :param content: Fetched payload; ``None`` until requested.
    """

    path: str
    name: str
    type: EntryType
    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    mimetype: Optional[str] = None
    content: Optional[EntryContent] = None

    @classmethod
    def file(cls, path: str, name: str, size: int, last_modified: Optional[datetime]) -> Entry:
        entry_type = EntryType.for_name(name)
        if entry_type is EntryType.NOTEBOOK:
            mimetype: Optional[str] = NOTEBOOK_MIMETYPE
        else:
            mimetype = mimetypes.guess_type(name)[0]
        return cls(
            path=path,
            name=name,
            type=entry_type,
            size=size,
            last_modified=last_modified,
            mimetype=mimetype,
        )

    @classmethod
    def directory(cls, path: str, name: str) -> Entry:
        return cls(path=path, name=name, type=EntryType.DIRECTORY)

    @property
    def is_directory(self) -> bool:
        return self.type is EntryType.DIRECTORY

    def with_content(self, content: Optional[EntryContent]) -> Entry:
        """Return a copy carrying ``content``."""
        return dataclasses.replace(self, content=content)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Entry):
            return self.path == other.path
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.path)


class ChangeType(enum.Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclasses.dataclass(frozen=True)
class ChangeEvent:
    """Notification emitted by a drive after a mutation.

    :param type: What happened.
    :param new_path: Path after the change (the deleted path for deletes).
    :param old_path: Previous path, for renames.
    :param entry: The resulting entry, ``None`` for deletes.
    """

    type: ChangeType
    new_path: str
    old_path: Optional[str] = None
    entry: Optional[Entry] = None


@dataclasses.dataclass(frozen=True)
class ObjectInfo:
    """Metadata of one stored object, as reported by a client.

    :param key: Bucket-qualified object key.
    :param size: Size in bytes.
    :param last_modified: Last modification time, if reported.
    :param etag: Optional entity tag.
    """

    key: str
    size: int
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class ListPage:
    """One page of a prefix listing.

    :param objects: Objects on this page, in key order.
    :param prefixes: Common prefixes (ending in the delimiter) when a delimiter was used.
    :param next_page_token: Continuation token, ``None`` on the last page.
    """

    objects: tuple[ObjectInfo, ...] = ()
    prefixes: tuple[str, ...] = ()
    next_page_token: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class Checkpoint:
    """Placeholder checkpoint; object stores keep no history for drives."""

    id: str
    last_modified: datetime
