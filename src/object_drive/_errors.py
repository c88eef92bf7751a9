"""Normalized error hierarchy for object_drive."""

from __future__ import annotations

from typing import Optional


class DriveError(Exception):
    """Base class for all object_drive errors.

    :param message: Human-readable error description.
    :param path: The virtual path or object key involved, if any.
    :param backend: The client name involved, if any.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, backend: Optional[str] = None) -> None:
        self.path = path
        self.backend = backend
        super().__init__(message)

    def _context(self) -> list[str]:
        parts = []
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.backend is not None:
            parts.append(f"backend={self.backend!r}")
        return parts

    def __str__(self) -> str:
        message = super().__str__()
        parts = [message, *self._context()] if message else self._context()
        return " | ".join(parts)

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(self.args[0] if self.args else ""), *self._context()]
        return f"{cls}({', '.join(args)})"


class NotFound(DriveError):
    """Raised when neither a file nor a non-empty directory exists at a path."""


class InvalidPath(DriveError):
    """Raised for malformed, unsafe, or out-of-scope paths. Never retried."""


class ListTruncated(DriveError):
    """Raised when a listing needs more pages than the drive allows.

    :param pages: Number of pages fetched before giving up.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        backend: Optional[str] = None,
        pages: int = 0,
    ) -> None:
        self.pages = pages
        super().__init__(message, path=path, backend=backend)

    def _context(self) -> list[str]:
        return [*super()._context(), f"pages={self.pages}"]


class PartialDelete(DriveError):
    """Raised when some objects of a directory delete could not be removed.

    Successful deletes are not rolled back.

    :param failed_keys: Object keys still present after the delete.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        backend: Optional[str] = None,
        failed_keys: tuple[str, ...] = (),
    ) -> None:
        self.failed_keys = tuple(failed_keys)
        super().__init__(message, path=path, backend=backend)

    def _context(self) -> list[str]:
        return [*super()._context(), f"failed_keys={list(self.failed_keys)!r}"]


class RenameConflict(DriveError):
    """Raised when the target of a rename, save or directory creation is occupied.

    A rename target is occupied by anything at all; a save target by a
    directory; a new directory by a file. Nothing is written.
    """


class PartialRename(DriveError):
    """Raised when a multi-object rename stopped part way.

    Both trees may be partially present; nothing is rolled back.

    :param completed: Source keys that were copied and removed.
    :param failed: Source keys that were not moved.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        backend: Optional[str] = None,
        completed: tuple[str, ...] = (),
        failed: tuple[str, ...] = (),
    ) -> None:
        self.completed = tuple(completed)
        self.failed = tuple(failed)
        super().__init__(message, path=path, backend=backend)

    def _context(self) -> list[str]:
        return [*super()._context(), f"completed={len(self.completed)}", f"failed={list(self.failed)!r}"]


class Timeout(DriveError):
    """Raised when a transport request exceeded its deadline after retries."""


class TransportError(DriveError):
    """Raised for network or authorization failures from the object store.

    :param cause: The underlying library exception, if any.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        backend: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.cause = cause
        super().__init__(message, path=path, backend=backend)

    def _context(self) -> list[str]:
        parts = super()._context()
        if self.cause is not None:
            parts.append(f"cause={type(self.cause).__name__}")
        return parts
