"""Virtual path algebra and the key/path translator."""

from __future__ import annotations

from object_drive._errors import InvalidPath

DRIVE_SEPARATOR = ":"


def split_drive(path: str) -> tuple[str, str]:
    """Split ``"drive:rel"`` into ``("drive", "rel")``.

    A path without a drive prefix returns an empty drive name.
    """
    drive, sep, rel = path.partition(DRIVE_SEPARATOR)
    if not sep:
        return "", path
    return drive, rel


def normalize_relative(raw: str) -> str:
    """Normalize a drive-relative path.

    :raises InvalidPath: For null bytes, ``:`` or ``..`` segments.
    """
    if "\0" in raw:
        raise InvalidPath("Path contains null byte", path=raw)
    if DRIVE_SEPARATOR in raw:
        raise InvalidPath(f"Path contains {DRIVE_SEPARATOR!r}", path=raw)
    parts: list[str] = []
    for segment in raw.replace("\\", "/").split("/"):
        if segment == "" or segment == ".":
            continue
        if segment == "..":
            raise InvalidPath("Path contains '..' segment", path=raw)
        parts.append(segment)
    return "/".join(parts)


def normalize(path: str) -> str:
    """Normalize a drive-prefixed virtual path. The drive name is required."""
    drive, rel = split_drive(path)
    if not drive:
        raise InvalidPath("Virtual path has no drive prefix", path=path)
    return f"{drive}{DRIVE_SEPARATOR}{normalize_relative(rel)}"


def is_root(path: str) -> bool:
    return split_drive(path)[1] == ""


def basename(path: str) -> str:
    """Final component of a virtual path; empty for a drive root."""
    return split_drive(path)[1].rsplit("/", 1)[-1]


def parent_of(path: str) -> str:
    """Parent of a virtual path. The parent of a drive root is the root itself.

    Example: ``parent_of("s3:a/b")`` returns ``"s3:a"`` and
    ``parent_of("s3:a")`` returns ``"s3:"``.
    """
    drive, rel = split_drive(path)
    head = rel.rsplit("/", 1)[0] if "/" in rel else ""
    return f"{drive}{DRIVE_SEPARATOR}{head}"


def join(path: str, *others: str) -> str:
    """Join relative segments onto a virtual path and normalize the result."""
    drive, rel = split_drive(path)
    pieces = [rel, *others]
    return f"{drive}{DRIVE_SEPARATOR}{normalize_relative('/'.join(pieces))}"


def relative_to(path: str, ancestor: str) -> str | None:
    """Return ``path`` relative to ``ancestor``, or ``None`` if not beneath it."""
    drive, rel = split_drive(path)
    anc_drive, anc_rel = split_drive(ancestor)
    if drive != anc_drive:
        return None
    if not anc_rel:
        return rel
    if rel == anc_rel:
        return ""
    if rel.startswith(anc_rel + "/"):
        return rel[len(anc_rel) + 1 :]
    return None


class PathTranslator:
    """Maps drive-prefixed virtual paths to bucket-qualified object keys.

    :param drive_name: Name prefixing every virtual path of the drive.
    :param bucket: Bucket the drive is confined to.
    :param root_prefix: Optional key prefix inside the bucket.
    :raises ValueError: If ``drive_name`` or ``bucket`` is unusable.
    """

    __slots__ = ("_drive", "_root_key")

    def __init__(self, drive_name: str, bucket: str, root_prefix: str = "") -> None:
        if not drive_name or DRIVE_SEPARATOR in drive_name or "/" in drive_name:
            raise ValueError(f"Invalid drive name: {drive_name!r}")
        if not bucket or not bucket.strip() or "/" in bucket:
            raise ValueError("bucket must be a non-empty name without '/'")
        prefix = normalize_relative(root_prefix)
        self._drive = drive_name
        self._root_key = f"{bucket}/{prefix}" if prefix else bucket

    @property
    def drive_name(self) -> str:
        return self._drive

    @property
    def root_key(self) -> str:
        """Key of the drive root, without a trailing slash."""
        return self._root_key

    @property
    def root(self) -> str:
        """Virtual path of the drive root."""
        return f"{self._drive}{DRIVE_SEPARATOR}"

    def local(self, virtual_path: str) -> str:
        """Drive-relative, normalized form of ``virtual_path``.

        Accepts a path prefixed with this drive's name or a bare relative path.

        :raises InvalidPath: If the path belongs to another drive or is unsafe.
        """
        drive, rel = split_drive(virtual_path)
        if drive and drive != self._drive:
            raise InvalidPath(
                f"Path belongs to drive {drive!r}, not {self._drive!r}",
                path=virtual_path,
            )
        return normalize_relative(rel)

    def virtual(self, virtual_path: str) -> str:
        """Normalized, drive-prefixed form of ``virtual_path``."""
        return f"{self.root}{self.local(virtual_path)}"

    def to_key(self, virtual_path: str) -> str:
        """Object key for ``virtual_path``. The root maps to :attr:`root_key`."""
        rel = self.local(virtual_path)
        if not rel:
            return self._root_key
        return f"{self._root_key}/{rel}"

    def to_virtual_path(self, key: str) -> str:
        """Virtual path for an object key. A trailing ``/`` (marker) is dropped.

        :raises InvalidPath: If the key lies outside the drive root or cannot
            be expressed as a virtual path.
        """
        if key.rstrip("/") == self._root_key:
            return self.root
        prefix = self._root_key + "/"
        if not key.startswith(prefix):
            raise InvalidPath(f"Key is not under drive root {self._root_key!r}", path=key)
        rel = key[len(prefix) :].rstrip("/")
        normalized = normalize_relative(rel)
        if normalized != rel:
            raise InvalidPath("Key has no canonical virtual path", path=key)
        return f"{self.root}{normalized}"

    def dir_prefix(self, virtual_path: str) -> str:
        """Listing prefix for the directory at ``virtual_path`` (ends in ``/``)."""
        return self.to_key(virtual_path) + "/"

    def __repr__(self) -> str:
        return f"PathTranslator(drive={self._drive!r}, root_key={self._root_key!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PathTranslator):
            return self._drive == other._drive and self._root_key == other._root_key
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._drive, self._root_key))
