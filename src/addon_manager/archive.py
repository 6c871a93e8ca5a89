"""Archive inspection - decode addon zips and derive the directories they create.

Two directory notions live here and they are intentionally different:

- top_level_dirs(): the first path segment of every entry. This is what an
  addon *owns* and what gets removed wholesale on the next upgrade.
- parent_dirs(): every ancestor directory of every entry. This is what has to
  be *created*, parents first, before files can be written.
"""

import io
import logging
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import PurePosixPath

from .exceptions import FetchError
from .exceptions import PlanError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    """One archive member, addressed by its normalized forward-slash path."""

    path: str
    is_dir: bool
    member: str


def _normalize(name: str) -> str:
    """Normalize a zip member name to a relative forward-slash path ('' for the root)."""
    path = name.replace("\\", "/").rstrip("/")
    while path.startswith("./"):
        path = path[2:]
    return "" if path == "." else path


def _is_unsafe(path: str) -> bool:
    parts = PurePosixPath(path).parts
    return path.startswith("/") or ":" in parts[0] or ".." in parts


class AddonArchive:
    """
    Decoded addon archive.

    Entries keep the archive's native order, which is also the order files
    get written in.

    Example:
        >>> archive = AddonArchive.from_bytes(zip_bytes)
        >>> [e.path for e in archive.entries]
        ['Foo', 'Foo/a.lua', 'Foo/sub/b.lua']
    """

    def __init__(self, zip_file: zipfile.ZipFile, entries: tuple[ArchiveEntry, ...]):
        self._zip = zip_file
        self.entries = entries

    @classmethod
    def from_bytes(cls, data: bytes) -> "AddonArchive":
        """
        Decode a zip byte stream.

        Args:
            data: Raw archive bytes

        Returns:
            AddonArchive with normalized entries (the archive root is skipped)

        Raises:
            FetchError: If the bytes are not a readable zip, or a member path
                escapes the archive root
        """
        try:
            zip_file = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise FetchError(f"Not a valid zip archive: {e}") from e

        entries = []
        for info in zip_file.infolist():
            path = _normalize(info.filename)
            if not path:
                continue
            if _is_unsafe(path):
                raise FetchError(
                    f"Archive member escapes the archive root: {info.filename}",
                    context={"member": info.filename},
                )
            entries.append(ArchiveEntry(path=path, is_dir=info.is_dir(), member=info.filename))

        logger.debug(f"Decoded archive with {len(entries)} entries")
        return cls(zip_file, tuple(entries))

    @property
    def files(self) -> list[ArchiveEntry]:
        """Non-directory entries in archive order."""
        return [entry for entry in self.entries if not entry.is_dir]

    def read(self, entry: ArchiveEntry) -> bytes:
        """
        Read one entry's content.

        Raises:
            PlanError: If the member cannot be decompressed, fails its CRC check,
                or is encrypted
        """
        try:
            return self._zip.read(entry.member)
        except (zipfile.BadZipFile, zlib.error, RuntimeError, OSError, EOFError, NotImplementedError) as e:
            raise PlanError(f"Cannot read archive member {entry.path}: {e}", context={"member": entry.path}) from e


def top_level_dirs(entries) -> set[str]:
    """
    Collect the top-level segment of every entry.

    Args:
        entries: Archive entries (or plain relative path strings)

    Returns:
        Deduplicated set of first path segments; empty for an empty archive
    """
    dirs = set()
    for entry in entries:
        path = _normalize(entry if isinstance(entry, str) else entry.path)
        if not path:
            continue
        dirs.add(PurePosixPath(path).parts[0])
    return dirs


def parent_dirs(entries) -> list[str]:
    """
    Collect every directory implied by the entries, sorted ascending.

    Includes explicit directory entries and every ancestor of every entry.
    Plain string order puts a path before every path it prefixes, so a
    parent always precedes its children.

    Args:
        entries: Archive entries

    Returns:
        Sorted list of relative forward-slash directory paths
    """
    dirs = set()
    for entry in entries:
        path = PurePosixPath(entry.path)
        if entry.is_dir:
            dirs.add(path.as_posix())
        for parent in path.parents:
            if parent.as_posix() != ".":
                dirs.add(parent.as_posix())
    return sorted(dirs)
