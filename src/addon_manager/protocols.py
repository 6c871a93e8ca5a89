"""Protocols for addon package sources.

The pipeline never talks to the network directly: apps inject an index
implementation (ProjectIndex for CurseForge/WowAce, fakes in tests).
"""

from typing import Protocol
from typing import runtime_checkable

from .schema import SourceKind


@runtime_checkable
class PackageIndexProtocol(Protocol):
    """Protocol for remote addon indexes.

    Example implementations:
    - ProjectIndex: CurseForge / WowAce project file listings over HTTP
    - In-memory fakes serving prebuilt zips for tests
    """

    async def fetch_archive(self, name: str, kind: SourceKind) -> bytes:
        """Download the most recent archive for an addon.

        Args:
            name: Addon project name
            kind: Remote source kind (curse or wowace)

        Returns:
            Raw archive bytes

        Raises:
            PackageNotFoundError: If the index lists no downloadable archive
            FetchError: If retrieval fails
        """
        ...
