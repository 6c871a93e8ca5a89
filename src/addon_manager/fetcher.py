"""Fetch phase - resolve each specification's source into a package.

Fetching only builds in-memory state. Nothing here touches the installation
directory, and the specification itself is left unmodified: ownership moves
to the new directories only once the pipeline has planned the upgrade.
"""

import logging
from dataclasses import dataclass

from .archive import AddonArchive
from .archive import top_level_dirs
from .exceptions import FetchError
from .protocols import PackageIndexProtocol
from .schema import SourceKind
from .schema import Specification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedPackage:
    """Result of fetching one specification.

    owned_dirs is the top-level directory set the addon will own after this
    run. archive is None for ignore and link kinds.
    """

    name: str
    kind: SourceKind
    owned_dirs: frozenset[str]
    archive: AddonArchive | None = None


async def fetch_specification(spec: Specification, index: PackageIndexProtocol) -> FetchedPackage:
    """
    Fetch a specification's current package.

    Args:
        spec: Addon specification
        index: Remote index used for curse/wowace kinds

    Returns:
        FetchedPackage with the new owned directories

    Raises:
        FetchError: If the archive cannot be retrieved or decoded
    """
    if spec.type.is_remote:
        logger.debug(f"Fetching {spec.name} from {spec.type}")
        try:
            data = await index.fetch_archive(spec.name, spec.type)
            archive = AddonArchive.from_bytes(data)
        except FetchError as e:
            e.context.setdefault("name", spec.name)
            raise
        except Exception as e:
            raise FetchError(f"Unable to fetch {spec.name}: {e}", context={"name": spec.name}) from e
        owned_dirs = frozenset(top_level_dirs(archive.entries))
        logger.info(f"Fetched {spec.name}: {len(archive.entries)} entries, owns {sorted(owned_dirs)}")
        return FetchedPackage(name=spec.name, kind=spec.type, owned_dirs=owned_dirs, archive=archive)

    # ignore and link track their nominal directory without any network access
    return FetchedPackage(name=spec.name, kind=spec.type, owned_dirs=frozenset({spec.name}))
