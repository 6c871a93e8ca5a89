"""Change planning - turn old ownership plus a fetched package into changes.

Remote addons are upgraded by remove-then-recreate rather than a file diff:
everything the addon owned before is removed, then the new archive is laid
down directory by directory. This converges on exactly the archive's file set
whatever drift happened on disk.

Plan order for remote kinds:
1. RemoveTree for every previously owned top-level directory
2. MakeDir for every directory the archive implies, parents first
3. WriteFile for every file, in archive order
"""

import logging
from pathlib import Path

from .archive import parent_dirs
from .changes import Change
from .changes import Link
from .changes import MakeDir
from .changes import RemoveTree
from .changes import WriteFile
from .exceptions import PlanError
from .fetcher import FetchedPackage
from .schema import SourceKind
from .schema import Specification

logger = logging.getLogger(__name__)


def plan_changes(spec: Specification, package: FetchedPackage, base_dir: Path) -> list[Change]:
    """
    Build the ordered change list for one addon.

    Args:
        spec: Addon specification; its owned_dirs is the previous ownership
        package: Package fetched for this run
        base_dir: Installation directory

    Returns:
        Changes to commit in order

    Raises:
        PlanError: If the package has no archive to lay down, an archive
            member cannot be read, or a link has no location
    """
    if spec.type.is_remote:
        archive = package.archive
        if archive is None:
            raise PlanError(f"No archive fetched for {spec.name}", context={"name": spec.name})

        changes: list[Change] = [RemoveTree(path=base_dir / d) for d in sorted(spec.owned_dirs)]
        changes.extend(MakeDir(path=base_dir / d) for d in parent_dirs(archive.entries))
        changes.extend(WriteFile(path=base_dir / entry.path, content=archive.read(entry)) for entry in archive.files)

        logger.debug(f"Planned {len(changes)} changes for {spec.name}")
        return changes

    if spec.type == SourceKind.IGNORE:
        return []

    if spec.type == SourceKind.LINK:
        if not spec.location:
            raise PlanError(f"Link addon {spec.name} has no location", context={"name": spec.name})
        target = base_dir / spec.name
        # Symlink targets resolve against the link's directory, not the CWD
        source = Path(spec.location).expanduser().resolve()
        return [RemoveTree(path=target), Link(source=source, path=target)]

    raise PlanError(f"Unsupported source kind '{spec.type}' for {spec.name}", context={"name": spec.name})
