"""Filesystem changes - the atomic, committable steps of an addon upgrade.

The variant set is closed: RemoveTree, MakeDir, WriteFile and Link. Each is an
immutable value tagged by `kind`, and commit_change() is the single place that
turns a change into a side effect.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Annotated
from typing import Literal

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .exceptions import CommitError

logger = logging.getLogger(__name__)


class _BaseChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    def commit(self) -> None:
        """Apply this change to the filesystem.

        Raises:
            CommitError: If the underlying filesystem operation fails
        """
        commit_change(self)  # type: ignore[arg-type]


class RemoveTree(_BaseChange):
    """Recursively delete `path`; a missing path is not an error."""

    kind: Literal["remove_tree"] = "remove_tree"
    path: Path


class MakeDir(_BaseChange):
    """Create the single directory `path`; its parent must already exist."""

    kind: Literal["make_dir"] = "make_dir"
    path: Path


class WriteFile(_BaseChange):
    """Create or overwrite the file at `path`; its parent must already exist."""

    kind: Literal["write_file"] = "write_file"
    path: Path
    content: bytes = Field(repr=False)


class Link(_BaseChange):
    """Make `path` refer to the existing `source`."""

    kind: Literal["link"] = "link"
    source: Path
    path: Path


Change = Annotated[RemoveTree | MakeDir | WriteFile | Link, Field(discriminator="kind")]


def _remove_tree(path: Path) -> None:
    # is_symlink first: a linked addon dir must be unlinked, not emptied
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _link(source: Path, path: Path) -> None:
    # Directories cannot be hard linked; fall back to a directory symlink
    if source.is_dir():
        os.symlink(source, path, target_is_directory=True)
    else:
        os.link(source, path)


def commit_change(change: Change) -> None:
    """
    Apply one change to the filesystem.

    Args:
        change: Change to apply

    Raises:
        CommitError: If the filesystem operation fails (permissions, missing
            parent directory, disk full, ...)
    """
    try:
        if change.kind == "remove_tree":
            _remove_tree(change.path)
        elif change.kind == "make_dir":
            change.path.mkdir(exist_ok=True)
        elif change.kind == "write_file":
            change.path.write_bytes(change.content)
        elif change.kind == "link":
            _link(change.source, change.path)
        else:
            raise CommitError(f"Unknown change kind: {change.kind}", context={"change": change.kind})
    except OSError as e:
        raise CommitError(
            f"Failed to {change.kind.replace('_', ' ')} {change.path}: {e}",
            context={"change": change.kind, "path": str(change.path)},
        ) from e

    logger.debug(f"Committed {change.kind}: {change.path}")
