"""Addon configuration schema - installations and their addon specifications.

The persisted shape mirrors the YAML document handled by ConfigStore:

    installations:
      - dir: C:\\Program Files (x86)\\World of Warcraft\\Interface\\AddOns
        addons:
          - name: deadly-boss-mods
            type: curse
            owned_dirs: [DBM-Core, DBM-GUI]
          - name: MyAddon
            type: link
            location: D:\\dev\\MyAddon
"""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_serializer


class SourceKind(StrEnum):
    """Where an addon's contents come from."""

    CURSE = "curse"
    WOWACE = "wowace"
    IGNORE = "ignore"
    LINK = "link"

    @property
    def is_remote(self) -> bool:
        """True for kinds fetched as archives from a remote project index."""
        return self in (SourceKind.CURSE, SourceKind.WOWACE)


class Specification(BaseModel):
    """
    One addon's identity, provenance and directory ownership.

    owned_dirs is the set of top-level directories (relative to the
    installation dir) this addon controls. It stays mutable: the pipeline
    replaces it once a new archive has been fetched and planned, and the
    next run uses it as the "old" side of the diff.
    """

    name: str
    type: SourceKind
    location: str | None = None
    owned_dirs: set[str] = Field(default_factory=set)

    @field_serializer("owned_dirs")
    def _serialize_owned_dirs(self, owned_dirs: set[str]) -> list[str]:
        return sorted(owned_dirs)


class Installation(BaseModel):
    """A target directory and the addons installed into it."""

    dir: Path
    addons: list[Specification] = Field(default_factory=list)

    def get_addon(self, name: str) -> Specification | None:
        """Return the specification named `name`, or None."""
        for spec in self.addons:
            if spec.name == name:
                return spec
        return None


class AddonConfig(BaseModel):
    """Top-level configuration document."""

    installations: list[Installation] = Field(default_factory=list)

    def get_installation(self, install_dir: Path | str | None = None) -> Installation | None:
        """
        Find an installation by directory.

        Args:
            install_dir: Installation directory, or None for the first installation

        Returns:
            Matching installation, or None if there is no match
        """
        if install_dir is None:
            return self.installations[0] if self.installations else None

        wanted = Path(install_dir)
        for installation in self.installations:
            if installation.dir == wanted:
                return installation
        return None
