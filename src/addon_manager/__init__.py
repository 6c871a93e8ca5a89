"""addon-manager - Declarative addon installation and upgrades.

Public API: a fetch -> plan -> commit pipeline over one installation, with the
remote index and config store injected by the app.
"""

from .archive import AddonArchive
from .archive import ArchiveEntry
from .archive import parent_dirs
from .archive import top_level_dirs
from .changes import Change
from .changes import Link
from .changes import MakeDir
from .changes import RemoveTree
from .changes import WriteFile
from .changes import commit_change
from .config import ConfigStore
from .exceptions import AddonError
from .exceptions import CommitError
from .exceptions import ConfigError
from .exceptions import ConfigFormatError
from .exceptions import ConfigNotFoundError
from .exceptions import FetchError
from .exceptions import PackageNotFoundError
from .exceptions import PlanError
from .fetcher import FetchedPackage
from .fetcher import fetch_specification
from .index import ProjectIndex
from .pipeline import OutcomeStatus
from .pipeline import SpecOutcome
from .pipeline import UpgradeReport
from .pipeline import find_conflicts
from .pipeline import upgrade_installation
from .planner import plan_changes
from .protocols import PackageIndexProtocol
from .schema import AddonConfig
from .schema import Installation
from .schema import SourceKind
from .schema import Specification

__all__ = [
    # Schema
    "AddonConfig",
    "Installation",
    "SourceKind",
    "Specification",
    # Archive inspection
    "AddonArchive",
    "ArchiveEntry",
    "parent_dirs",
    "top_level_dirs",
    # Changes
    "Change",
    "Link",
    "MakeDir",
    "RemoveTree",
    "WriteFile",
    "commit_change",
    # Pipeline
    "FetchedPackage",
    "fetch_specification",
    "plan_changes",
    "find_conflicts",
    "upgrade_installation",
    "OutcomeStatus",
    "SpecOutcome",
    "UpgradeReport",
    # Sources and config
    "PackageIndexProtocol",
    "ProjectIndex",
    "ConfigStore",
    # Exceptions
    "AddonError",
    "CommitError",
    "ConfigError",
    "ConfigFormatError",
    "ConfigNotFoundError",
    "FetchError",
    "PackageNotFoundError",
    "PlanError",
]

__version__ = "0.1.0"
