"""Upgrade pipeline - fetch, validate, then plan and commit every addon.

One run covers exactly one installation and has three barriers:

1. Fetch phase: one concurrent task per addon; all must finish.
2. Conflict check: addons whose new top-level directories overlap are
   skipped, since their writes would interleave in the same tree.
3. Plan + commit phase: one concurrent task per remaining addon; each
   commits its own changes strictly in plan order.

Addons are independent. A failure in one is recorded in its outcome and
never stops or rolls back another. Worker tasks do not print; the
orchestrator logs failures and returns an UpgradeReport for the caller.
"""

import asyncio
import logging
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel
from pydantic import Field

from .changes import commit_change
from .exceptions import CommitError
from .exceptions import FetchError
from .exceptions import PlanError
from .fetcher import FetchedPackage
from .fetcher import fetch_specification
from .planner import plan_changes
from .protocols import PackageIndexProtocol
from .schema import Installation
from .schema import Specification

logger = logging.getLogger(__name__)


class OutcomeStatus(StrEnum):
    """Final state of one addon after a run."""

    OK = "ok"
    FETCH_FAILED = "fetch_failed"
    CONFLICT = "conflict"
    PLAN_FAILED = "plan_failed"
    COMMIT_FAILED = "commit_failed"


class SpecOutcome(BaseModel):
    """What happened to one addon during a run."""

    name: str
    status: OutcomeStatus
    errors: list[str] = Field(default_factory=list)
    planned: int = 0
    committed: int = 0

    @property
    def ok(self) -> bool:
        """True if every planned change was committed."""
        return self.status == OutcomeStatus.OK


class UpgradeReport(BaseModel):
    """Per-addon outcomes of one run, in specification order."""

    outcomes: list[SpecOutcome] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True if every addon finished without errors."""
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def failures(self) -> list[SpecOutcome]:
        """Outcomes of addons that did not finish ok, in specification order."""
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def get(self, name: str) -> SpecOutcome | None:
        """Return the outcome for addon `name`, or None if it was not part of the run."""
        for outcome in self.outcomes:
            if outcome.name == name:
                return outcome
        return None


def find_conflicts(packages: list[FetchedPackage]) -> dict[str, set[str]]:
    """
    Find addons whose owned directory sets intersect.

    Args:
        packages: Fetched packages of one installation

    Returns:
        Mapping of addon name to the names it conflicts with (only
        conflicting addons appear)
    """
    owners: dict[str, list[str]] = {}
    for package in packages:
        for directory in package.owned_dirs:
            owners.setdefault(directory.lower(), []).append(package.name)

    conflicts: dict[str, set[str]] = {}
    for names in owners.values():
        if len(names) < 2:
            continue
        for name in names:
            conflicts.setdefault(name, set()).update(n for n in names if n != name)
    return conflicts


async def _fetch(spec: Specification, index: PackageIndexProtocol) -> FetchedPackage | SpecOutcome:
    try:
        return await fetch_specification(spec, index)
    except FetchError as e:
        return SpecOutcome(name=spec.name, status=OutcomeStatus.FETCH_FAILED, errors=[e.message])


def _plan_and_commit(spec: Specification, package: FetchedPackage, base_dir: Path) -> SpecOutcome:
    # Runs in a worker thread: planning decompresses archive members
    try:
        changes = plan_changes(spec, package, base_dir)
    except PlanError as e:
        return SpecOutcome(name=spec.name, status=OutcomeStatus.PLAN_FAILED, errors=[e.message])
    except Exception as e:
        return SpecOutcome(
            name=spec.name,
            status=OutcomeStatus.PLAN_FAILED,
            errors=[f"Unable to plan {spec.name}: {e}"],
        )

    # The plan already captured the previous ownership; hand over to the new set
    spec.owned_dirs = set(package.owned_dirs)

    committed = 0
    errors = []
    for change in changes:
        try:
            commit_change(change)
            committed += 1
        except CommitError as e:
            errors.append(e.message)

    return SpecOutcome(
        name=spec.name,
        status=OutcomeStatus.COMMIT_FAILED if errors else OutcomeStatus.OK,
        errors=errors,
        planned=len(changes),
        committed=committed,
    )


async def _apply(spec: Specification, package: FetchedPackage, base_dir: Path) -> SpecOutcome:
    return await asyncio.to_thread(_plan_and_commit, spec, package, base_dir)


async def upgrade_installation(
    installation: Installation,
    index: PackageIndexProtocol,
    detect_conflicts: bool = True,
) -> UpgradeReport:
    """
    Upgrade every addon of one installation.

    Args:
        installation: Target directory and addon specifications; owned_dirs
            of successfully planned addons are updated in place
        index: Remote index for curse/wowace addons
        detect_conflicts: Skip addons whose new directories overlap

    Returns:
        UpgradeReport with one outcome per addon

    Example:
        >>> report = await upgrade_installation(config.installations[0], ProjectIndex())
        >>> for outcome in report.failures:
        ...     print(outcome.name, outcome.errors)
    """
    base_dir = installation.dir
    specs = installation.addons
    logger.info(f"Upgrading {len(specs)} addons in {base_dir}")

    # Phase 1: fetch
    fetched = await asyncio.gather(*(_fetch(spec, index) for spec in specs))
    outcomes: list[SpecOutcome | None] = [None] * len(specs)
    ready: list[tuple[int, FetchedPackage]] = []
    for i, result in enumerate(fetched):
        if isinstance(result, SpecOutcome):
            outcomes[i] = result
        else:
            ready.append((i, result))

    # Conflict barrier
    if detect_conflicts:
        conflicts = find_conflicts([package for _, package in ready])
        for i, package in ready:
            if package.name in conflicts:
                others = ", ".join(sorted(conflicts[package.name]))
                outcomes[i] = SpecOutcome(
                    name=package.name,
                    status=OutcomeStatus.CONFLICT,
                    errors=[f"Owned directories overlap with: {others}"],
                )
        ready = [(i, package) for i, package in ready if package.name not in conflicts]

    # Phase 2: plan + commit
    applied = await asyncio.gather(*(_apply(specs[i], package, base_dir) for i, package in ready))
    for (i, _), outcome in zip(ready, applied):
        outcomes[i] = outcome

    report = UpgradeReport(outcomes=outcomes)
    for outcome in report.failures:
        for error in outcome.errors:
            logger.error(f"{outcome.name} ({outcome.status}): {error}")
    logger.info(f"Upgrade finished: {len(report.outcomes) - len(report.failures)}/{len(report.outcomes)} addons ok")
    return report
