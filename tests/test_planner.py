"""Tests for change planning."""

import io
import zipfile
from pathlib import Path

import pytest
from addon_manager import AddonArchive
from addon_manager import FetchedPackage
from addon_manager import Link
from addon_manager import MakeDir
from addon_manager import PlanError
from addon_manager import RemoveTree
from addon_manager import SourceKind
from addon_manager import Specification
from addon_manager import WriteFile
from addon_manager import plan_changes
from addon_manager import top_level_dirs

BASE = Path("/wow/Interface/AddOns")


def make_package(name: str, members: list[tuple[str, bytes]], kind=SourceKind.CURSE) -> FetchedPackage:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for member, content in members:
            zf.writestr(member, content)
    archive = AddonArchive.from_bytes(buffer.getvalue())
    return FetchedPackage(name=name, kind=kind, owned_dirs=frozenset(top_level_dirs(archive.entries)), archive=archive)


def test_remote_plan_exact_sequence():
    """Test remove, then mkdir parents first, then files in archive order."""
    spec = Specification(name="foo", type=SourceKind.CURSE, owned_dirs={"Foo"})
    package = make_package("foo", [("Foo/a.lua", b"a"), ("Foo/sub/b.lua", b"b")])

    changes = plan_changes(spec, package, BASE)

    assert changes == [
        RemoveTree(path=BASE / "Foo"),
        MakeDir(path=BASE / "Foo"),
        MakeDir(path=BASE / "Foo/sub"),
        WriteFile(path=BASE / "Foo/a.lua", content=b"a"),
        WriteFile(path=BASE / "Foo/sub/b.lua", content=b"b"),
    ]


def test_remote_plan_removes_previous_not_new_ownership():
    """Test the removal step uses the directories owned before this run."""
    spec = Specification(name="foo", type=SourceKind.WOWACE, owned_dirs={"OldFoo", "Foo"})
    package = make_package("foo", [("Foo/a.lua", b"a")], kind=SourceKind.WOWACE)

    changes = plan_changes(spec, package, BASE)

    removals = [c for c in changes if isinstance(c, RemoveTree)]
    assert removals == [RemoveTree(path=BASE / "Foo"), RemoveTree(path=BASE / "OldFoo")]
    assert changes[: len(removals)] == removals


def test_remote_plan_first_install_has_no_removals():
    """Test an addon that owns nothing yet emits no RemoveTree."""
    spec = Specification(name="foo", type=SourceKind.CURSE)
    package = make_package("foo", [("Foo/a.lua", b"a")])

    changes = plan_changes(spec, package, BASE)

    assert changes == [MakeDir(path=BASE / "Foo"), WriteFile(path=BASE / "Foo/a.lua", content=b"a")]


def test_remote_plan_files_follow_archive_order():
    """Test writes are not re-sorted."""
    spec = Specification(name="foo", type=SourceKind.CURSE)
    package = make_package("foo", [("Foo/z.lua", b""), ("Foo/deep/x/y.lua", b""), ("Foo/a.lua", b"")])

    changes = plan_changes(spec, package, BASE)

    writes = [c.path for c in changes if isinstance(c, WriteFile)]
    assert writes == [BASE / "Foo/z.lua", BASE / "Foo/deep/x/y.lua", BASE / "Foo/a.lua"]


def test_remote_plan_mkdirs_precede_children():
    """Test every MakeDir comes after its parent's MakeDir."""
    spec = Specification(name="foo", type=SourceKind.CURSE)
    package = make_package(
        "foo",
        [("Foo/b/c/d.lua", b""), ("Foo/a/x.lua", b""), ("Foo.Extra/e.lua", b""), ("Foo/b/e/", b"")],
    )

    mkdirs = [c.path for c in plan_changes(spec, package, BASE) if isinstance(c, MakeDir)]

    for i, path in enumerate(mkdirs):
        if path.parent != BASE:
            assert path.parent in mkdirs[:i]


def test_remote_plan_without_archive_raises():
    """Test a remote addon with no archive cannot be planned."""
    spec = Specification(name="foo", type=SourceKind.CURSE, owned_dirs={"Foo"})
    package = FetchedPackage(name="foo", kind=SourceKind.CURSE, owned_dirs=frozenset())

    with pytest.raises(PlanError, match="No archive"):
        plan_changes(spec, package, BASE)


def test_link_plan():
    """Test link addons replace the target with a link to location."""
    spec = Specification(name="Bar", type=SourceKind.LINK, location="/pkgs/Bar")
    package = FetchedPackage(name="Bar", kind=SourceKind.LINK, owned_dirs=frozenset({"Bar"}))

    changes = plan_changes(spec, package, BASE)

    assert changes == [RemoveTree(path=BASE / "Bar"), Link(source=Path("/pkgs/Bar"), path=BASE / "Bar")]


def test_link_plan_resolves_relative_location(tmp_path, monkeypatch):
    """Test a relative location becomes absolute against the working directory."""
    monkeypatch.chdir(tmp_path)
    spec = Specification(name="Bar", type=SourceKind.LINK, location="dev/Bar")
    package = FetchedPackage(name="Bar", kind=SourceKind.LINK, owned_dirs=frozenset({"Bar"}))

    changes = plan_changes(spec, package, BASE)

    assert changes[1] == Link(source=(tmp_path / "dev" / "Bar").resolve(), path=BASE / "Bar")
    assert changes[1].source.is_absolute()


def test_link_plan_requires_location():
    """Test link addons without location raise PlanError."""
    spec = Specification(name="Bar", type=SourceKind.LINK)
    package = FetchedPackage(name="Bar", kind=SourceKind.LINK, owned_dirs=frozenset({"Bar"}))

    with pytest.raises(PlanError, match="no location"):
        plan_changes(spec, package, BASE)


def test_ignore_plan_is_empty(tmp_path):
    """Test ignored addons never produce changes, whatever is on disk."""
    (tmp_path / "Skipped").mkdir()
    spec = Specification(name="Skipped", type=SourceKind.IGNORE, owned_dirs={"Skipped"})
    package = FetchedPackage(name="Skipped", kind=SourceKind.IGNORE, owned_dirs=frozenset({"Skipped"}))

    assert plan_changes(spec, package, tmp_path) == []
