"""Tests for archive decoding and directory derivation."""

import io
import zipfile

import pytest
from addon_manager import AddonArchive
from addon_manager import FetchError
from addon_manager import PlanError
from addon_manager import parent_dirs
from addon_manager import top_level_dirs


def make_zip(members: list[tuple[str, bytes]]) -> bytes:
    """Build an in-memory zip; names ending in '/' become directory entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as zf:
        for name, content in members:
            zf.writestr(name, content)
    return buffer.getvalue()


def test_from_bytes_preserves_entry_order():
    """Test entries keep native archive order with normalized paths."""
    data = make_zip([("Foo/", b""), ("Foo/b.lua", b"b"), ("Foo/a.lua", b"a")])

    archive = AddonArchive.from_bytes(data)

    assert [e.path for e in archive.entries] == ["Foo", "Foo/b.lua", "Foo/a.lua"]
    assert [e.is_dir for e in archive.entries] == [True, False, False]
    assert [e.path for e in archive.files] == ["Foo/b.lua", "Foo/a.lua"]


def test_from_bytes_skips_archive_root():
    """Test entries equal to the archive root are skipped."""
    data = make_zip([("./", b""), ("./Foo/a.lua", b"a")])

    archive = AddonArchive.from_bytes(data)

    assert [e.path for e in archive.entries] == ["Foo/a.lua"]


def test_from_bytes_rejects_garbage():
    """Test non-zip bytes raise FetchError."""
    with pytest.raises(FetchError, match="Not a valid zip"):
        AddonArchive.from_bytes(b"<html>not a zip</html>")


@pytest.mark.parametrize("name", ["../evil.lua", "Foo/../../evil.lua", "/etc/evil.lua"])
def test_from_bytes_rejects_escaping_paths(name):
    """Test members escaping the archive root raise FetchError."""
    data = make_zip([(name, b"x")])

    with pytest.raises(FetchError, match="escapes the archive root"):
        AddonArchive.from_bytes(data)


def test_read_returns_content():
    """Test reading member content."""
    archive = AddonArchive.from_bytes(make_zip([("Foo/a.lua", b"print('hi')")]))

    assert archive.read(archive.files[0]) == b"print('hi')"


def test_read_corrupt_member_raises_plan_error():
    """Test a CRC mismatch surfaces as PlanError, not at decode time."""
    data = make_zip([("Foo/a.lua", b"hello world")]).replace(b"hello world", b"jello world")

    archive = AddonArchive.from_bytes(data)

    with pytest.raises(PlanError, match="Foo/a.lua"):
        archive.read(archive.files[0])


def test_top_level_dirs_collects_first_segments():
    """Test each distinct first segment appears exactly once."""
    archive = AddonArchive.from_bytes(
        make_zip(
            [
                ("Foo/", b""),
                ("Foo/a.lua", b""),
                ("Foo/sub/b.lua", b""),
                ("Foo_Config/c.lua", b""),
            ]
        )
    )

    assert top_level_dirs(archive.entries) == {"Foo", "Foo_Config"}


def test_top_level_dirs_accepts_paths_and_skips_root():
    """Test plain paths work and the archive root is never reported."""
    assert top_level_dirs([".", "./", "Bar/x.toc", "Bar/y/z.lua"]) == {"Bar"}


def test_top_level_dirs_empty_archive():
    """Test an empty archive owns nothing."""
    archive = AddonArchive.from_bytes(make_zip([]))

    assert archive.entries == ()
    assert top_level_dirs(archive.entries) == set()


def test_parent_dirs_includes_every_ancestor_parents_first():
    """Test creation dirs cover full ancestor chains, ordered parents first."""
    archive = AddonArchive.from_bytes(
        make_zip(
            [
                ("Foo/sub/deep/c.lua", b""),
                ("Foo-Extra/x.lua", b""),
                ("Foo/a.lua", b""),
                ("Foo/empty/", b""),
            ]
        )
    )

    dirs = parent_dirs(archive.entries)

    assert set(dirs) == {"Foo", "Foo/sub", "Foo/sub/deep", "Foo/empty", "Foo-Extra"}
    for i, a in enumerate(dirs):
        for b in dirs[i + 1 :]:
            assert not a.startswith(b + "/"), f"{b} should precede {a}"
    assert dirs == sorted(dirs)


def corrupt_deflated_member(name: str, content: bytes) -> bytes:
    """Build a zip with one deflated member and scramble its compressed stream."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, content)
        info = zf.getinfo(name)
    data = bytearray(buffer.getvalue())
    start = info.header_offset + 30 + len(name.encode()) + len(info.extra)
    for i in range(start + 2, start + info.compress_size - 2):
        data[i] ^= 0xFF
    return bytes(data)


def mark_member_encrypted(data: bytes) -> bytes:
    """Set the encryption flag on every member's local and central header."""
    patched = bytearray(data)
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        position = patched.find(signature)
        while position != -1:
            patched[position + flag_offset] |= 0x01
            position = patched.find(signature, position + 4)
    return bytes(patched)


def test_read_corrupt_deflate_stream_raises_plan_error():
    """Test a scrambled compressed stream surfaces as PlanError."""
    data = corrupt_deflated_member("Foo/a.lua", b"local x = 1\n" * 200)

    archive = AddonArchive.from_bytes(data)

    with pytest.raises(PlanError, match="Foo/a.lua"):
        archive.read(archive.files[0])


def test_read_encrypted_member_raises_plan_error():
    """Test a password-protected member surfaces as PlanError."""
    data = mark_member_encrypted(make_zip([("Enc/a.lua", b"secret")]))

    archive = AddonArchive.from_bytes(data)

    with pytest.raises(PlanError, match="Enc/a.lua"):
        archive.read(archive.files[0])
