"""Tests for archive classification and extraction."""

import shutil
from pathlib import Path

import pytest

from bootkit.exceptions import ExtractionFailed, UnsupportedArchiveFormat
from bootkit.extract import ArchiveState, Extractor, classify
from bootkit.extract import extractor as extractor_module

requires_tools = pytest.mark.skipif(
    not all(shutil.which(tool) for tool in ("gunzip", "tar", "unzip")),
    reason="gunzip, tar and unzip are required",
)


@pytest.mark.parametrize(
    ("name", "state"),
    [
        ("tool.zip", ArchiveState.ZIPPED),
        ("tool.tar.gz", ArchiveState.COMPRESSED),
        ("tool.tgz", ArchiveState.COMPRESSED),
        ("tool.TAR.BZ2", ArchiveState.COMPRESSED),
        ("tool.dmg", ArchiveState.MOUNTED),
        ("tool.pkg", ArchiveState.PASS_THROUGH),
        ("tool.safariextz", ArchiveState.PASS_THROUGH),
    ],
)
def test_classify(name, state):
    assert classify(Path(name)) is state


def test_bare_tar_is_only_accepted_when_nested():
    assert classify(Path("tool.tar"), nested=True) is ArchiveState.TARRED
    with pytest.raises(UnsupportedArchiveFormat):
        classify(Path("tool.tar"))


@pytest.mark.parametrize("name", ["tool.rar", "tool.7z", "README"])
def test_unsupported_formats(name):
    with pytest.raises(UnsupportedArchiveFormat):
        classify(Path(name))


@pytest.mark.asyncio
async def test_extract_rejects_unknown_suffix(tmp_path):
    payload = tmp_path / "tool.rar"
    payload.write_bytes(b"rar")

    with pytest.raises(UnsupportedArchiveFormat):
        async with Extractor().extract(payload):
            pass


@requires_tools
@pytest.mark.asyncio
async def test_tar_gz_is_decompressed_then_untarred(tmp_path, make_tar_gz):
    payload = make_tar_gz(
        tmp_path / "tool-1.0.tar.gz",
        {"tool-1.0/bin/tool": b"#!/bin/sh\n", "tool-1.0/README": b"hi\n"},
    )

    async with Extractor().extract(payload) as root:
        assert root == tmp_path
        assert (root / "tool-1.0" / "bin" / "tool").read_bytes() == b"#!/bin/sh\n"
        assert (root / "tool-1.0" / "README").is_file()


@requires_tools
@pytest.mark.asyncio
async def test_tgz_is_decompressed_then_untarred(tmp_path, make_tar_gz):
    payload = make_tar_gz(tmp_path / "tool.tgz", {"bin/tool": b"x"})

    async with Extractor().extract(payload) as root:
        assert (root / "bin" / "tool").read_bytes() == b"x"


@requires_tools
@pytest.mark.asyncio
async def test_plain_gz_yields_decompressed_file(tmp_path, make_gz):
    payload = make_gz(tmp_path / "tool.gz", b"binary-contents")

    async with Extractor().extract(payload) as root:
        assert root == tmp_path
        assert (root / "tool").read_bytes() == b"binary-contents"
        assert not payload.exists()


@requires_tools
@pytest.mark.asyncio
async def test_zip_is_unpacked_into_scoped_sibling(tmp_path, make_zip):
    payload = make_zip(tmp_path / "tool.zip", {"bin/tool": b"x", "lib/libtool.so": b"y"})

    async with Extractor().extract(payload) as root:
        assert root.parent == tmp_path
        assert root != tmp_path
        assert (root / "bin" / "tool").read_bytes() == b"x"
        assert (root / "lib" / "libtool.so").is_file()

    assert not root.exists()
    assert payload.exists()


@requires_tools
@pytest.mark.asyncio
async def test_corrupt_archive_raises_extraction_failed(tmp_path):
    payload = tmp_path / "broken.zip"
    payload.write_bytes(b"not a zip file")

    with pytest.raises(ExtractionFailed) as exc_info:
        async with Extractor().extract(payload):
            pass

    assert exc_info.value.returncode != 0


@pytest.mark.asyncio
async def test_pass_through_yields_payload_directory(tmp_path):
    payload = tmp_path / "Installer.pkg"
    payload.write_bytes(b"xar!")

    async with Extractor().extract(payload) as root:
        assert root == tmp_path
        assert (root / "Installer.pkg").is_file()


@pytest.mark.asyncio
async def test_missing_tool_is_reported(tmp_path, monkeypatch):
    monkeypatch.setitem(
        extractor_module.DECOMPRESSORS, ".xz", (["bootkit-no-such-unxz"], "")
    )
    payload = tmp_path / "tool.xz"
    payload.write_bytes(b"xz")

    with pytest.raises(ExtractionFailed) as exc_info:
        async with Extractor().extract(payload):
            pass

    assert exc_info.value.returncode == 127


class FakeHdiutil:
    def __init__(self, mount_point: str, fail_detach: bool = False):
        self.mount_point = mount_point
        self.fail_detach = fail_detach
        self.calls: list[list[str]] = []

    async def __call__(self, argv, cwd=None):
        self.calls.append(argv)
        if argv[:2] == ["hdiutil", "attach"]:
            return (
                "/dev/disk4\tGUID_partition_scheme\t\n"
                f"/dev/disk4s1\tApple_HFS\t{self.mount_point}\n"
            )
        if self.fail_detach:
            raise ExtractionFailed(argv, 16, "resource busy")
        return ""


@pytest.mark.asyncio
async def test_dmg_is_mounted_and_detached(tmp_path, monkeypatch):
    hdiutil = FakeHdiutil("/Volumes/Tool 1.0")
    monkeypatch.setattr(extractor_module, "run_tool", hdiutil)
    payload = tmp_path / "tool.dmg"
    payload.write_bytes(b"dmg")

    async with Extractor().extract(payload) as root:
        assert root == Path("/Volumes/Tool 1.0")

    assert hdiutil.calls[-1] == ["hdiutil", "detach", "/Volumes/Tool 1.0"]


@pytest.mark.asyncio
async def test_dmg_is_detached_when_install_fails(tmp_path, monkeypatch):
    hdiutil = FakeHdiutil("/Volumes/Tool")
    monkeypatch.setattr(extractor_module, "run_tool", hdiutil)
    payload = tmp_path / "tool.dmg"
    payload.write_bytes(b"dmg")

    with pytest.raises(RuntimeError):
        async with Extractor().extract(payload):
            raise RuntimeError("copy failed")

    assert hdiutil.calls[-1] == ["hdiutil", "detach", "/Volumes/Tool"]


@pytest.mark.asyncio
async def test_failed_detach_is_logged_not_raised(tmp_path, monkeypatch, caplog):
    hdiutil = FakeHdiutil("/Volumes/Tool", fail_detach=True)
    monkeypatch.setattr(extractor_module, "run_tool", hdiutil)
    payload = tmp_path / "tool.dmg"
    payload.write_bytes(b"dmg")

    async with Extractor().extract(payload):
        pass

    assert "Failed to detach /Volumes/Tool" in caplog.text


@pytest.mark.asyncio
async def test_fetch_and_extract_needs_a_fetcher():
    from bootkit.models.fetch import FetchRequest

    with pytest.raises(RuntimeError):
        async with Extractor().fetch_and_extract(FetchRequest("https://e.com/a.zip")):
            pass
