"""Tests for privileged filesystem operations."""

import logging
from pathlib import Path

import pytest

from bootkit.exceptions import PrivilegedCommandFailed
from bootkit.system import Operation, OperationKind, PrivilegedExecutor, is_dir_empty


def test_operation_argv():
    dest = Path("/usr/local/bin/tool")
    src = Path("/tmp/x/tool")

    assert Operation(OperationKind.MKDIR, dest.parent).argv() == [
        "mkdir", "-p", "--", "/usr/local/bin",
    ]
    assert Operation(OperationKind.COPY, dest, src).argv() == [
        "cp", "--", "/tmp/x/tool", "/usr/local/bin/tool",
    ]
    assert Operation(OperationKind.COPY, dest, src, recursive=True).argv() == [
        "cp", "-R", "--", "/tmp/x/tool/.", "/usr/local/bin/tool",
    ]
    assert Operation(OperationKind.REMOVE_FILE, dest).argv() == [
        "rm", "--", "/usr/local/bin/tool",
    ]
    assert Operation(OperationKind.REMOVE_DIR, dest.parent).argv() == [
        "rmdir", "--", "/usr/local/bin",
    ]


def test_copy_requires_source():
    with pytest.raises(ValueError):
        Operation(OperationKind.COPY, Path("/usr/local/bin/tool"))


def test_operation_str():
    op = Operation(OperationKind.COPY, Path("/d/tool"), Path("/s/tool"))
    assert str(op) == "copy /s/tool -> /d/tool"
    assert str(Operation(OperationKind.REMOVE_FILE, Path("/d/tool"))) == "remove_file /d/tool"


def test_default_elevation_is_sudo():
    assert PrivilegedExecutor().elevate_argv == ["sudo", "--"]
    assert PrivilegedExecutor([]).elevate_argv == []


@pytest.mark.asyncio
async def test_operations_run_unprivileged(executor, tmp_path):
    src = tmp_path / "src file"
    src.write_text("payload")
    dest = tmp_path / "dest dir" / "sub" / "file"

    await executor.run_checked(Operation(OperationKind.MKDIR, dest.parent))
    await executor.run_checked(Operation(OperationKind.COPY, dest, src))
    assert dest.read_text() == "payload"

    await executor.run_checked(Operation(OperationKind.REMOVE_FILE, dest))
    await executor.run_checked(Operation(OperationKind.REMOVE_DIR, dest.parent))
    assert not dest.parent.exists()


@pytest.mark.asyncio
async def test_recursive_copy(executor, tmp_path):
    src = tmp_path / "bundle"
    (src / "Contents").mkdir(parents=True)
    (src / "Contents" / "Info.plist").write_text("<plist/>")

    copy = Operation(OperationKind.COPY, tmp_path / "copy", src, recursive=True)
    await executor.run_checked(Operation(OperationKind.MKDIR, tmp_path / "copy"))
    await executor.run_checked(copy)
    # Copying again into the existing directory must not nest the source
    await executor.run_checked(copy)

    assert (tmp_path / "copy" / "Contents" / "Info.plist").read_text() == "<plist/>"
    assert not (tmp_path / "copy" / "bundle").exists()


@pytest.mark.asyncio
async def test_failed_operation_raises(executor, tmp_path):
    missing = tmp_path / "missing"

    result = await executor.run(Operation(OperationKind.REMOVE_FILE, missing))
    assert not result.success
    assert result.returncode != 0

    with pytest.raises(PrivilegedCommandFailed) as exc_info:
        await executor.run_checked(Operation(OperationKind.REMOVE_FILE, missing))
    assert exc_info.value.operation.destination == missing


@pytest.mark.asyncio
async def test_missing_elevation_binary(tmp_path):
    executor = PrivilegedExecutor(["bootkit-no-such-sudo"])

    result = await executor.run(Operation(OperationKind.MKDIR, tmp_path / "x"))

    assert not result.success
    assert result.returncode == 127


@pytest.mark.asyncio
async def test_dry_run_changes_nothing(tmp_path, caplog):
    caplog.set_level(logging.INFO)
    executor = PrivilegedExecutor(dry_run=True)
    target = tmp_path / "never"

    result = await executor.run(Operation(OperationKind.MKDIR, target))

    assert result.success
    assert not target.exists()
    assert "sudo -- mkdir -p --" in caplog.text


def test_is_dir_empty(tmp_path):
    assert is_dir_empty(tmp_path)
    (tmp_path / "f").write_text("x")
    assert not is_dir_empty(tmp_path)
