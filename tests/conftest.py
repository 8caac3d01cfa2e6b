"""Pytest configuration and shared fixtures for bootkit tests."""

import contextlib
import gzip
import io
import tarfile
import zipfile
from pathlib import Path

import pytest

from bootkit.system import PrivilegedExecutor
from bootkit.verification import VerificationResult, Verifier


class FakeVerifier(Verifier):
    """Real digests; PGP checks return a fixed verdict and record their arguments."""

    def __init__(self, pgp_ok: bool = True):
        super().__init__(gpg_binary="gpg-not-used")
        self.pgp_ok = pgp_ok
        self.pgp_calls: list[tuple[Path, Path | None]] = []

    async def check_pgp(self, signature, target=None):
        self.pgp_calls.append((Path(signature), target))
        return VerificationResult(self.pgp_ok, "fake gpg")


class StubExtractor:
    """Stands in for fetch + extract by yielding a prepared directory."""

    def __init__(self, root: Path):
        self.root = root
        self.requests = []

    @contextlib.asynccontextmanager
    async def fetch_and_extract(self, request):
        self.requests.append(request)
        yield self.root


def build_tar_gz(path: Path, files: dict[str, bytes]) -> Path:
    with tarfile.open(path, "w:gz") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return path


def build_zip(path: Path, files: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return path


def build_gz(path: Path, data: bytes) -> Path:
    with gzip.open(path, "wb") as f:
        f.write(data)
    return path


@pytest.fixture
def fake_verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def executor() -> PrivilegedExecutor:
    """An executor that runs mkdir/cp/rm as the current user."""
    return PrivilegedExecutor(elevate_argv=[])


@pytest.fixture
def extracted_root(tmp_path: Path) -> Path:
    """An extraction root shaped like a typical release tarball."""
    root = tmp_path / "extracted"
    (root / "bin").mkdir(parents=True)
    (root / "cmd1").write_bytes(b"#!/bin/sh\necho one\n")
    (root / "bin" / "cmd2").write_bytes(b"#!/bin/sh\necho two\n")
    (root / "lib").mkdir()
    (root / "lib" / "libtool.so").write_bytes(b"\x7fELF")
    (root / "man").mkdir()
    (root / "man" / "tool.1").write_text(".TH TOOL 1\n", encoding="utf-8")
    return root


@pytest.fixture
def stub_extractor(extracted_root: Path) -> StubExtractor:
    return StubExtractor(extracted_root)


@pytest.fixture
def make_tar_gz():
    return build_tar_gz


@pytest.fixture
def make_zip():
    return build_zip


@pytest.fixture
def make_gz():
    return build_gz
