"""Tests for the manifest, fetch, progress and configuration models."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from bootkit.exceptions import ManifestError
from bootkit.models import BootkitConfig, FetchRequest, Manifest
from bootkit.models.progress import ProgressSnapshot, ProgressState


class TestManifest:
    def test_preserves_declaration_order(self):
        manifest = Manifest.from_mapping({"man": ["man/*"], "bin": ["cmd1"], "lib": []})

        assert [category for category, _ in manifest.items()] == ["man", "bin", "lib"]
        assert len(manifest) == 3

    @pytest.mark.parametrize(
        "data",
        [
            {"": ["x"]},
            {"bin/sub": ["x"]},
            {"..": ["x"]},
            {"bin": [""]},
            {"bin": ["/usr/bin/env"]},
            {"bin": ["a/../../b"]},
            {"bin": "cmd1"},
        ],
    )
    def test_rejects_invalid_entries(self, data):
        with pytest.raises(ManifestError):
            Manifest.from_mapping(data)

    def test_from_file(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text(json.dumps({"bin": ["cmd1", "bin/*"]}), encoding="utf-8")

        manifest = Manifest.from_file(path)

        assert manifest.root == {"bin": ["cmd1", "bin/*"]}
        assert json.loads(manifest.to_json()) == manifest.root

    def test_from_file_errors(self, tmp_path):
        with pytest.raises(ManifestError):
            Manifest.from_file(tmp_path / "missing.json")

        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        with pytest.raises(ManifestError):
            Manifest.from_file(broken)

        listing = tmp_path / "list.json"
        listing.write_text('["bin"]', encoding="utf-8")
        with pytest.raises(ManifestError):
            Manifest.from_file(listing)


class TestFetchRequest:
    def test_defaults(self):
        request = FetchRequest("https://example.com/a.zip")

        assert request.redirect_limit == 10
        assert request.headers == {}
        assert request.signatures == {}

    def test_rejects_negative_budget(self):
        with pytest.raises(ValueError):
            FetchRequest("https://example.com/a.zip", redirect_limit=-1)

    def test_rejects_empty_url(self):
        with pytest.raises(ValueError):
            FetchRequest("")


class TestProgress:
    def test_snapshots_are_replaced_not_mutated(self):
        state = ProgressState("tool.zip", total_bytes=200)
        first = state.snapshot

        state.advance(50)
        second = state.snapshot
        state.advance(150)
        state.finish()

        assert first.bytes_received == 0
        assert second.bytes_received == 50
        assert second.percent == 25.0
        assert state.snapshot.done
        assert state.snapshot.percent == 100.0
        assert not second.done

    def test_unknown_total_has_no_percent(self):
        state = ProgressState("tool.zip")
        state.advance(1024)

        assert state.snapshot.percent is None
        assert state.snapshot.bytes_received == 1024

    def test_percent_is_capped(self):
        assert ProgressSnapshot("x", bytes_received=300, total_bytes=200).percent == 100.0


class TestConfig:
    def test_defaults(self):
        config = BootkitConfig()

        assert config.dest_root == "/usr/local"
        assert config.elevate_argv == ["sudo", "--"]
        assert config.redirect_limit == 10

    def test_empty_elevation_means_unprivileged(self):
        assert BootkitConfig(elevate_command="").elevate_argv == []
        assert BootkitConfig(elevate_command="doas").elevate_argv == ["doas"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"dest_root": "relative/path"},
            {"redirect_limit": -1},
            {"poll_interval": 0},
            {"chunk_size": 10},
            {"read_timeout": 0},
            {"elevate_command": "sudo 'unterminated"},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            BootkitConfig(**overrides)

    def test_ini_keys_exclude_internal_fields(self):
        keys = BootkitConfig.get_ini_keys()

        assert "config_path" not in keys
        assert {"dest_root", "elevate_command", "redirect_limit"} <= keys

    def test_home_relative_dest_root(self):
        assert Path(BootkitConfig(dest_root="~/.local").dest_root).parts[0] == "~"

    def test_assignment_is_validated_and_stripped(self):
        config = BootkitConfig()

        config.gpg_binary = "  gpg2 "
        assert config.gpg_binary == "gpg2"
        with pytest.raises(ValidationError):
            config.redirect_limit = 99
