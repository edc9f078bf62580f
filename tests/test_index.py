"""
Tests for the installed bundle index (appi/index.py).
"""

import pytest

from appi.errors import FilesystemError, ParseError
from appi.identity import SourceKind
from appi.index import find_entry, iter_entries, read_bundle, scan_installed
from appi.versioning import parse_version


class TestScanInstalled:
    """Tests for scan_installed()."""

    def test_missing_root(self, tmp_path):
        """Test that a missing applications root means nothing installed."""
        assert scan_installed(tmp_path / "nope") == []

    def test_root_is_a_file(self, tmp_path):
        root = tmp_path / "Applications"
        root.write_text("")
        with pytest.raises(FilesystemError):
            scan_installed(root)

    def test_sorted_by_name(self, apps_root, bundle_factory):
        bundle_factory(apps_root, "zed", "zed-aur-v1.0.0.appimage")
        bundle_factory(apps_root, "alpha", "alpha-octo-v2.0.0.appimage")

        bundles = scan_installed(apps_root)

        assert [b.name for b in bundles] == ["alpha", "zed"]
        assert bundles[0].identity.source is SourceKind.CODE_HOST
        assert bundles[1].version == parse_version("1.0.0")

    def test_extracted_tree_ignored(self, apps_root, bundle_factory):
        """Test that squashfs-root and other files next to the AppImage are skipped."""
        artifact = bundle_factory(apps_root, "myapp", "myapp-aur-v1.0.0.appimage")
        (artifact.parent / "squashfs-root").mkdir()
        (artifact.parent / "notes.txt").write_text("")

        bundle = read_bundle(artifact.parent)
        assert bundle.artifact_file == artifact

    def test_corrupt_filename(self, apps_root, bundle_factory):
        """Test that a corrupt filename is a parse error."""
        bundle_factory(apps_root, "broken", "broken.appimage")
        with pytest.raises(ParseError):
            scan_installed(apps_root)

    def test_empty_directory(self, apps_root):
        (apps_root / "empty").mkdir()
        with pytest.raises(ParseError, match="No AppImage found"):
            scan_installed(apps_root)

    def test_several_appimages(self, apps_root, bundle_factory):
        bundle_factory(apps_root, "myapp", "myapp-aur-v1.0.0.appimage")
        bundle_factory(apps_root, "myapp", "myapp-aur-v1.1.0.appimage")
        with pytest.raises(ParseError, match="Several"):
            scan_installed(apps_root)


class TestIterEntries:
    """Tests for iter_entries() and find_entry()."""

    def test_keeps_corrupt_entries(self, apps_root, bundle_factory):
        bundle_factory(apps_root, "broken", "broken.appimage")
        bundle_factory(apps_root, "good", "good-aur-v1.0.0.appimage")

        entries = list(iter_entries(apps_root))

        assert [e.directory.name for e in entries] == ["broken", "good"]
        assert entries[0].bundle is None
        assert isinstance(entries[0].error, ParseError)
        assert entries[1].bundle.name == "good"

    def test_find_entry_accepts_hyphens(self, apps_root, bundle_factory):
        bundle_factory(apps_root, "my_app", "my_app-aur-v1.0.0.appimage")
        entry = find_entry(apps_root, "My-App")
        assert entry is not None
        assert entry.directory.name == "my_app"

    def test_find_entry_missing(self, apps_root):
        assert find_entry(apps_root, "ghost") is None

    def test_to_dict(self, apps_root, bundle_factory):
        bundle_factory(apps_root, "myapp", "myapp-aur-v1.0.0.appimage")
        data = scan_installed(apps_root)[0].to_dict()
        assert data["source"] == "aur"
        assert data["version"] == "1.0.0"
