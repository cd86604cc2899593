"""Tests for file validation and purging of deleted files."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pushzone.client.files import FileHandler, guess_mime_type
from pushzone.core.config import PushSettings

from tests.helpers import make_files


@pytest.fixture
def api() -> MagicMock:
    client = MagicMock()
    client.push_file.return_value = True
    client.purge_url.return_value = True
    return client


@pytest.fixture
def handler(api: MagicMock, configured_settings: PushSettings, site_root: Path) -> FileHandler:
    return FileHandler(api, lambda: configured_settings, site_root)


class TestGuessMimeType:
    """Tests for guess_mime_type()."""

    def test_known_types(self) -> None:
        assert guess_mime_type(Path("a.css")) == "text/css"
        assert guess_mime_type(Path("a.png")) == "image/png"

    def test_unknown_type(self) -> None:
        assert guess_mime_type(Path("a.unknownext")) is None


class TestValidateFile:
    """Tests for FileHandler.validate_file()."""

    def test_valid_file(self, handler: FileHandler, site_root: Path) -> None:
        path = make_files(site_root, ["style.css"])[0]
        assert handler.validate_file(path) is True

    def test_missing_file(self, handler: FileHandler, site_root: Path) -> None:
        assert handler.validate_file(site_root / "missing.css") is False

    def test_directory_rejected(self, handler: FileHandler, site_root: Path) -> None:
        (site_root / "dir.css").mkdir()
        assert handler.validate_file(site_root / "dir.css") is False

    def test_too_large(
        self, api: MagicMock, configured_settings: PushSettings, site_root: Path
    ) -> None:
        """Files above the size limit are rejected."""
        path = make_files(site_root, ["big.css"], content=b"x" * 11)[0]
        handler = FileHandler(api, lambda: configured_settings, site_root, max_file_size=10)
        assert handler.validate_file(path) is False

    def test_extension_not_included(self, handler: FileHandler, site_root: Path) -> None:
        path = make_files(site_root, ["notes.txt"])[0]
        assert handler.validate_file(path) is False

    def test_mime_type_not_allowed(
        self, api: MagicMock, configured_settings: PushSettings, site_root: Path
    ) -> None:
        """An included extension still needs an allowed content type."""
        path = make_files(site_root, ["style.css"])[0]
        handler = FileHandler(
            api,
            lambda: configured_settings,
            site_root,
            allowed_mime_types=frozenset({"image/png"}),
        )
        assert handler.validate_file(path) is False


class TestPushFile:
    """Tests for FileHandler.push_file()."""

    def test_pushes_valid_file(
        self, handler: FileHandler, api: MagicMock, site_root: Path
    ) -> None:
        path = make_files(site_root, ["css/site.css"])[0]
        assert handler.push_file(path, "css/site.css") is True
        api.push_file.assert_called_once_with(path, "css/site.css")

    def test_invalid_file_not_pushed(
        self, handler: FileHandler, api: MagicMock, site_root: Path
    ) -> None:
        path = make_files(site_root, ["notes.txt"])[0]
        assert handler.push_file(path, "notes.txt") is False
        api.push_file.assert_not_called()

    def test_api_failure_propagates(
        self, handler: FileHandler, api: MagicMock, site_root: Path
    ) -> None:
        api.push_file.return_value = False
        path = make_files(site_root, ["a.png"])[0]
        assert handler.push_file(path, "a.png") is False

    def test_validation_logged_without_root(
        self,
        handler: FileHandler,
        site_root: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Validation errors hide the installation root."""
        handler.push_file(site_root / "gone.css", "gone.css")
        assert "File does not exist" in caplog.text
        assert str(site_root) not in caplog.text


class TestDeleteFile:
    """Tests for FileHandler.delete_file()."""

    def test_cdn_url_for(self, handler: FileHandler) -> None:
        assert handler.cdn_url_for("wp-content/a.css") == "https://cdn.example.com/wp-content/a.css"

    def test_cdn_url_with_scheme(self, api: MagicMock, site_root: Path) -> None:
        """A configured scheme or trailing slash is normalized."""
        settings = PushSettings(cdn_url="http://cdn.example.com/")
        handler = FileHandler(api, lambda: settings, site_root)
        assert handler.cdn_url_for("/a.css") == "https://cdn.example.com/a.css"

    def test_delete_purges_url(self, handler: FileHandler, api: MagicMock) -> None:
        assert handler.delete_file("wp-content/a.css") is True
        api.purge_url.assert_called_once_with("https://cdn.example.com/wp-content/a.css")

    def test_delete_without_cdn_url(self, api: MagicMock, site_root: Path) -> None:
        handler = FileHandler(api, lambda: PushSettings(), site_root)
        assert handler.delete_file("a.css") is False
        api.purge_url.assert_not_called()
