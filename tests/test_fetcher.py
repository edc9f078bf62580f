"""
Tests for HTTP transport and AppImage download (appi/net.py, appi/fetcher.py).
"""

import http.client
import io
import os
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from appi import net
from appi.errors import NetworkError, NotFoundError, ParseError
from appi.fetcher import EXECUTABLE_MODE, download_bundle, fetch_bundle, is_installed


def http_error(code):
    return urllib.error.HTTPError("https://x", code, "error", {}, None)


def response(body=b"ELF", status=200):
    """A urlopen-like response usable as a context manager."""
    resp = MagicMock()
    resp.status = status
    stream = io.BytesIO(body)
    resp.read.side_effect = stream.read
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


class TestHttp:
    """Tests for the urllib wrappers."""

    @patch("appi.net.urllib.request.urlopen")
    def test_user_agent_and_headers(self, mock_urlopen):
        mock_urlopen.return_value = response(b"{}")
        net.http_get("https://x", headers={"Accept": "application/json"})

        request = mock_urlopen.call_args[0][0]
        assert request.get_header("User-agent") == net.USER_AGENT
        assert request.get_header("Accept") == "application/json"

    @patch("appi.net.urllib.request.urlopen")
    def test_404_is_not_found(self, mock_urlopen):
        mock_urlopen.side_effect = http_error(404)
        with pytest.raises(NotFoundError):
            net.http_get("https://x")

    @patch("appi.net.urllib.request.urlopen")
    def test_other_http_errors(self, mock_urlopen):
        mock_urlopen.side_effect = http_error(500)
        with pytest.raises(NetworkError, match="HTTP 500"):
            net.http_get("https://x")

    @patch("appi.net.urllib.request.urlopen")
    def test_transport_error(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError("no route")
        with pytest.raises(NetworkError):
            net.http_get("https://x")

    @patch("appi.net.urllib.request.urlopen")
    def test_truncated_body(self, mock_urlopen):
        resp = response()
        resp.read.side_effect = http.client.IncompleteRead(b"{", 10)
        mock_urlopen.return_value = resp
        with pytest.raises(NetworkError, match="Failed to read"):
            net.http_get_json("https://x")

    @patch("appi.net.urllib.request.urlopen")
    def test_protocol_error_on_open(self, mock_urlopen):
        mock_urlopen.side_effect = http.client.BadStatusLine("")
        with pytest.raises(NetworkError):
            net.http_get("https://x")

    @patch("appi.net.urllib.request.urlopen")
    def test_json(self, mock_urlopen):
        mock_urlopen.return_value = response(b'{"a": 1}')
        assert net.http_get_json("https://x") == {"a": 1}

    @patch("appi.net.urllib.request.urlopen")
    def test_invalid_json(self, mock_urlopen):
        mock_urlopen.return_value = response(b"<html>")
        with pytest.raises(ParseError):
            net.http_get_json("https://x")


class TestDownloadBundle:
    """Tests for download_bundle()."""

    @patch("appi.fetcher.net.http_open")
    def test_writes_executable(self, mock_open, tmp_path):
        """Test that the file lands under its final name with mode 0755."""
        mock_open.return_value = response(b"APPIMAGE-BYTES")
        dest = tmp_path / "myapp" / "myapp-aur-v1.0.0.appimage"

        download_bundle("https://x/a.AppImage", dest, timeout=5)

        assert dest.read_bytes() == b"APPIMAGE-BYTES"
        assert os.stat(dest).st_mode & 0o777 == EXECUTABLE_MODE
        assert not dest.with_name(dest.name + ".part").exists()
        mock_open.assert_called_once_with("https://x/a.AppImage", timeout=5)

    @patch("appi.fetcher.net.http_open")
    def test_404(self, mock_open, tmp_path):
        mock_open.side_effect = NotFoundError("Not found")
        dest = tmp_path / "myapp" / "myapp-aur-v1.0.0.appimage"

        with pytest.raises(NotFoundError, match="Check if the package is available"):
            download_bundle("https://x/a", dest)
        assert not dest.exists()

    @patch("appi.fetcher.net.http_open")
    def test_non_success_status(self, mock_open, tmp_path):
        mock_open.return_value = response(status=302)
        with pytest.raises(NetworkError):
            download_bundle("https://x/a", tmp_path / "d" / "f.appimage")

    @patch("appi.fetcher.net.http_open")
    def test_interrupted_transfer_leaves_nothing(self, mock_open, tmp_path):
        resp = response()
        resp.read.side_effect = OSError("connection reset")
        mock_open.return_value = resp
        dest = tmp_path / "d" / "f.appimage"

        with pytest.raises(NetworkError):
            download_bundle("https://x/a", dest)
        assert list(dest.parent.iterdir()) == []

    @patch("appi.fetcher.net.http_open")
    def test_truncated_body_removes_partial_file(self, mock_open, tmp_path):
        """Test that a body shorter than announced is a NetworkError."""
        resp = response()
        resp.read.side_effect = http.client.IncompleteRead(b"EL", 100)
        mock_open.return_value = resp
        dest = tmp_path / "d" / "f.appimage"

        with pytest.raises(NetworkError, match="interrupted"):
            download_bundle("https://x/a", dest)
        assert list(dest.parent.iterdir()) == []


class TestFetchBundle:
    """Tests for fetch_bundle()."""

    @patch("appi.fetcher.net.http_open")
    def test_already_installed_skips_network(self, mock_open, tmp_path):
        """Test that an existing package directory means zero requests."""
        (tmp_path / "myapp").mkdir()
        dest = tmp_path / "myapp" / "myapp-aur-v1.0.0.appimage"

        assert fetch_bundle("https://x/a", dest) is False
        mock_open.assert_not_called()
        assert is_installed(tmp_path / "myapp")

    @patch("appi.fetcher.net.http_open")
    def test_downloads_when_missing(self, mock_open, tmp_path):
        mock_open.return_value = response()
        dest = tmp_path / "myapp" / "myapp-aur-v1.0.0.appimage"

        assert fetch_bundle("https://x/a", dest) is True
        assert dest.exists()
