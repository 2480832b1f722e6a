"""Unit tests for placeholder_service.requests_client."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from placeholder_service.requests_client import (
    _default_out_path,
    _image_params,
    request_image,
)


class TestImageParams:
    def test_skips_empty_values(self):
        assert _image_params(bg="ccc", fg=None, text="") == {"bg": "ccc"}

    def test_format_and_border(self):
        assert _image_params(br_s=3, fmt="jpeg") == {"format": "jpeg", "br_s": "3"}


class TestDefaultOutPath:
    def test_png(self):
        assert _default_out_path("450x450", "image/png") == Path("450x450.png")

    def test_unknown(self):
        assert _default_out_path("1x1", "application/x-unknown") == Path("1x1.bin")


class TestRequestImage:
    @patch("placeholder_service.requests_client.requests.get")
    def test_writes_body(self, mock_get, tmp_path):
        resp = MagicMock()
        resp.content = b"png-bytes"
        resp.headers = {"Content-Type": "image/png", "ETag": '"abc"'}
        mock_get.return_value = resp
        out = tmp_path / "img.png"
        payload = request_image("http://svc", "10x10", params={"bg": "fff"}, out_path=out)
        assert out.read_bytes() == b"png-bytes"
        assert payload["etag"] == '"abc"'
        mock_get.assert_called_once_with("http://svc/10x10", params={"bg": "fff"}, timeout=60)


class TestMainCommandRouting:
    """Verify the CLI dispatches to the correct request function."""

    @patch("placeholder_service.requests_client.request_health")
    def test_health_command(self, mock_health):
        mock_health.return_value = {"status": "ok"}
        from placeholder_service.requests_client import main
        with patch("sys.argv", ["prog", "health"]):
            main()
        mock_health.assert_called_once()

    @patch("placeholder_service.requests_client.request_stats")
    def test_stats_command(self, mock_stats):
        mock_stats.return_value = {}
        from placeholder_service.requests_client import main
        with patch("sys.argv", ["prog", "stats"]):
            main()
        mock_stats.assert_called_once()

    @patch("placeholder_service.requests_client.request_image")
    def test_fetch_command(self, mock_fetch):
        mock_fetch.return_value = {"path": "450x450.png"}
        from placeholder_service.requests_client import main
        with patch("sys.argv", ["prog", "fetch", "450x450", "--bg", "ccc", "--format", "png"]):
            main()
        args, kwargs = mock_fetch.call_args
        assert args[1] == "450x450"
        assert kwargs["params"] == {"bg": "ccc", "format": "png"}

    @patch("placeholder_service.requests_client.request_burst")
    def test_burst_command(self, mock_burst):
        mock_burst.return_value = {"requests": 5}
        from placeholder_service.requests_client import main
        with patch("sys.argv", ["prog", "burst", "10x10", "--count", "5"]):
            main()
        assert mock_burst.call_args.kwargs["count"] == 5
