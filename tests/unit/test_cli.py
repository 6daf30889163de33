"""
Unit tests for the command-line entry point.
"""

import pytest

from embedserve.__main__ import build_handler, build_parser, main
from embedserve.errors import EmbedError
from embedserve.handlers import DirectoryHandler, SingleFileHandler
from embedserve.http import HTTPRequest, HTTPStatus


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self, monkeypatch):
        """Test defaults when no environment overrides are set."""
        for name in ("EMBEDSERVE_PORT", "EMBEDSERVE_HOST", "EMBEDSERVE_CHUNK_SIZE"):
            monkeypatch.delenv(name, raising=False)

        args = build_parser().parse_args(["site"])

        assert args.path == "site"
        assert args.host == "127.0.0.1"
        assert args.port == 8080
        assert args.chunk_size == 64 * 1024
        assert args.index_fallback is True
        assert args.metadata is True
        assert args.mime is None
        assert args.log_format == "text"

    def test_flags(self):
        """Test the handler flags."""
        args = build_parser().parse_args([
            "site", "-p", "0", "--chunk-size", "1024",
            "--no-index", "--no-metadata", "--log-format", "json",
        ])

        assert args.port == 0
        assert args.chunk_size == 1024
        assert args.index_fallback is False
        assert args.metadata is False
        assert args.log_format == "json"

    def test_version(self, capsys):
        """Test --version prints and exits cleanly."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "embedserve 1.0.0" in capsys.readouterr().out


class TestBuildHandler:
    """Tests for choosing the handler from the path."""

    def test_directory(self, assets_dir):
        """Test that a directory gives a DirectoryHandler."""
        args = build_parser().parse_args([str(assets_dir), "--no-index", "--chunk-size", "8"])

        handler = build_handler(args)

        assert isinstance(handler, DirectoryHandler)
        assert handler.config.append_index_html is False
        assert handler.chunk_size == 8
        assert handler(HTTPRequest(target="/")).status == HTTPStatus.NOT_FOUND

    def test_single_file(self, assets_dir):
        """Test that a file gives a SingleFileHandler."""
        args = build_parser().parse_args([str(assets_dir / "README.md")])

        handler = build_handler(args)

        assert isinstance(handler, SingleFileHandler)
        response = handler(HTTPRequest(target="/any/path"))
        assert response.get_header("Content-Type") == "text/markdown"

    def test_single_file_with_mime(self, assets_dir):
        """Test --mime in single-file mode."""
        args = build_parser().parse_args([str(assets_dir / "text.txt"), "--mime", "text/x-test"])

        handler = build_handler(args)

        assert handler.file.mime == "text/x-test"

    def test_missing_path(self, tmp_path):
        """Test that a missing path fails while embedding."""
        args = build_parser().parse_args([str(tmp_path / "missing")])

        with pytest.raises(EmbedError):
            build_handler(args)


class TestMain:
    """Tests for main()'s error handling."""

    def test_missing_path_exits_1(self, tmp_path, capsys):
        """Test that an embedding failure is reported, not raised."""
        code = main([str(tmp_path / "missing")])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_config_exits_1(self, assets_dir, capsys):
        """Test that an invalid option is reported, not raised."""
        code = main([str(assets_dir), "--workers", "0"])

        assert code == 1
        assert "max_workers" in capsys.readouterr().err
