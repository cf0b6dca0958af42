"""Tests for the htmldown command line tool."""

import io
import json
import logging
import sys

import pytest
from bs4.builder import builder_registry

from htmldown.cli import build_report, convert_with_priority, default_to_convert, main
from htmldown.html_converter import HTMLToMarkdown
from htmldown.log import configure_logging
from htmldown.models import ConversionError


@pytest.fixture
def html_file(tmp_path):
    path = tmp_path / "page.html"
    path.write_text("<h1>Title</h1><p>Hello <strong>bold</strong></p>", encoding="utf-8")
    return path


@pytest.fixture
def stdin(monkeypatch):
    def _set(data: bytes):
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))

    return _set


class TestConvertCommand:
    def test_convert_file(self, html_file, capsys):
        main(["convert", str(html_file)])
        assert capsys.readouterr().out == "# Title\n\nHello **bold**\n"

    def test_default_command_reads_stdin(self, stdin, capsys):
        stdin(b"<ul><li>one</li><li>two</li></ul>")
        main([])
        assert capsys.readouterr().out == "- one\n- two\n"

    def test_output_file(self, html_file, tmp_path, capsys):
        out = tmp_path / "page.md"
        main(["convert", str(html_file), "--output", str(out)])
        assert out.read_text(encoding="utf-8") == "# Title\n\nHello **bold**\n"
        assert capsys.readouterr().out == ""

    def test_from_text_passes_through(self, html_file, capsys):
        main(["convert", str(html_file), "--from", "text"])
        assert capsys.readouterr().out == html_file.read_text(encoding="utf-8")

    def test_plain_text_falls_back_to_text(self, stdin, capsys):
        stdin(b"just some text")
        main(["convert"])
        assert capsys.readouterr().out == "just some text"

    def test_priority_text_first(self, html_file, capsys):
        main(["convert", str(html_file), "--priority", "text,html"])
        assert "<h1>" in capsys.readouterr().out

    def test_empty_input_fails(self, stdin):
        stdin(b"")
        with pytest.raises(SystemExit) as exc:
            main(["convert"])
        assert exc.value.code == 1

    def test_forced_html_without_root_fails(self, stdin):
        stdin(b"<!-- nothing here -->")
        with pytest.raises(SystemExit) as exc:
            main(["convert", "--from", "html"])
        assert exc.value.code == 1

    def test_unknown_priority_fails(self, html_file):
        with pytest.raises(SystemExit) as exc:
            main(["convert", str(html_file), "--priority", "rtf"])
        assert exc.value.code == 1

    def test_missing_file_fails(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["convert", str(tmp_path / "missing.html")])
        assert exc.value.code == 1

    def test_invalid_utf8_fails(self, stdin):
        stdin(b"\xff\xfe<p>x</p>")
        with pytest.raises(SystemExit) as exc:
            main(["convert"])
        assert exc.value.code == 1

    def test_forced_html_reports_invalid_utf8(self, stdin, capsys):
        stdin(b"\xff\xfe<p>x</p>")
        with pytest.raises(SystemExit) as exc:
            main(["convert", "--from", "html"])
        assert exc.value.code == 1
        assert "not valid UTF-8" in capsys.readouterr().err

    def test_bare_file_is_converted(self, html_file, capsys):
        main([str(html_file)])
        assert capsys.readouterr().out == "# Title\n\nHello **bold**\n"

    def test_uninstalled_parser_fails(self, html_file, monkeypatch):
        monkeypatch.setattr(builder_registry, "lookup", lambda *features: None)
        with pytest.raises(SystemExit) as exc:
            main(["--parser", "lxml", "convert", str(html_file)])
        assert exc.value.code == 1


class TestInspectCommand:
    def test_inspect_plain(self, html_file, capsys):
        main(["inspect", str(html_file)])
        out = capsys.readouterr().out
        assert out.startswith("SOURCE\nHTML (")
        assert "TARGET" in out
        assert "# Title" in out

    def test_inspect_json(self, html_file, capsys):
        main(["inspect", str(html_file), "--json"])
        report = json.loads(capsys.readouterr().out)
        assert report["source"]["type"] == "html"
        assert report["target"]["markdown"]["source"] == "html"
        assert report["target"]["markdown"]["content"] == "# Title\n\nHello **bold**\n"

    def test_inspect_with_uninstalled_parser_fails(self, html_file, monkeypatch, capsys):
        monkeypatch.setattr(builder_registry, "lookup", lambda *features: None)
        with pytest.raises(SystemExit) as exc:
            main(["--parser", "lxml", "inspect", str(html_file)])
        assert exc.value.code == 1
        assert "is not installed" in capsys.readouterr().err

    def test_inspect_invalid_utf8_fails(self, stdin):
        stdin(b"\xff<p>x</p>")
        with pytest.raises(SystemExit) as exc:
            main(["inspect"])
        assert exc.value.code == 1

    def test_inspect_truncates_preview(self, tmp_path, capsys):
        path = tmp_path / "long.html"
        path.write_text("<p>" + "x" * 300 + "</p>", encoding="utf-8")
        main(["inspect", str(path)])
        assert "more chars)" in capsys.readouterr().out


class TestDefaultCommand:
    @pytest.mark.parametrize(
        "argv,expected",
        [
            (["page.html"], ["convert", "page.html"]),
            (["--debug", "page.html"], ["--debug", "convert", "page.html"]),
            (["-p", "lxml", "page.html"], ["-p", "lxml", "convert", "page.html"]),
            (["inspect", "page.html"], ["inspect", "page.html"]),
            (["--version"], ["--version"]),
            ([], []),
        ],
    )
    def test_default_to_convert(self, argv, expected):
        assert default_to_convert(argv) == expected


class TestReport:
    def test_plain_text_report(self):
        report = build_report("hello", HTMLToMarkdown())
        assert report["source"]["type"] == "text"
        assert report["target"]["markdown"] == {
            "size": 5,
            "content": "hello",
            "source": "plain_text",
        }

    def test_empty_report(self):
        report = build_report("", HTMLToMarkdown())
        assert report["target"]["markdown"]["error"] == "No convertible content"


class TestPriority:
    def test_html_wins_when_markup_present(self):
        markdown, source = convert_with_priority("<b>x</b>", ["html", "text"], HTMLToMarkdown())
        assert (markdown, source) == ("**x**\n", "html")

    def test_nothing_convertible(self):
        with pytest.raises(ConversionError, match="No convertible content"):
            convert_with_priority("plain", ["html"], HTMLToMarkdown())


class TestVersionAndLogging:
    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert capsys.readouterr().out.startswith("htmldown version ")

    def test_configure_logging(self):
        configure_logging(stream_level=logging.DEBUG, ignore_libs=["bs4"])
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert logging.getLogger("bs4").level == logging.WARNING
