"""Tests for main.py entry point."""

import json
import pytest
from unittest.mock import patch

import main as main_module
from extraction.parser import extract
from main import create_parser, main


@pytest.fixture
def page_file(tmp_path, simple_thread_html):
    path = tmp_path / "page.html"
    path.write_text(simple_thread_html, encoding="utf-8")
    return path


class TestCreateParser:
    """Tests for the argument parser."""

    def test_extract_command(self):
        """Test that extract takes a file and an optional output."""
        args = create_parser().parse_args(["extract", "page.html", "-o", "out.json"])

        assert args.command == "extract"
        assert args.file == "page.html"
        assert args.output == "out.json"
        assert args.parser is None

    def test_compare_command(self):
        """Test that compare takes two files and a parser."""
        args = create_parser().parse_args(["compare", "a.html", "b.html", "--parser", "lxml"])

        assert args.command == "compare"
        assert (args.current, args.other) == ("a.html", "b.html")
        assert args.parser == "lxml"

    def test_rejects_unknown_parser(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["extract", "page.html", "--parser", "html5lib"])


class TestMain:
    """Tests for main()."""

    def test_no_command_returns_1(self):
        assert main([]) == 1

    def test_extract_to_file(self, page_file, tmp_path):
        """Test that extract writes a JSON snapshot."""
        output = tmp_path / "snapshot.json"

        result = main(["extract", str(page_file), "--output", str(output)])

        assert result == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert [c["author_name"] for c in data["comments"]] == ["Alice", "Bob"]
        assert data["sections"][0]["headline"] == "Topic"

    def test_extract_to_stdout(self, page_file, capsys):
        """Test that extract prints the snapshot without an output file."""
        result = main(["extract", str(page_file), "--parser", "lxml"])

        assert result == 0
        data = json.loads(capsys.readouterr().out)
        assert data["comments"][1]["parent_id"] == "202001051000_Alice"

    def test_parser_from_environment(self, page_file, monkeypatch):
        """Test that TALK_PARSER selects the backend when --parser is not given."""
        monkeypatch.setenv("TALK_PARSER", "lxml")

        with patch.object(main_module, "extract", wraps=extract) as mock_extract:
            result = main(["extract", str(page_file)])

        assert result == 0
        assert mock_extract.call_args[0][1] == "lxml"

    def test_compare(self, page_file, tmp_path, make_page, sign, capsys):
        """Test that compare prints the change report."""
        other_file = tmp_path / "other.html"
        other_file.write_text(
            make_page(
                '<h2><span class="mw-headline" id="Topic">Topic</span></h2>\n'
                f"<p>First comment. {sign('Alice', '10:00')}</p>"
            ),
            encoding="utf-8",
        )

        result = main(["compare", str(page_file), str(other_file)])

        assert result == 0
        report = json.loads(capsys.readouterr().out)
        assert [change["author_name"] for change in report["removed"]] == ["Bob"]
        assert report["added"] == []

    def test_missing_file_returns_1(self, tmp_path):
        """Test that errors are logged and turned into exit code 1."""
        assert main(["extract", str(tmp_path / "missing.html")]) == 1
