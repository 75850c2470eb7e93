"""
Brief: Tests for filter_manager.main CLI entrypoint.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from filter_manager import main as main_mod

RULES = (
    b"matrix-off: about-scheme true\n"
    b"www.example.com cdn.net image allow\n"
    b"example.com cdn.net 3p allow\n"
    b"a.com ads.net * block\n"
    b"b.com ads.net * block\n"
    b"c.com ads.net * block\n"
    b"c.com * * block\n"
    b"c.com * * noop\0"
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """
    Brief: Run each CLI test inside a temporary directory with a rule file.

    Inputs:
      - tmp_path: temporary directory fixture
      - monkeypatch: pytest monkeypatch fixture

    Outputs:
      - pathlib.Path of the working directory
    """
    monkeypatch.chdir(tmp_path)
    (tmp_path / "input.txt").write_bytes(RULES)
    return tmp_path


def test_main_destinations_report_by_default(workdir, capsys):
    """
    Brief: Without a config file the destinations report runs on input.txt.

    Inputs:
      - workdir: temp dir holding input.txt
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts exit code and printed rows
    """
    rc = main_mod.main([])
    out = capsys.readouterr().out
    assert rc == 0
    assert out.splitlines() == ["cdn.net -> 2", "ads.net -> 3"]


def test_main_subdomains_report(workdir, capsys):
    """
    Brief: The subdomains report lists subdomain sources.

    Inputs:
      - workdir: temp dir holding input.txt
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts printed row
    """
    rc = main_mod.main(["--report", "subdomains"])
    assert rc == 0
    assert capsys.readouterr().out.splitlines() == ["www.example.com cdn.net"]


def test_main_rewrite_writes_output(workdir):
    """
    Brief: The rewrite report writes collapsed sources to the output file.

    Inputs:
      - workdir: temp dir holding input.txt

    Outputs:
      - None: Asserts output file content
    """
    rc = main_mod.main(["--report", "rewrite", "--output", "out.txt"])
    assert rc == 0
    lines = (workdir / "out.txt").read_text().splitlines()
    assert len(lines) == 8
    assert lines[1] == "example.com cdn.net image allow"


def test_main_dump_with_config_file_and_vars(workdir, capsys):
    """
    Brief: Config file values and -v overrides select input and report.

    Inputs:
      - workdir: temp dir holding input.txt
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts dumped rules and debug logging on stderr
    """
    (workdir / "other.txt").write_bytes(b"n l v\na.com b.com 3p-frame noop\n")
    (workdir / "cfg.yaml").write_text(
        "vars:\n  RULES: input.txt\nlogging:\n  level: debug\ninput: $RULES\nreport: dump\n"
    )
    rc = main_mod.main(["--config", "cfg.yaml", "-v", "RULES=other.txt"])
    captured = capsys.readouterr()
    assert rc == 0
    assert captured.out.splitlines() == ["n l v", "a.com b.com 3p-frame noop"]
    assert "[debug]" in captured.err


def test_main_malformed_line_exit_code(workdir, capsys):
    """
    Brief: A wrong field count exits with 2 and reports nothing.

    Inputs:
      - workdir: temp dir
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts exit code, empty stdout and error log
    """
    (workdir / "input.txt").write_bytes(b"a.com b.com image block\ntwo fields\n")
    rc = main_mod.main([])
    captured = capsys.readouterr()
    assert rc == main_mod.EXIT_MALFORMED
    assert captured.out == ""
    assert "parse did not complete" in captured.err


def test_main_semantic_error_exit_code(workdir, capsys):
    """
    Brief: An unknown keyword exits with 1 naming the offending text.

    Inputs:
      - workdir: temp dir
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts exit code and error log
    """
    (workdir / "input.txt").write_bytes(b"http://a.com http://b.com bogus-type block\0")
    rc = main_mod.main([])
    captured = capsys.readouterr()
    assert rc == main_mod.EXIT_ERROR
    assert "bogus-type" in captured.err


def test_main_collect_errors_reports_valid_lines(workdir, capsys):
    """
    Brief: --collect-errors keeps valid lines, logs bad ones and exits 1.

    Inputs:
      - workdir: temp dir
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts partial report and warnings
    """
    (workdir / "input.txt").write_bytes(
        b"a.com x.net * block\nnot-a-uri x.net * block\nb.com x.net * block\n"
    )
    rc = main_mod.main(["--collect-errors", "--report", "dump"])
    captured = capsys.readouterr()
    assert rc == main_mod.EXIT_ERROR
    assert captured.out.splitlines() == ["a.com x.net * block", "b.com x.net * block"]
    assert "not-a-uri" in captured.err
    assert "Rejected 1 lines" in captured.err


def test_main_missing_input_and_config(workdir, capsys):
    """
    Brief: Missing input files and explicit missing configs exit with 1.

    Inputs:
      - workdir: temp dir
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts exit codes
    """
    assert main_mod.main(["--input", "absent.txt"]) == main_mod.EXIT_ERROR
    assert "Could not read absent.txt" in capsys.readouterr().err
    assert main_mod.main(["--config", "absent.yaml"]) == main_mod.EXIT_ERROR


def test_main_invalid_min_count(workdir, capsys):
    """
    Brief: CLI overrides are validated like config values.

    Inputs:
      - workdir: temp dir
      - capsys: stdout/stderr capture

    Outputs:
      - None: Asserts exit code and printed validation message
    """
    assert main_mod.main(["--min-count", "0"]) == main_mod.EXIT_ERROR
    assert "min_count" in capsys.readouterr().out
