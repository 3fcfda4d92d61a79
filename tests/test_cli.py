"""
tinyc Command-Line Tests
========================

Runs the click command in-process with CliRunner.
"""

import pytest
from click.testing import CliRunner

from tinyc import __version__
from tinyc.cli.errors import ExitCode
from tinyc.cli.tinyc import main


@pytest.fixture
def runner():
    return CliRunner()


class TestRun:
    """Default mode: compile, run, print non-zero variables."""

    def test_stdin(self, runner):
        result = runner.invoke(main, [], input="a=b=c=2<3;")
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == "a = 1\nb = 1\nc = 1\n"

    def test_multi_line_program_from_file(self, runner, tmp_path):
        source = tmp_path / "gcd.tc"
        source.write_text("{\n  i=125; j=100;\n  while (i-j)\n    if (i<j) j=j-i; else i=i-j;\n}\n")
        result = runner.invoke(main, [str(source)])
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == "i = 25\nj = 25\n"

    def test_no_output_when_all_zero(self, runner):
        result = runner.invoke(main, ["-"], input="{ a=1; a=a-1; }")
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == ""

    def test_syntax_error(self, runner):
        result = runner.invoke(main, [], input="{ a=5; if (a<1 b=2; }")
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "error: expected ')'" in result.output
        assert "a = " not in result.output

    def test_nesting_too_deep(self, runner):
        result = runner.invoke(main, [], input="{" * 5000 + "a=1;" + "}" * 5000)
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "error: nesting too deep" in result.output

    def test_lex_error(self, runner):
        result = runner.invoke(main, [], input="A=1;")
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "invalid character 'A'" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(main, [str(tmp_path / "missing.tc")])
        assert result.exit_code == ExitCode.INVALID_ARGS

    def test_trace(self, runner):
        result = runner.invoke(main, ["--trace"], input="{ i=1; while (i<100) i=i+i; }")
        assert result.exit_code == ExitCode.SUCCESS
        assert "i = 128" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestLines:
    """--lines: one program per line, shared variables."""

    def test_variables_persist(self, runner):
        result = runner.invoke(main, ["--lines"], input="a=1;\n\nb=a+1;\n")
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output == "a = 1\na = 1\nb = 2\n"

    def test_error_reports_input_line(self, runner):
        result = runner.invoke(main, ["--lines"], input="a=1;\nb=(a;\n")
        assert result.exit_code == ExitCode.BUILD_ERROR
        assert "<stdin>:2:5: error" in result.output
        assert result.output.startswith("a = 1\n")


class TestDisasm:
    """--disasm prints the listing and does not run the program."""

    def test_listing(self, runner):
        result = runner.invoke(main, ["--disasm"], input="a = 42;")
        assert result.exit_code == ExitCode.SUCCESS
        assert result.output.splitlines() == [
            "0000: PUSH   #42",
            "0002: STORE  a",
            "0004: POP",
            "0005: HALT",
        ]

    def test_listing_of_endless_loop(self, runner):
        result = runner.invoke(main, ["--disasm"], input="while (1) ;")
        assert result.exit_code == ExitCode.SUCCESS
        assert "JMP" in result.output
