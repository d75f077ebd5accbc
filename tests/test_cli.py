"""Tests for the pyet command line."""

from pathlib import Path

from typer.testing import CliRunner

from pyet._version import __version__
from pyet.cli import typer_app

TESTDATA = Path(__file__).parent / "testdata"

runner = CliRunner()


def test_version():
    result = runner.invoke(typer_app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_render_to_stdout():
    result = runner.invoke(typer_app, [str(TESTDATA / "raw.ejs"), "-s", "param=<b>hi</b>"])
    assert result.exit_code == 0
    assert result.stdout == "<b>hi</b>"


def test_render_with_params_file_and_output(tmp_path):
    params = tmp_path / "params.yaml"
    params.write_text("items: [one, two]\n")
    output = tmp_path / "out" / "list.html"

    result = runner.invoke(
        typer_app, [str(TESTDATA / "list.ejs"), "-p", str(params), "-o", str(output)]
    )
    assert result.exit_code == 0
    assert output.read_text() == "<ul>\n  <li>one</li>\n  <li>two</li>\n</ul>\n"


def test_set_overrides_params_file(tmp_path):
    params = tmp_path / "params.yaml"
    params.write_text("param: from-file\n")

    result = runner.invoke(
        typer_app, [str(TESTDATA / "raw.ejs"), "-p", str(params), "-s", "param=from-cli"]
    )
    assert result.exit_code == 0
    assert result.stdout == "from-cli"


def test_missing_template(tmp_path):
    result = runner.invoke(typer_app, [str(tmp_path / "missing.ejs")])
    assert result.exit_code == 1
    assert "Template not found" in result.output


def test_template_fault_exits_with_error(tmp_path):
    template = tmp_path / "bad.ejs"
    template.write_text("<%= unknown %>")

    result = runner.invoke(typer_app, [str(template)])
    assert result.exit_code == 1
    assert "NameError" in result.output
    assert "unknown" in result.output


def test_no_template_given():
    result = runner.invoke(typer_app, [])
    assert result.exit_code == 2


def test_failed_render_leaves_no_output_file(tmp_path):
    template = tmp_path / "bad.ejs"
    template.write_text('partial <% raise ValueError("bad value") %>')
    output = tmp_path / "out.html"

    result = runner.invoke(typer_app, [str(template), "-o", str(output)])
    assert result.exit_code == 1
    assert "ValueError: bad value" in result.output
    assert [p.name for p in tmp_path.iterdir()] == ["bad.ejs"]


def test_invalid_assignment_reports_error():
    result = runner.invoke(typer_app, [str(TESTDATA / "raw.ejs"), "-s", "no-equals"])
    assert result.exit_code == 1
    assert "Expected KEY=VALUE" in result.output
