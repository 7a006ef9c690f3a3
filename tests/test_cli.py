"""Tests for the patternlab CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from click.testing import CliRunner

from patternlab.cli.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestCatalogCommands:
    """Tests for list, show, search and export."""

    def test_list(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["list"])

        assert result.exit_code == 0
        assert "singleton" in result.output

    def test_list_by_category(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["list", "--category", "web"])

        assert result.exit_code == 0
        assert "Middleware" in result.output
        assert "Singleton" not in result.output

    def test_list_empty_category(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["list", "-c", "cobol"])

        assert result.exit_code == 0
        assert "No patterns found" in result.output

    def test_show(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["show", "singleton"])

        assert result.exit_code == 0
        assert "Implementation Example" in result.output

    def test_show_template(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["show", "singleton", "--template"])

        assert result.exit_code == 0
        assert "Code Template" in result.output

    def test_show_unknown(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["show", "nope"])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_search(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["search", "observer"])

        assert result.exit_code == 0
        assert "Observer" in result.output

    def test_export_to_file(self, runner: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "singleton.md"

        result = runner.invoke(cli, ["export", "singleton", "-o", str(target)])

        assert result.exit_code == 0
        assert target.read_text(encoding="utf-8").startswith("# Singleton")


class TestRunCommand:
    """Tests for running code from the terminal."""

    def test_run_example(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["run", "singleton", "--example", "--quiet"])

        assert result.exit_code == 0
        assert "Output" in result.output

    def test_failing_template_exits_nonzero(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["run", "factory-method", "--quiet"])

        assert result.exit_code == 1
        assert "Execution Error" in result.output
        assert "Your implementation here" in result.output

    def test_run_file(self, runner: CliRunner, tmp_path: Path) -> None:
        script = tmp_path / "solution.py"
        script.write_text("print('from file')\n")

        result = runner.invoke(cli, ["run", "--file", str(script), "--quiet"])

        assert result.exit_code == 0
        assert "from file" in result.output

    def test_run_requires_source(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["run", "--quiet"])

        assert result.exit_code == 2
        assert "Provide a pattern slug or --file" in result.output

    def test_run_via_api(self, runner: CliRunner, tmp_path: Path) -> None:
        script = tmp_path / "solution.py"
        script.write_text("print('remote')\n")
        response = MagicMock()
        response.json.return_value = {"success": True, "output": "remote"}

        with patch("httpx.Client.post", return_value=response) as post:
            result = runner.invoke(
                cli,
                ["run", "--file", str(script), "--api", "http://api.test/", "--quiet"],
            )

        assert result.exit_code == 0
        assert "remote" in result.output
        post.assert_called_once_with(
            "http://api.test/api/execute", json={"source": "print('remote')\n"}
        )

    def test_run_via_api_unreachable(self, runner: CliRunner) -> None:
        with patch("httpx.Client.post", side_effect=httpx.ConnectError("refused")):
            result = runner.invoke(
                cli, ["run", "singleton", "--api", "http://api.test", "--quiet"]
            )

        assert result.exit_code == 1
        assert "Could not connect" in result.output
