"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli_command(command: str, timeout: int = 30, env: dict | None = None) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m assessment.cli.main')
        timeout: Maximum time to wait
        env: Extra environment variables

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_command = f"{sys.executable} -m assessment.cli.main {command}"

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
        env={**os.environ, "LOG_FILE": "", **(env or {})},
    )

    return result.returncode, result.stdout, result.stderr


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout
        assert "sweep" in stdout

    @pytest.mark.parametrize("group", ["db", "preview"])
    def test_group_help(self, group):
        code, stdout, stderr = run_cli_command(f"{group} --help")
        assert code == 0, f"{group} help failed: {stderr}"

    def test_version(self):
        code, stdout, _ = run_cli_command("version")
        assert code == 0
        assert "assessment-engine" in stdout


class TestCLIDatabase:
    """Commands against a throwaway SQLite database."""

    @pytest.fixture
    def db_env(self, tmp_path):
        return {"DATABASE_URL": f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"}

    def test_db_init_and_check(self, db_env):
        code, stdout, stderr = run_cli_command("db init", env=db_env)
        assert code == 0, stderr
        assert "initialized" in stdout

        code, stdout, stderr = run_cli_command("db check", env=db_env)
        assert code == 0, stderr
        assert "reachable" in stdout

    def test_sweep_on_empty_database(self, db_env):
        assert run_cli_command("db init", env=db_env)[0] == 0
        code, stdout, stderr = run_cli_command("sweep", env=db_env)
        assert code == 0, stderr
        assert "Abandoned diagnostics: 0" in stdout

    def test_preview_on_empty_bank(self, db_env):
        assert run_cli_command("db init", env=db_env)[0] == 0
        code, stdout, stderr = run_cli_command("preview diagnostic --seed 1", env=db_env)
        assert code == 0, stderr
        assert "short by 4" in stdout

    def test_unknown_report_token(self, db_env):
        assert run_cli_command("db init", env=db_env)[0] == 0
        code, stdout, _ = run_cli_command("report missing-token", env=db_env)
        assert code == 1
        assert "Report not found" in stdout
