"""
Phase 1: Command execution

Tests for the single entry point through which every external tool runs.
"""
import sys

import pytest

from src.autorun.runner import NOT_FOUND_RETURNCODE, TIMEOUT_RETURNCODE, CommandRunner


@pytest.mark.phase1
class TestCommandRunner:
    """CommandRunner result and echo behaviour"""

    def test_success_captures_output(self):
        runner = CommandRunner(echo=False)
        result = runner.run([sys.executable, "-c", "print('hello')"])

        assert result.ok
        assert result.output == "hello"
        assert result.argv[0] == sys.executable

    def test_failure_is_returned_not_raised(self):
        runner = CommandRunner(echo=False)
        result = runner.run([sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"])

        assert not result.ok
        assert result.returncode == 3
        assert "exited with code 3: bad" in result.describe()

    def test_command_echoed_before_execution(self, capsys):
        runner = CommandRunner()
        runner.run([sys.executable, "-c", "pass", "two words"])

        out = capsys.readouterr().out
        assert out.splitlines()[0].endswith("-c pass 'two words'")

    def test_stdin_input(self):
        runner = CommandRunner(echo=False)
        result = runner.run(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            input="script",
        )

        assert result.output == "SCRIPT"

    def test_missing_executable(self):
        runner = CommandRunner(echo=False)
        result = runner.run(["definitely-not-an-installed-tool-xyz", "--version"])

        assert result.returncode == NOT_FOUND_RETURNCODE
        assert "command not found" in result.stderr

    def test_timeout(self):
        runner = CommandRunner(timeout=0.5, echo=False)
        result = runner.run([sys.executable, "-c", "import time; time.sleep(10)"])

        assert result.returncode == TIMEOUT_RETURNCODE
        assert not result.ok
