"""Tests for the supervisor CLI."""

from __future__ import annotations

import os
from unittest.mock import Mock, patch

import pytest

from swarm_supervisor.errors import ExhaustedRetriesError
from swarm_supervisor.models import AttemptOutcome, RestartAttempt, RestartResult
from swarm_supervisor.monitor.cli import main
from swarm_supervisor.monitor.exit_codes import MonitorExitCode


@pytest.fixture
def cli_env(ctx):
    """Point the CLI at the test work dir and inject the fake context."""
    env = {"SWARM_WORK_DIR": str(ctx.config.work_dir)}
    with patch.dict(os.environ, env, clear=True), patch(
        "swarm_supervisor.monitor.cli.MonitorContext", return_value=ctx
    ):
        yield ctx


class TestArguments:
    def test_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0
        assert "--restart" in capsys.readouterr().out

    def test_unknown_argument(self, capsys) -> None:
        assert main(["--bogus"]) == MonitorExitCode.STARTUP_FAILED
        assert "Unknown argument: --bogus" in capsys.readouterr().err

    def test_unknown_positional(self) -> None:
        assert main(["restart"]) == MonitorExitCode.STARTUP_FAILED

    def test_invalid_config(self) -> None:
        with patch.dict(os.environ, {"SWARM_MAX_RESTART_ATTEMPTS": "0"}, clear=True):
            assert main([]) == MonitorExitCode.STARTUP_FAILED

    def test_no_arguments_runs_monitor(self, cli_env) -> None:
        with patch("swarm_supervisor.monitor.cli.run", return_value=0) as mock_run:
            assert main([]) == 0
        mock_run.assert_called_once_with(cli_env)


class TestKill:
    def test_kill_without_session(self, cli_env, sessions, capsys) -> None:
        assert main(["--kill"]) == MonitorExitCode.SUCCESS
        assert sessions.destroy_calls == 0
        assert "All processes stopped" in capsys.readouterr().err

    def test_kill_short_flag(self, cli_env, sessions, processes, job_process) -> None:
        sessions.alive = True
        processes.processes.append(job_process)
        assert main(["-k"]) == MonitorExitCode.SUCCESS
        assert sessions.alive is False
        assert processes.terminated == [job_process]


class TestStatus:
    def test_status_report(self, cli_env, processes, job_process, capsys) -> None:
        processes.processes.append(job_process)
        free = Mock(returncode=0, stdout="Mem: 16G 4G 12G\n")
        with patch("swarm_supervisor.monitor.cli.subprocess.run", return_value=free):
            assert main(["--status"]) == MonitorExitCode.SUCCESS

        out = capsys.readouterr().out
        assert "Session 'gensyn' does not exist" in out
        assert f"PIDs (rgym_exp.runner.swarm_launcher): {job_process.pid}" in out
        assert "Training is running" in out
        assert "Monitor loop not running" in out
        assert "Memory usage (25%)" in out

    def test_status_without_tools(self, cli_env, capsys) -> None:
        with patch(
            "swarm_supervisor.monitor.cli.subprocess.run", side_effect=FileNotFoundError
        ):
            assert main(["-s"]) == MonitorExitCode.SUCCESS
        out = capsys.readouterr().out
        assert "Training is not running" in out
        assert "(free not available)" in out


class TestRestart:
    def test_manual_restart(self, cli_env, capsys) -> None:
        recovered = RestartResult([RestartAttempt(1, AttemptOutcome.SUCCESS)])
        with patch.object(cli_env.restarter, "run", return_value=recovered) as mock_run:
            assert main(["--restart"]) == MonitorExitCode.SUCCESS
        mock_run.assert_called_once_with()
        err = capsys.readouterr().err
        assert "Manual restart requested" in err
        assert "Manual restart finished after 1 attempt(s)" in err

    def test_manual_restart_failure_still_exits_zero(self, cli_env, capsys) -> None:
        with patch.object(
            cli_env.restarter, "run", side_effect=ExhaustedRetriesError([])
        ):
            assert main(["-r"]) == MonitorExitCode.SUCCESS
        assert "Manual restart failed" in capsys.readouterr().err

    def test_refused_while_monitor_running(self, cli_env) -> None:
        cli_env.config.logs_dir.mkdir(parents=True)
        cli_env.config.pid_file.write_text(str(os.getppid()))
        with patch.object(cli_env.restarter, "run") as mock_run:
            assert main(["--restart"]) == MonitorExitCode.STARTUP_FAILED
        mock_run.assert_not_called()

    def test_missing_script(self, cli_env) -> None:
        cli_env.config.script_path.unlink()
        with patch.object(cli_env.restarter, "run") as mock_run:
            assert main(["--restart"]) == MonitorExitCode.STARTUP_FAILED
        mock_run.assert_not_called()


class TestPersistentLog:
    def test_kill_outcome_reaches_log_file(self, cli_env) -> None:
        log_file = cli_env.config.resolved_log_file
        assert not log_file.parent.exists()

        assert main(["--kill"]) == MonitorExitCode.SUCCESS

        assert "All processes stopped" in log_file.read_text()

    def test_status_creates_log_dir(self, cli_env) -> None:
        with patch(
            "swarm_supervisor.monitor.cli.subprocess.run", side_effect=FileNotFoundError
        ):
            main(["--status"])
        assert cli_env.config.resolved_log_file.parent.is_dir()

    def test_missing_work_dir_is_not_created(self, tmp_path) -> None:
        missing = tmp_path / "gone"
        with patch.dict(os.environ, {"SWARM_WORK_DIR": str(missing)}, clear=True):
            assert main(["--restart"]) == MonitorExitCode.STARTUP_FAILED
        assert not missing.exists()
