"""Tests for supervision configuration and env parsing helpers."""

from __future__ import annotations

import os
import pathlib
from unittest.mock import patch

import pytest

from swarm_supervisor.common.config import env_bool, env_float, env_int, env_list, env_str
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.errors import ConfigError, StartupError


class TestEnvHelpers:
    def test_env_str(self) -> None:
        with patch.dict(os.environ, {"X": "value"}, clear=True):
            assert env_str("X") == "value"
            assert env_str("Y", "default") == "default"

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("YES", True), ("1", True), ("off", False), ("0", False), ("maybe", True)],
    )
    def test_env_bool(self, raw: str, expected: bool) -> None:
        with patch.dict(os.environ, {"FLAG": raw}, clear=True):
            assert env_bool("FLAG", True) is expected

    def test_env_int_invalid(self) -> None:
        with patch.dict(os.environ, {"N": "ten"}, clear=True):
            assert env_int("N", 10) == 10

    def test_env_float(self) -> None:
        with patch.dict(os.environ, {"F": "0.5"}, clear=True):
            assert env_float("F", 1.0) == 0.5
            assert env_float("MISSING", 1.0) == 1.0

    def test_env_list(self) -> None:
        with patch.dict(os.environ, {"L": "a, b,,c "}, clear=True):
            assert env_list("L") == ["a", "b", "c"]
        with patch.dict(os.environ, {}, clear=True):
            assert env_list("L", default=["x"]) == ["x"]


class TestSupervisionConfig:
    def test_defaults(self) -> None:
        config = SupervisionConfig()
        assert config.session_name == "gensyn"
        assert config.work_dir == pathlib.Path("/root/rl-swarm")
        assert config.script_name == "run_rl_swarm.sh"
        assert config.max_restart_attempts == 5
        assert config.restart_delay == 30
        assert config.check_interval == 60
        assert config.memory_threshold == 90
        assert config.stale_threshold == 300
        assert config.confirm_polls == 12
        assert config.confirm_interval == 10
        assert config.session_backend == "screen"
        assert config.launch_strategy == "direct"
        assert "rgym_exp.runner.swarm_launcher" in config.process_patterns
        assert "node.*modal-login" in config.helper_patterns

    def test_derived_paths(self) -> None:
        config = SupervisionConfig(work_dir=pathlib.Path("/srv/swarm"))
        assert config.resolved_venv_path == pathlib.Path("/srv/swarm/myenv")
        assert config.resolved_log_file == pathlib.Path("/srv/swarm/logs/monitor.log")
        assert config.script_path == pathlib.Path("/srv/swarm/run_rl_swarm.sh")
        assert config.capture_file == pathlib.Path("/srv/swarm/logs/screen_output.txt")
        assert config.pid_file == pathlib.Path("/srv/swarm/logs/monitor.pid")
        assert config.identity_path == pathlib.Path("/srv/swarm/swarm.pem")
        assert config.identity_temp_path == pathlib.Path("/srv/swarm/modal-login/temp-data")

    def test_is_immutable(self) -> None:
        config = SupervisionConfig()
        with pytest.raises(AttributeError):
            config.session_name = "other"  # type: ignore[misc]

    @pytest.mark.parametrize(
        "field_name",
        ["restart_delay", "check_interval", "confirm_interval", "stale_threshold"],
    )
    def test_durations_must_be_positive(self, field_name: str) -> None:
        with pytest.raises(ConfigError, match=field_name):
            SupervisionConfig(**{field_name: 0})

    def test_max_attempts_at_least_one(self) -> None:
        with pytest.raises(ConfigError):
            SupervisionConfig(max_restart_attempts=0)
        assert SupervisionConfig(max_restart_attempts=1).max_restart_attempts == 1

    @pytest.mark.parametrize("lines", [0, -5])
    def test_diagnostic_lines_at_least_one(self, lines: int) -> None:
        with pytest.raises(ConfigError, match="diagnostic_lines"):
            SupervisionConfig(diagnostic_lines=lines)

    def test_memory_threshold_range(self) -> None:
        with pytest.raises(ConfigError):
            SupervisionConfig(memory_threshold=101)

    def test_requires_process_pattern(self) -> None:
        with pytest.raises(ConfigError):
            SupervisionConfig(process_patterns=())

    def test_unknown_backend(self) -> None:
        with pytest.raises(StartupError, match="backend"):
            SupervisionConfig(session_backend="zellij")

    def test_unknown_strategy(self) -> None:
        with pytest.raises(ConfigError, match="strategy"):
            SupervisionConfig(launch_strategy="teleport")

    def test_from_env_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert SupervisionConfig.from_env() == SupervisionConfig()

    def test_from_env_overrides(self) -> None:
        env = {
            "SWARM_SESSION_NAME": "swarm",
            "SWARM_WORK_DIR": "/data/rl-swarm",
            "SWARM_VENV_PATH": "/opt/venv",
            "SWARM_LOG_FILE": "/var/log/swarm.log",
            "SWARM_MAX_RESTART_ATTEMPTS": "3",
            "SWARM_CHECK_INTERVAL": "15",
            "SWARM_STALE_THRESHOLD": "120.5",
            "SWARM_HELPER_PATTERNS": "",
            "SWARM_PROCESS_PATTERNS": "my_launcher, other_launcher",
            "SWARM_SESSION_BACKEND": "TMUX",
            "SWARM_LAUNCH_STRATEGY": "send-keys",
            "SWARM_DROP_CACHES": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            config = SupervisionConfig.from_env()
        assert config.session_name == "swarm"
        assert config.work_dir == pathlib.Path("/data/rl-swarm")
        assert config.resolved_venv_path == pathlib.Path("/opt/venv")
        assert config.resolved_log_file == pathlib.Path("/var/log/swarm.log")
        assert config.max_restart_attempts == 3
        assert config.check_interval == 15
        assert config.stale_threshold == 120.5
        assert config.helper_patterns == ()
        assert config.process_patterns == ("my_launcher", "other_launcher")
        assert config.session_backend == "tmux"
        assert config.launch_strategy == "send-keys"
        assert config.drop_caches is False

    def test_from_env_invalid_value_raises(self) -> None:
        with patch.dict(os.environ, {"SWARM_RESTART_DELAY": "-5"}, clear=True):
            with pytest.raises(ConfigError):
                SupervisionConfig.from_env()
