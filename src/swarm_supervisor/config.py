"""Supervision configuration."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass

from swarm_supervisor.common.config import env_bool, env_float, env_int, env_list, env_str
from swarm_supervisor.errors import ConfigError


# Configuration defaults, matching the monitor_rl_swarm.sh deployment
DEFAULT_SESSION_NAME = "gensyn"
DEFAULT_WORK_DIR = "/root/rl-swarm"
DEFAULT_VENV_NAME = "myenv"
DEFAULT_SCRIPT_NAME = "run_rl_swarm.sh"
DEFAULT_MAX_RESTART_ATTEMPTS = 5
DEFAULT_RESTART_DELAY = 30  # seconds
DEFAULT_CHECK_INTERVAL = 60  # seconds
DEFAULT_MEMORY_THRESHOLD = 90  # percent
DEFAULT_STALE_THRESHOLD = 300  # seconds without pane output change
DEFAULT_CONFIRM_POLLS = 12
DEFAULT_CONFIRM_INTERVAL = 10  # seconds
DEFAULT_LAUNCH_SETTLE_DELAY = 30  # seconds
DEFAULT_CLEANUP_SETTLE_DELAY = 10  # seconds
DEFAULT_SESSION_RESET_DELAY = 2  # seconds
DEFAULT_CPU_ACTIVE_THRESHOLD = 0.1  # percent
DEFAULT_DIAGNOSTIC_LINES = 10

# Entry points of the training job across launcher versions
DEFAULT_PROCESS_PATTERNS = (
    "rgym_exp.runner.swarm_launcher",
    "genrl_swarm.*swarm_launcher",
    "swarm_launcher",
)
# Auxiliary login/web helper started by run_rl_swarm.sh
DEFAULT_HELPER_PATTERNS = (
    "yarn start",
    "node.*modal-login",
)
DEFAULT_IDENTITY_FILE = "swarm.pem"
DEFAULT_IDENTITY_TEMP_DIR = "modal-login/temp-data"

SESSION_BACKENDS = ("screen", "tmux")
LAUNCH_STRATEGIES = ("direct", "send-keys")

_DURATION_FIELDS = (
    "restart_delay",
    "check_interval",
    "confirm_interval",
    "launch_settle_delay",
    "cleanup_settle_delay",
    "session_reset_delay",
    "stale_threshold",
)


@dataclass(frozen=True)
class SupervisionConfig:
    """Immutable configuration for one supervised job.

    Loaded once at startup (see ``from_env``) and passed explicitly to
    every component.
    """

    work_dir: pathlib.Path = pathlib.Path(DEFAULT_WORK_DIR)
    session_name: str = DEFAULT_SESSION_NAME
    venv_path: pathlib.Path | None = None  # None = <work_dir>/myenv
    script_name: str = DEFAULT_SCRIPT_NAME
    log_file: pathlib.Path | None = None  # None = <work_dir>/logs/monitor.log

    # Restart policy
    max_restart_attempts: int = DEFAULT_MAX_RESTART_ATTEMPTS
    restart_delay: float = DEFAULT_RESTART_DELAY
    check_interval: float = DEFAULT_CHECK_INTERVAL
    confirm_polls: int = DEFAULT_CONFIRM_POLLS
    confirm_interval: float = DEFAULT_CONFIRM_INTERVAL
    launch_settle_delay: float = DEFAULT_LAUNCH_SETTLE_DELAY
    cleanup_settle_delay: float = DEFAULT_CLEANUP_SETTLE_DELAY
    session_reset_delay: float = DEFAULT_SESSION_RESET_DELAY
    diagnostic_lines: int = DEFAULT_DIAGNOSTIC_LINES

    # Health thresholds
    memory_threshold: int = DEFAULT_MEMORY_THRESHOLD
    stale_threshold: float = DEFAULT_STALE_THRESHOLD
    cpu_active_threshold: float = DEFAULT_CPU_ACTIVE_THRESHOLD

    process_patterns: tuple[str, ...] = DEFAULT_PROCESS_PATTERNS
    helper_patterns: tuple[str, ...] = DEFAULT_HELPER_PATTERNS
    identity_file: str = DEFAULT_IDENTITY_FILE
    identity_temp_dir: str = DEFAULT_IDENTITY_TEMP_DIR

    session_backend: str = "screen"
    launch_strategy: str = "direct"
    drop_caches: bool = True

    def __post_init__(self) -> None:
        for name in _DURATION_FIELDS:
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0 (got {getattr(self, name)})")
        if self.max_restart_attempts < 1:
            raise ConfigError(
                f"max_restart_attempts must be >= 1 (got {self.max_restart_attempts})"
            )
        if self.confirm_polls < 1:
            raise ConfigError(f"confirm_polls must be >= 1 (got {self.confirm_polls})")
        if self.diagnostic_lines < 1:
            raise ConfigError(
                f"diagnostic_lines must be >= 1 (got {self.diagnostic_lines})"
            )
        if not 0 < self.memory_threshold <= 100:
            raise ConfigError(
                f"memory_threshold must be within 1..100 (got {self.memory_threshold})"
            )
        if not self.process_patterns:
            raise ConfigError("at least one process pattern is required")
        if self.session_backend not in SESSION_BACKENDS:
            raise ConfigError(
                f"unknown session backend '{self.session_backend}' "
                f"(expected one of: {', '.join(SESSION_BACKENDS)})"
            )
        if self.launch_strategy not in LAUNCH_STRATEGIES:
            raise ConfigError(
                f"unknown launch strategy '{self.launch_strategy}' "
                f"(expected one of: {', '.join(LAUNCH_STRATEGIES)})"
            )

    @classmethod
    def from_env(cls) -> SupervisionConfig:
        """Create config from SWARM_* environment variables."""
        work_dir = pathlib.Path(env_str("SWARM_WORK_DIR", DEFAULT_WORK_DIR))
        venv = env_str("SWARM_VENV_PATH")
        log_file = env_str("SWARM_LOG_FILE")
        return cls(
            work_dir=work_dir,
            session_name=env_str("SWARM_SESSION_NAME", DEFAULT_SESSION_NAME),
            venv_path=pathlib.Path(venv) if venv else None,
            script_name=env_str("SWARM_SCRIPT_NAME", DEFAULT_SCRIPT_NAME),
            log_file=pathlib.Path(log_file) if log_file else None,
            max_restart_attempts=env_int(
                "SWARM_MAX_RESTART_ATTEMPTS", DEFAULT_MAX_RESTART_ATTEMPTS
            ),
            restart_delay=env_float("SWARM_RESTART_DELAY", DEFAULT_RESTART_DELAY),
            check_interval=env_float("SWARM_CHECK_INTERVAL", DEFAULT_CHECK_INTERVAL),
            confirm_polls=env_int("SWARM_CONFIRM_POLLS", DEFAULT_CONFIRM_POLLS),
            confirm_interval=env_float("SWARM_CONFIRM_INTERVAL", DEFAULT_CONFIRM_INTERVAL),
            launch_settle_delay=env_float(
                "SWARM_LAUNCH_SETTLE_DELAY", DEFAULT_LAUNCH_SETTLE_DELAY
            ),
            cleanup_settle_delay=env_float(
                "SWARM_CLEANUP_SETTLE_DELAY", DEFAULT_CLEANUP_SETTLE_DELAY
            ),
            session_reset_delay=env_float(
                "SWARM_SESSION_RESET_DELAY", DEFAULT_SESSION_RESET_DELAY
            ),
            diagnostic_lines=env_int("SWARM_DIAGNOSTIC_LINES", DEFAULT_DIAGNOSTIC_LINES),
            memory_threshold=env_int("SWARM_MEMORY_THRESHOLD", DEFAULT_MEMORY_THRESHOLD),
            stale_threshold=env_float("SWARM_STALE_THRESHOLD", DEFAULT_STALE_THRESHOLD),
            cpu_active_threshold=env_float(
                "SWARM_CPU_ACTIVE_THRESHOLD", DEFAULT_CPU_ACTIVE_THRESHOLD
            ),
            process_patterns=tuple(
                env_list("SWARM_PROCESS_PATTERNS", default=list(DEFAULT_PROCESS_PATTERNS))
            ),
            helper_patterns=tuple(
                env_list("SWARM_HELPER_PATTERNS", default=list(DEFAULT_HELPER_PATTERNS))
            ),
            identity_file=env_str("SWARM_IDENTITY_FILE", DEFAULT_IDENTITY_FILE),
            identity_temp_dir=env_str("SWARM_IDENTITY_TEMP_DIR", DEFAULT_IDENTITY_TEMP_DIR),
            session_backend=env_str("SWARM_SESSION_BACKEND", "screen").lower(),
            launch_strategy=env_str("SWARM_LAUNCH_STRATEGY", "direct").lower(),
            drop_caches=env_bool("SWARM_DROP_CACHES", True),
        )

    @property
    def resolved_venv_path(self) -> pathlib.Path:
        return self.venv_path if self.venv_path is not None else self.work_dir / DEFAULT_VENV_NAME

    @property
    def logs_dir(self) -> pathlib.Path:
        return self.work_dir / "logs"

    @property
    def resolved_log_file(self) -> pathlib.Path:
        return self.log_file if self.log_file is not None else self.logs_dir / "monitor.log"

    @property
    def script_path(self) -> pathlib.Path:
        return self.work_dir / self.script_name

    @property
    def capture_file(self) -> pathlib.Path:
        """Mirror of the last pane capture; its mtime marks the last output change."""
        return self.logs_dir / "screen_output.txt"

    @property
    def pid_file(self) -> pathlib.Path:
        return self.logs_dir / "monitor.pid"

    @property
    def identity_path(self) -> pathlib.Path:
        return self.work_dir / self.identity_file

    @property
    def identity_temp_path(self) -> pathlib.Path:
        return self.work_dir / self.identity_temp_dir
