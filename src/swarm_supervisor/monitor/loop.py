"""Main monitor loop."""

from __future__ import annotations

import time

from swarm_supervisor.classifier import classify, describe
from swarm_supervisor.common.logging import (
    get_log_file,
    log_error,
    log_fatal,
    log_info,
    log_warning,
)
from swarm_supervisor.errors import ExhaustedRetriesError
from swarm_supervisor.models import FailureClass, HealthStatus
from swarm_supervisor.monitor.context import MonitorContext
from swarm_supervisor.monitor.exit_codes import MonitorExitCode
from swarm_supervisor.monitor.signals import (
    check_existing_pid,
    install_signal_handlers,
    remove_pid_file,
    write_pid_file,
)


def run(ctx: MonitorContext) -> int:
    """Run the monitor loop until shutdown or restart exhaustion.

    Returns an exit code from MonitorExitCode.
    """
    # 1. Check for existing monitor instance
    is_running, existing_pid = check_existing_pid(ctx)
    if is_running:
        log_error(f"Monitor already running (PID: {existing_pid})")
        log_info("Use --status to check status or stop the existing monitor first")
        return MonitorExitCode.STARTUP_FAILED

    # 2. Run pre-flight checks
    preflight_errors = run_preflight_checks(ctx)
    if preflight_errors:
        for err in preflight_errors:
            log_error(err)
        return MonitorExitCode.STARTUP_FAILED

    # 3. Write PID file and install signal handlers
    write_pid_file(ctx)
    install_signal_handlers(ctx)

    try:
        _print_header(ctx)
        return monitor_loop(ctx)
    except Exception as e:
        log_error(f"Monitor error: {e}")
        return MonitorExitCode.ERROR
    finally:
        remove_pid_file(ctx)


def monitor_loop(ctx: MonitorContext) -> int:
    """Poll job health every check interval until stopped."""
    while ctx.running:
        ctx.iteration += 1
        exit_code = run_iteration(ctx)
        if exit_code is not None:
            return exit_code
        _responsive_sleep(ctx, ctx.config.check_interval)

    log_info(f"Monitor shutting down after {ctx.restart_cycles} restart cycle(s)")
    return MonitorExitCode.SUCCESS


def run_iteration(ctx: MonitorContext) -> int | None:
    """Run one health check, restarting the job if it stopped.

    Returns an exit code when the loop must end, otherwise None.
    """
    status = ctx.health.status()

    if status is not HealthStatus.STOPPED:
        if status is HealthStatus.RUNNING:
            log_info("Job is running")
        else:
            log_warning(
                "Job is running but looks stalled "
                f"(no CPU use and no output for {ctx.config.stale_threshold:g}s)"
            )
        usage = ctx.health.check_memory_pressure()
        log_info(f"Memory usage: {usage.used_percent}%")
        if usage.over_threshold:
            # Advisory only: high memory does not trigger a restart
            log_warning(
                f"Memory usage high: {usage.used_percent}% "
                f"(threshold {ctx.config.memory_threshold}%)"
            )
        return None

    log_warning("Job has stopped!")
    failure = classify(ctx.health.capture_output())
    if failure is FailureClass.UNKNOWN:
        log_info(describe(failure))
    else:
        log_warning(f"Detected error type: {failure.value}")
        log_warning(describe(failure))

    ctx.restart_cycles += 1
    log_info(f"Starting restart cycle {ctx.restart_cycles}")
    try:
        result = ctx.restarter.run(failure)
    except ExhaustedRetriesError as e:
        log_fatal(f"{e} in restart cycle {ctx.restart_cycles}; stopping monitor")
        return MonitorExitCode.RESTARTS_EXHAUSTED
    # An interrupted cycle leaves ctx.running cleared, which ends the loop
    if result.succeeded:
        log_info(f"Restart cycle {ctx.restart_cycles} recovered the job")
    return None


def run_preflight_checks(ctx: MonitorContext) -> list[str]:
    """Run startup dependency checks.

    Returns a list of error messages. Empty list means all checks passed.
    """
    failures: list[str] = []
    config = ctx.config

    if not ctx.sessions.is_available():
        failures.append(
            f"'{ctx.sessions.executable}' command not found, please install it"
        )

    if not config.work_dir.is_dir():
        failures.append(f"Working directory does not exist: {config.work_dir}")
    elif not config.script_path.is_file():
        failures.append(f"Launch script does not exist: {config.script_path}")
    else:
        for directory in (config.logs_dir, config.resolved_log_file.parent):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                failures.append(f"Cannot create log directory {directory}: {e}")

    return failures


def _print_header(ctx: MonitorContext) -> None:
    config = ctx.config
    log_info("Starting RL Swarm job monitor")
    log_info(f"Session: {config.session_name} ({config.session_backend})")
    log_info(f"Working directory: {config.work_dir}")
    log_info(f"Check interval: {config.check_interval:g}s")
    log_info(f"Max restart attempts: {config.max_restart_attempts}")
    log_file = get_log_file()
    if log_file is not None:
        log_info(f"Log file: {log_file}")


def _responsive_sleep(ctx: MonitorContext, total_seconds: float, tick: float = 1.0) -> None:
    """Sleep for total_seconds, waking every tick to honor shutdown requests."""
    elapsed = 0.0
    while elapsed < total_seconds and ctx.running:
        step = min(tick, total_seconds - elapsed)
        time.sleep(step)
        elapsed += step
