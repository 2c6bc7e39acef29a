"""CLI entry point for the supervisor."""

from __future__ import annotations

import argparse
import subprocess
import sys
from typing import Sequence

from swarm_supervisor.common.logging import log_error, log_info, log_warning, set_log_file
from swarm_supervisor.config import SupervisionConfig
from swarm_supervisor.errors import ExhaustedRetriesError, ProbeError, StartupError
from swarm_supervisor.monitor.context import MonitorContext
from swarm_supervisor.monitor.exit_codes import MonitorExitCode
from swarm_supervisor.monitor.loop import run, run_preflight_checks
from swarm_supervisor.monitor.signals import check_existing_pid

# Processes shown in the status report besides the job itself
RELATED_PROCESS_PATTERNS = (r"python.*swarm", r"yarn", r"node")


def _print_command(cmd: list[str]) -> None:
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False, timeout=10)
        print(result.stdout.rstrip() or f"  ({' '.join(cmd)} produced no output)")
    except (OSError, subprocess.SubprocessError):
        print(f"  ({cmd[0]} not available)")


def _ensure_log_dir(config: SupervisionConfig) -> None:
    # Without parents=True so a missing work dir still fails preflight
    try:
        config.resolved_log_file.parent.mkdir(exist_ok=True)
    except OSError:
        pass


def show_status(ctx: MonitorContext) -> int:
    """Print session, job, memory and disk status and exit."""
    config = ctx.config
    print("=== RL Swarm status ===")
    print()

    print("Session:")
    if ctx.sessions.exists():
        print(f"  ✓ Session '{config.session_name}' exists")
    else:
        print(f"  ✗ Session '{config.session_name}' does not exist")

    print()
    print("Training job:")
    found = False
    for pattern in config.process_patterns:
        try:
            procs = ctx.processes.find_matching([pattern])
        except ProbeError as e:
            print(f"  ? Cannot read process table: {e}")
            break
        if procs:
            found = True
            pids = " ".join(str(p.pid) for p in procs)
            print(f"  PIDs ({pattern}): {pids}")
    if found:
        print("  ✓ Training is running")
    else:
        print("  ✗ Training is not running")

    print()
    print("Monitor:")
    is_running, pid = check_existing_pid(ctx)
    if is_running:
        print(f"  ✓ Monitor loop running (PID: {pid})")
    else:
        print("  ✗ Monitor loop not running")

    print()
    usage = ctx.health.check_memory_pressure()
    print(f"Memory usage ({usage.used_percent}%):")
    _print_command(["free", "-h"])

    print()
    print("Disk usage:")
    _print_command(["df", "-h", "/"])

    print()
    print("Related processes:")
    try:
        related = ctx.processes.find_matching(RELATED_PROCESS_PATTERNS)
    except ProbeError:
        related = []
    if related:
        for proc in related:
            print(f"  {proc.pid:>7} {proc.cpu_percent:5.1f}% {proc.command}")
    else:
        print("  none")

    return MonitorExitCode.SUCCESS


def manual_restart(ctx: MonitorContext) -> int:
    """Run one restart cycle now and exit."""
    is_running, pid = check_existing_pid(ctx)
    if is_running:
        log_error(f"Monitor loop is running (PID: {pid}) and owns restarts")
        log_info("Stop the monitor first, or let it restart the job")
        return MonitorExitCode.STARTUP_FAILED

    preflight_errors = run_preflight_checks(ctx)
    if preflight_errors:
        for err in preflight_errors:
            log_error(err)
        return MonitorExitCode.STARTUP_FAILED

    log_info("Manual restart requested")
    try:
        result = ctx.restarter.run()
    except ExhaustedRetriesError as e:
        log_error(f"Manual restart failed: {e}")
    else:
        if result.succeeded:
            log_info(f"Manual restart finished after {result.attempt_count} attempt(s)")
        else:
            log_warning("Manual restart interrupted")
    return MonitorExitCode.SUCCESS


def kill_all(ctx: MonitorContext) -> int:
    """Stop the job, its helpers and the session."""
    ctx.restarter.stop_all()
    return MonitorExitCode.SUCCESS


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the supervisor CLI."""
    parser = argparse.ArgumentParser(
        prog="swarm-supervisor",
        description="Monitor an RL Swarm training job and restart it when it stops",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Environment Variables:
    SWARM_SESSION_NAME          Multiplexer session name (default: gensyn)
    SWARM_WORK_DIR              Job working directory (default: /root/rl-swarm)
    SWARM_VENV_PATH             Virtualenv to activate (default: <work dir>/myenv)
    SWARM_SCRIPT_NAME           Launch script (default: run_rl_swarm.sh)
    SWARM_LOG_FILE              Log file (default: <work dir>/logs/monitor.log)
    SWARM_CHECK_INTERVAL        Seconds between health checks (default: 60)
    SWARM_MAX_RESTART_ATTEMPTS  Attempts per restart cycle (default: 5)
    SWARM_RESTART_DELAY         Seconds between attempts (default: 30)
    SWARM_MEMORY_THRESHOLD      Memory warning threshold in percent (default: 90)
    SWARM_STALE_THRESHOLD       Seconds without output before a job looks hung (default: 300)
    SWARM_SESSION_BACKEND       screen or tmux (default: screen)
    SWARM_LAUNCH_STRATEGY       direct or send-keys (default: direct)
    SWARM_HELPER_PATTERNS       Helper processes killed during cleanup (comma-separated)

Examples:
    swarm-supervisor            # Monitor the job and restart it when it stops
    swarm-supervisor --status   # Show session, job, memory and disk status
    swarm-supervisor --restart  # Restart the job now
    swarm-supervisor --kill     # Stop the job, its helpers and the session
""",
    )
    parser.add_argument(
        "--status", "-s",
        action="store_true",
        help="Show current status and exit",
    )
    parser.add_argument(
        "--restart", "-r",
        action="store_true",
        help="Restart the training job and exit",
    )
    parser.add_argument(
        "--kill", "-k",
        action="store_true",
        help="Stop all related processes and exit",
    )

    args, unknown = parser.parse_known_args(argv)
    if unknown:
        print(f"Unknown argument: {' '.join(unknown)}", file=sys.stderr)
        parser.print_help(sys.stderr)
        return MonitorExitCode.STARTUP_FAILED

    try:
        config = SupervisionConfig.from_env()
    except StartupError as e:
        log_error(f"Invalid configuration: {e}")
        return MonitorExitCode.STARTUP_FAILED

    set_log_file(config.resolved_log_file)
    ctx = MonitorContext(config=config)

    if args.status or args.restart or args.kill:
        _ensure_log_dir(config)

    if args.status:
        return show_status(ctx)
    if args.restart:
        return manual_restart(ctx)
    if args.kill:
        return kill_all(ctx)
    return run(ctx)


if __name__ == "__main__":
    sys.exit(main())
