"""Job monitor - the supervision loop and its command line.

The monitor:
- Polls the job's health every check interval
- Classifies the failure from the session pane when the job stops
- Runs a bounded restart cycle and exits when it is exhausted
- Shuts down on SIGINT/SIGTERM, leaving a healthy job running

Usage:
    swarm-supervisor              # Start monitoring (runs until cancelled)
    swarm-supervisor --status     # Show job status
    swarm-supervisor --restart    # Restart the job once
    swarm-supervisor --kill       # Stop everything
"""

from swarm_supervisor.monitor.context import MonitorContext
from swarm_supervisor.monitor.exit_codes import MonitorExitCode
from swarm_supervisor.monitor.loop import run

__all__ = [
    "MonitorContext",
    "MonitorExitCode",
    "run",
]
