from __future__ import annotations

from typing import Final

APP_NAME: Final[str] = "ferry-cli"
APP_ID: Final[str] = "ferry"
DIST_NAME: Final[str] = "ferry-cli"
DEV_VERSION: Final[str] = "dev"

# Usage events
EVENTS_PAGE_URL: Final[str] = "http://events.ferry-cli.dev/ferry-cli"
TELEMETRY_TIMEOUT_S: Final[float] = 5.0

# Lifecycle timings (seconds)
GRACE_PERIOD_S: Final[float] = 5.0
LOG_FLUSH_DELAY_S: Final[float] = 0.05
REPORT_FLUSH_S: Final[float] = 2.0
INTERRUPT_FLUSH_S: Final[float] = 4.0
KILL_FLUSH_S: Final[float] = 1.0

# Error report message layout
REPORT_DIVIDER: Final[str] = "-" * 56
UNKNOWN_TYPE: Final[str] = "unknown"

# Telemetry context keys
CTX_ERROR: Final[str] = "error"
CTX_TASK: Final[str] = "task"
CTX_TASK_OPTIONS: Final[str] = "task_options"
CTX_TASK_STATS: Final[str] = "task_stats"
CTX_STAGE: Final[str] = "stage"
CTX_RUN_MODE: Final[str] = "run_mode"
CTX_CONN_TYPE: Final[str] = "conn_type"
JSON_CONTEXT_KEYS: Final[tuple] = (CTX_TASK, CTX_TASK_OPTIONS, CTX_TASK_STATS)

# Connections file
ENV_FILE_NAME: Final[str] = "env.toml"
DEFAULT_HOME: Final[str] = "~/.ferry"

# Package index lookup for `ferry update`
PYPI_JSON_URL: Final[str] = "https://pypi.org/pypi/ferry-cli/json"
