from __future__ import annotations

import os
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as dist_version
from pathlib import Path
from typing import Mapping, Optional

from .constants import DEFAULT_HOME, DEV_VERSION, DIST_NAME, ENV_FILE_NAME

_TRUE = {"1", "t", "true", "y", "yes", "on"}
_FALSE = {"0", "f", "false", "n", "no", "off"}


def to_bool(value: Optional[str], default: bool = False) -> bool:
    s = (value or "").strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    return default


def app_version() -> str:
    try:
        return dist_version(DIST_NAME)
    except PackageNotFoundError:
        return DEV_VERSION


def detect_package(environ: Mapping[str, str]) -> str:
    """Distribution flavor reported with telemetry and error reports."""
    explicit = (environ.get("FERRY_PACKAGE") or "").strip()
    if explicit:
        return explicit
    if os.path.exists("/.dockerenv"):
        return "docker"
    return "pip"


@dataclass(frozen=True)
class Settings:
    """
    Environment-derived toggles, read once at startup.

    FERRY_DISABLE_TELEMETRY   truthy disables usage events and error reports
    FERRY_SHOW_PROGRESS       "false" hides the progress spinner
    FERRY_BULK_EXPORT_FLOW_CSV  alternate bulk-export mode, passed to tasks
    FERRY_PROJECT_ID          project identifier (falls back to GITHUB_REPOSITORY_ID)
    FERRY_DEBUG               TRACE | LOW | any value for DEBUG
    FERRY_LOGGING             TASK | MASTER | WORKER | unset (console)
    FERRY_LOGGING_COLOR       truthy enables colored console logs
    FERRY_TELEMETRY_URL       usage-event collector endpoint
    FERRY_SENTRY_DSN          error-report collector DSN
    FERRY_HOME                directory holding env.toml
    """
    version: str = DEV_VERSION
    telemetry_enabled: bool = True
    show_progress: bool = True
    bulk_export_flow_csv: bool = False
    project_id: str = ""
    debug: str = ""
    logging_mode: str = ""
    logging_color: bool = False
    telemetry_url: str = ""
    sentry_dsn: str = ""
    home_dir: str = DEFAULT_HOME
    package: str = "pip"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, *, version: Optional[str] = None) -> "Settings":
        env = os.environ if environ is None else environ
        disable = env.get("FERRY_DISABLE_TELEMETRY")
        return cls(
            version=version or app_version(),
            telemetry_enabled=not to_bool(disable) if disable else True,
            show_progress=(env.get("FERRY_SHOW_PROGRESS") or "").strip().lower() != "false",
            bulk_export_flow_csv=to_bool(env.get("FERRY_BULK_EXPORT_FLOW_CSV")),
            project_id=(env.get("FERRY_PROJECT_ID") or env.get("GITHUB_REPOSITORY_ID") or "").strip(),
            debug=(env.get("FERRY_DEBUG") or "").strip(),
            logging_mode=(env.get("FERRY_LOGGING") or "").strip().upper(),
            logging_color=to_bool(env.get("FERRY_LOGGING_COLOR")),
            telemetry_url=(env.get("FERRY_TELEMETRY_URL") or "").strip(),
            sentry_dsn=(env.get("FERRY_SENTRY_DSN") or "").strip(),
            home_dir=(env.get("FERRY_HOME") or DEFAULT_HOME).strip(),
            package=detect_package(env),
        )

    @property
    def env_file(self) -> Path:
        return Path(self.home_dir).expanduser() / ENV_FILE_NAME
