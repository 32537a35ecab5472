from __future__ import annotations

import argparse
import logging
from typing import Optional

import requests

from connectors.runtime.context import CancelToken, TelemetryContext
from connectors.utils import DEFAULT_TIMEOUT, requests_retry_session

from .config import Settings
from .constants import DEV_VERSION, DIST_NAME, PYPI_JSON_URL
from .errors import FerryError
from .ui import console

logger = logging.getLogger(__name__)


def latest_version(session: requests.Session) -> str:
    try:
        resp = session.get(PYPI_JSON_URL, timeout=DEFAULT_TIMEOUT)
        resp.raise_for_status()
        return str(resp.json()["info"]["version"])
    except (requests.RequestException, KeyError, ValueError) as e:
        raise FerryError("could not check for the latest version", debug=f"GET {PYPI_JSON_URL}: {e}") from e


def update_cli(
    args: argparse.Namespace,
    *,
    cancel: CancelToken,
    context: TelemetryContext,
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> str:
    latest = latest_version(session or requests_retry_session())
    logger.debug("installed=%s latest=%s", settings.version, latest)

    if settings.version != DEV_VERSION and latest == settings.version:
        console.print(f"[green]{DIST_NAME} {settings.version} is already the latest version[/green]")
    else:
        console.print(
            f"[yellow]{DIST_NAME} {latest} is available (installed: {settings.version}).[/yellow]\n"
            f"Upgrade with: [bold]pip install -U {DIST_NAME}[/bold]"
        )
    return latest
