"""
Stable, privacy-preserving installation identifier.

The raw platform machine id never leaves the host: it is used as the key of
an HMAC over the application id, so the same machine yields different ids for
different applications. A project id (e.g. a CI repository id), when given,
takes precedence and is hashed instead.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import platform
import re
import subprocess
from typing import Callable, Dict, List, Optional

from .constants import APP_ID

logger = logging.getLogger(__name__)

# Module-level cache: resolved once per process
_cached_machine_id: Optional[str] = None

_LINUX_ID_FILES = ("/var/lib/dbus/machine-id", "/etc/machine-id")


def _read_first(paths) -> str:
    for path in paths:
        try:
            with open(path, "r", encoding="utf-8") as f:
                value = f.read().strip()
        except OSError:
            continue
        if value:
            return value
    return ""


def _run(cmd: List[str]) -> str:
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return ""
    return result.stdout if result.returncode == 0 else ""


def _linux_id() -> str:
    return _read_first(_LINUX_ID_FILES)


def _darwin_id() -> str:
    m = re.search(r'"IOPlatformUUID"\s*=\s*"([^"]+)"', _run(["ioreg", "-rd1", "-c", "IOPlatformExpertDevice"]))
    return m.group(1) if m else ""


def _windows_id() -> str:
    try:
        import winreg

        key = winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE,
            r"SOFTWARE\Microsoft\Cryptography",
            0,
            winreg.KEY_READ | winreg.KEY_WOW64_64KEY,
        )
        return str(winreg.QueryValueEx(key, "MachineGuid")[0]).strip()
    except OSError:
        return ""


def _bsd_id() -> str:
    return _read_first(["/etc/hostid"]) or _run(["kenv", "-q", "smbios.system.uuid"]).strip()


_PLATFORM_READERS: Dict[str, Callable[[], str]] = {
    "Linux": _linux_id,
    "Darwin": _darwin_id,
    "Windows": _windows_id,
    "FreeBSD": _bsd_id,
    "OpenBSD": _bsd_id,
    "NetBSD": _bsd_id,
}


def platform_machine_id() -> str:
    reader = _PLATFORM_READERS.get(platform.system())
    return reader() if reader else ""


def protected_id(machine_id: str, app_id: str = APP_ID) -> str:
    """HMAC-SHA256 of the app id keyed by the raw machine id, hex encoded."""
    return hmac.new(machine_id.encode("utf-8"), app_id.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_project_id(project_id: str) -> str:
    return hashlib.md5(project_id.encode("utf-8")).hexdigest()


def _compute(project_id: str) -> str:
    if project_id:
        return hash_project_id(project_id)
    raw = platform_machine_id()
    if not raw:
        logger.debug("could not derive a machine id; telemetry user will be empty")
        return ""
    return protected_id(raw)


def resolve(project_id: str = "") -> str:
    """
    Return the machine identity, computing it on first use.

    The first call decides the value for the rest of the process.
    """
    global _cached_machine_id
    if _cached_machine_id is None:
        _cached_machine_id = _compute((project_id or "").strip())
    return _cached_machine_id


def reset() -> None:
    global _cached_machine_id
    _cached_machine_id = None
