"""
Local connections, stored in <FERRY_HOME>/env.toml:

  [connections.orders_files]
  type = "file"
  url = "file:///data/orders"
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import tomlkit

from .locking import file_lock


def secure_env_file(path: Path) -> None:
    if path.exists() and os.name != "nt":
        try:
            os.chmod(path, 0o600)
        except OSError:
            pass


def _as_plain_dict(value: Any) -> Dict[str, Any]:
    """
    tomlkit may return container-ish objects (tables) that act like dicts.
    We normalize to a plain python dict, shallowly.
    """
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return {str(k): (v.unwrap() if hasattr(v, "unwrap") else v) for k, v in value.items()}
    return {}


def sanitize_name(name: str) -> str:
    s = "".join(ch.lower() if ch.isalnum() or ch in ("_", "-") else "_" for ch in (name or "").strip())
    while "__" in s:
        s = s.replace("__", "_")
    return s.strip("_") or "connection"


def _read_doc(path: Path) -> tomlkit.TOMLDocument:
    if not path.exists():
        return tomlkit.document()
    with open(path, "r", encoding="utf-8") as f:
        return tomlkit.parse(f.read())


def list_connections(path: Path) -> Dict[str, Dict[str, Any]]:
    doc = _read_doc(path)
    conns = doc.get("connections") or {}
    return {str(name): _as_plain_dict(props) for name, props in conns.items()}


def get_connection(path: Path, name: str) -> Optional[Dict[str, Any]]:
    return list_connections(path).get(name)


def update_connection(path: Path, name: str, props: Dict[str, Any], *, merge: bool = True) -> Dict[str, Any]:
    """
    Create or update a connection.

    merge=True keeps existing keys not present in `props`; merge=False
    replaces the whole entry.
    """
    with file_lock(str(path)) as f:
        content = f.read().strip()
        doc = tomlkit.parse(content) if content else tomlkit.document()

        if "connections" not in doc:
            doc["connections"] = tomlkit.table()

        existing = _as_plain_dict(doc["connections"].get(name))
        merged = dict(existing) if merge else {}
        merged.update(props)
        doc["connections"][name] = merged

        f.seek(0)
        f.write(tomlkit.dumps(doc))
        f.truncate()

    secure_env_file(path)
    return merged


def delete_connection(path: Path, name: str) -> bool:
    if not path.exists():
        return False
    with file_lock(str(path)) as f:
        content = f.read().strip()
        if not content:
            return False
        doc = tomlkit.parse(content)
        conns = doc.get("connections")
        if not conns or name not in conns:
            return False
        del conns[name]
        f.seek(0)
        f.write(tomlkit.dumps(doc))
        f.truncate()
    secure_env_file(path)
    return True


def connection_type(props: Mapping[str, Any]) -> str:
    """Explicit `type`, else the scheme of `url` (file:///x -> file)."""
    explicit = str(props.get("type") or "").strip().lower()
    if explicit:
        return explicit
    scheme = urlparse(str(props.get("url") or "")).scheme
    return scheme.lower() if scheme else ""


def resolve_connection(path: Path, ref: str) -> Dict[str, Any]:
    """
    A connection reference is either the name of a stored connection or an
    inline URL (file:///data, postgres://...).
    """
    stored = get_connection(path, ref)
    if stored is not None:
        props = dict(stored)
    else:
        props = {"url": ref}
    props["type"] = connection_type(props)
    return props
