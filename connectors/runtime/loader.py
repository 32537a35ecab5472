from __future__ import annotations

import importlib

from .errors import ConnectorNotFound
from .protocol import Connector


def load(connector_type: str) -> Connector:
    """
    Load a connector by type string, e.g. "file".

    Resolution: connectors.<type>.connector() must return a Connector (or an
    object with check/discover/read).
    """
    if not connector_type or not isinstance(connector_type, str):
        raise ConnectorNotFound("no connector type given; set `type` or a `url` with a scheme")

    mod_name = f"connectors.{connector_type.lower()}"
    try:
        module = importlib.import_module(mod_name)
    except ModuleNotFoundError as e:
        if e.name != mod_name:
            raise
        raise ConnectorNotFound(f"connector type '{connector_type}' is not available") from e

    factory = getattr(module, "connector", None)
    if not callable(factory):
        raise ConnectorNotFound(f"{mod_name} does not expose a connector() factory")

    obj = factory()
    if not isinstance(obj, Connector):
        # duck-typing: allow objects that implement the interface even if not subclassed
        if not (hasattr(obj, "check") and hasattr(obj, "read")):
            raise TypeError(f"{mod_name}.connector() did not return a Connector")
    return obj  # type: ignore[return-value]

