from __future__ import annotations

from .connector import FileConnector, connector

__all__ = ["FileConnector", "connector"]
