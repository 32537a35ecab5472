from __future__ import annotations

import os
from contextlib import contextmanager
from typing import IO, Iterator

import portalocker

LOCK_TIMEOUT_S = 10


@contextmanager
def file_lock(file_path: str, timeout: float = LOCK_TIMEOUT_S) -> Iterator[IO[str]]:
    """Cross-platform exclusive lock around connection file writes."""
    abs_path = os.path.abspath(file_path)
    parent = os.path.dirname(abs_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    if not os.path.exists(abs_path):
        open(abs_path, "w", encoding="utf-8").close()

    with portalocker.Lock(abs_path, mode="r+", timeout=timeout, encoding="utf-8") as f:
        yield f
