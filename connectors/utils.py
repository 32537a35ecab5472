"""
Shared HTTP helpers: one consistent session stack (retry + timeouts).

Deliberately connector-only: NO Rich / Questionary / CLI rendering.
"""
from __future__ import annotations

import os
from typing import Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# Default timeout used for outbound calls unless overridden.
DEFAULT_TIMEOUT: int = int(os.getenv("FERRY_HTTP_TIMEOUT") or "30")


def requests_retry_session(
    retries: int = 3,
    backoff_factor: float = 0.6,
    status_forcelist: Tuple[int, ...] = (408, 425, 429, 500, 502, 503, 504),
    allowed_methods: Tuple[str, ...] = ("HEAD", "GET", "OPTIONS"),
    session: Optional[requests.Session] = None,
) -> requests.Session:
    """
    Creates a requests.Session with a retry strategy for idempotent calls.

    Retries 429 and common transient 5xx codes, honouring Retry-After.
    """
    sess = session or requests.Session()

    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=frozenset(m.upper() for m in allowed_methods),
        raise_on_status=False,
        respect_retry_after_header=True,
    )

    adapter = HTTPAdapter(max_retries=retry)
    sess.mount("http://", adapter)
    sess.mount("https://", adapter)
    return sess
