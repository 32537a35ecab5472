#!/usr/bin/env python3
"""
ferry command-line entry point.

NOTE:
This file is intentionally small. Process lifecycle, commands and diagnostics
live in the `orchestrator/` package; connectors live in `connectors/`.
"""
from __future__ import annotations

import sys
from pathlib import Path

# Allow running from a source checkout: python cli/cli.py run ...
parent_dir = Path(__file__).parent.parent
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

from orchestrator.app import main  # noqa: E402


if __name__ == "__main__":
    main()
