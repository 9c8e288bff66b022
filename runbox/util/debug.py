"""Diagnostic dump helper."""

from __future__ import annotations

import json
import sys
from typing import Any


def dbg(value: Any, die: bool = False) -> None:
    """Print ``value`` as tab-indented JSON, exiting with status 1 when ``die`` is set."""
    print(json.dumps(value, indent="\t"))
    if die:
        sys.exit(1)
