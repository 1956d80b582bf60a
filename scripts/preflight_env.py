#!/usr/bin/env python3
"""Quick preflight: print secret env var lengths without exposing values."""
from __future__ import annotations

import os

from venue_finder import config


def _len(name: str) -> int:
    return len((os.getenv(name) or "").strip())


if __name__ == "__main__":
    for name in config.API_KEY_ENV_VARS:
        print(name, _len(name))
