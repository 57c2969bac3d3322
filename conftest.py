"""Root conftest: loads .env.test before any chat_realtime module is imported."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())

# Keep test runs off Redis and on small client delays.
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("CHAT_CLIENT_RECONNECT_BASE_DELAY", "0.01")
os.environ.setdefault("CHAT_CLIENT_RECONNECT_MAX_DELAY", "0.05")
os.environ.setdefault("CHAT_CLIENT_PONG_DELAY", "0.01")
