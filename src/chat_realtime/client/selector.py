"""Initial transport choice for a realtime session."""
from __future__ import annotations

import logging
import os
from typing import Mapping
from urllib.parse import urlsplit

from chat_realtime.domain.value_objects.enums import Deployment, TransportMode

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
_SERVERLESS_SUFFIXES = (".vercel.app",)


def detect_deployment(origin: str, env: Mapping[str, str] | None = None) -> Deployment:
    env = os.environ if env is None else env
    host = (urlsplit(origin).hostname or "").lower()

    if env.get("VERCEL") == "1" or host.endswith(_SERVERLESS_SUFFIXES) or host == "vercel.app":
        return Deployment.SERVERLESS
    if host in _LOCAL_HOSTS:
        return Deployment.LOCAL
    return Deployment.HOSTED


def select_initial_mode(deployment: Deployment) -> TransportMode:
    """Serverless hosts can't keep a socket open, so they start on polling."""
    if deployment is Deployment.SERVERLESS:
        logger.info("Serverless deployment detected, sockets disabled")
        return TransportMode.POLLING
    return TransportMode.SOCKET
