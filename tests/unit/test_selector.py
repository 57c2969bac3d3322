from __future__ import annotations

import pytest

from chat_realtime.client.selector import detect_deployment, select_initial_mode
from chat_realtime.domain.value_objects.enums import Deployment, TransportMode


@pytest.mark.parametrize(
    ("origin", "env", "expected"),
    [
        ("https://my-chat.vercel.app", {}, Deployment.SERVERLESS),
        ("https://chat.example.com", {"VERCEL": "1"}, Deployment.SERVERLESS),
        ("http://localhost:3003", {}, Deployment.LOCAL),
        ("http://127.0.0.1:5173", {}, Deployment.LOCAL),
        ("https://chat.example.com", {}, Deployment.HOSTED),
        ("https://notvercel.app.example.com", {}, Deployment.HOSTED),
    ],
)
def test_detect_deployment(origin, env, expected):
    assert detect_deployment(origin, env) is expected


@pytest.mark.parametrize(
    ("deployment", "mode"),
    [
        (Deployment.SERVERLESS, TransportMode.POLLING),
        (Deployment.LOCAL, TransportMode.SOCKET),
        (Deployment.HOSTED, TransportMode.SOCKET),
    ],
)
def test_select_initial_mode(deployment, mode):
    assert select_initial_mode(deployment) is mode
