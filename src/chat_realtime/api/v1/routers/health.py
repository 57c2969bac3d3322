from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from chat_realtime.api.deps import HubDep, RedisDep
from chat_realtime.infrastructure.db.session import ping_database

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz(hub: HubDep) -> dict[str, str | int]:
    """Liveness plus the number of sockets this process is holding."""
    return {"status": "ok", "connections": len(hub)}


@router.get("/readyz")
async def readyz(redis: RedisDep) -> JSONResponse:
    checks: dict[str, str] = {}

    try:
        await ping_database()
        checks["postgres"] = "ok"
    except Exception as exc:  # noqa: BLE001
        checks["postgres"] = f"error: {exc}"

    # Without Redis the hub is process-local and there is nothing to check.
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:  # noqa: BLE001
            checks["redis"] = f"error: {exc}"

    ready = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "unavailable", "checks": checks},
    )
