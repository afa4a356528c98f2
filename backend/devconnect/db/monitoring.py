"""Connection pool observability for the health endpoint and telemetry."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Dict, Tuple

from sqlalchemy import event
from sqlalchemy.engine import Engine

from ..telemetry import emit_event


@dataclass
class PoolCounters:
    connects: int = 0
    checkouts: int = 0
    checkins: int = 0
    last_emit: float = 0.0


# Holds the engine itself so its id cannot be recycled until forget_engine().
_COUNTERS_BY_ENGINE: Dict[int, Tuple[Engine, PoolCounters]] = {}
_TELEMETRY_INTERVAL = float(os.getenv("DEVCONNECT_DB_TELEMETRY_INTERVAL", "30"))


def instrument_engine(engine: Engine) -> None:
    """Count pool connects/checkouts/checkins and periodically emit them."""
    key = id(engine)
    if key in _COUNTERS_BY_ENGINE:
        return

    counters = PoolCounters()
    _COUNTERS_BY_ENGINE[key] = (engine, counters)

    def maybe_emit(trigger: str) -> None:
        now = time.time()
        if _TELEMETRY_INTERVAL > 0 and (now - counters.last_emit) < _TELEMETRY_INTERVAL:
            return
        counters.last_emit = now
        emit_event("db_pool_status", trigger=trigger, **get_pool_snapshot(engine))

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        counters.connects += 1
        maybe_emit("connect")

    @event.listens_for(engine, "checkout")
    def _on_checkout(dbapi_connection, connection_record, connection_proxy) -> None:  # type: ignore[no-untyped-def]
        counters.checkouts += 1
        maybe_emit("checkout")

    @event.listens_for(engine, "checkin")
    def _on_checkin(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        counters.checkins += 1


def forget_engine(engine: Engine) -> None:
    """Drop the counters of an engine that is being disposed."""
    _COUNTERS_BY_ENGINE.pop(id(engine), None)


def get_pool_snapshot(engine: Engine) -> Dict[str, object]:
    entry = _COUNTERS_BY_ENGINE.get(id(engine))
    counters = entry[1] if entry else None
    return {
        "backend": engine.url.get_backend_name(),
        "pool": _safe_pool_status(engine),
        "connects": counters.connects if counters else 0,
        "checkouts": counters.checkouts if counters else 0,
        "checkins": counters.checkins if counters else 0,
    }


def _safe_pool_status(engine: Engine) -> str:
    try:
        return engine.pool.status()  # type: ignore[no-untyped-call]
    except Exception as exc:  # pragma: no cover
        return f"unavailable: {exc}"


__all__ = [
    "forget_engine",
    "get_pool_snapshot",
    "instrument_engine",
]
