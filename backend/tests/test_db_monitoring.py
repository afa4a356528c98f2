from __future__ import annotations

from sqlalchemy import create_engine, text

from devconnect.config import get_settings
from devconnect.db import monitoring
from devconnect.db.session import dispose_engine, get_engine


def test_instrument_engine_emits_telemetry(monkeypatch) -> None:
    emitted: list[tuple[str, dict[str, object]]] = []

    def record(event_name: str, **payload: object) -> None:
        emitted.append((event_name, payload))

    monkeypatch.setattr(monitoring, "_TELEMETRY_INTERVAL", 0)
    monkeypatch.setattr(monitoring, "emit_event", record)

    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        monitoring.instrument_engine(engine)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        assert emitted, "Expected telemetry emission when instrumentation is active."
        event_name, payload = emitted[0]
        assert event_name == "db_pool_status"
        assert payload["trigger"] == "connect"
        assert payload["backend"] == "sqlite"
        assert payload["connects"] >= 1
    finally:
        engine.dispose()


def test_instrumenting_twice_registers_one_set_of_counters(monkeypatch) -> None:
    monkeypatch.setattr(monitoring, "emit_event", lambda *_, **__: None)
    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        monitoring.instrument_engine(engine)
        monitoring.instrument_engine(engine)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        snapshot = monitoring.get_pool_snapshot(engine)
        assert snapshot["checkouts"] == 1
        assert snapshot["checkins"] == 1
    finally:
        engine.dispose()


def test_snapshot_for_unknown_engine_reports_zero_counters() -> None:
    engine = create_engine("sqlite:///:memory:", future=True)
    try:
        snapshot = monitoring.get_pool_snapshot(engine)
        assert snapshot["connects"] == 0
        assert snapshot["checkouts"] == 0
    finally:
        engine.dispose()


def test_disposing_the_session_engine_forgets_its_counters(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DEVCONNECT_DATABASE_URL", f"sqlite:///{tmp_path / 'pool.db'}")
    get_settings.cache_clear()
    dispose_engine()
    try:
        engine = get_engine()
        assert id(engine) in monitoring._COUNTERS_BY_ENGINE
        dispose_engine()
        assert id(engine) not in monitoring._COUNTERS_BY_ENGINE
    finally:
        dispose_engine()
        get_settings.cache_clear()
