"""Tests ensuring observability wiring is safe by default and traces synthesis when enabled."""
from __future__ import annotations

import asyncio
import importlib
from datetime import date

from conftest import ScriptedOracle
from kairos.api.schemas.plan import ActiveHours
from kairos.core.config import Settings
from kairos.core.errors import OracleUnavailable
from kairos.observability import client as client_module
from kairos.services.schedule_synthesizer import ScheduleSynthesizer


class _DummyTrace:
    def __init__(self, name, metadata=None):
        self.name = name
        self.metadata = dict(metadata or {})
        self.ended = False

    def update(self, metadata=None, **kwargs):
        if metadata:
            self.metadata.update(metadata)

    def end(self):
        self.ended = True


class _DummyOpik:
    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs
        self.traces = []

    def trace(self, name, metadata=None, **kwargs):
        trace = _DummyTrace(name, metadata)
        self.traces.append(trace)
        return trace


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import kairos.main as main_module

    client_module.reset_opik_client()
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


def test_enabled_opik_without_key_stays_off(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    monkeypatch.setattr(client_module, "get_settings", lambda: Settings(opik_enabled=True, opik_api_key=None))
    client_module.reset_opik_client()

    assert client_module.init_opik() is None
    client_module.reset_opik_client()


def test_synthesis_is_traced_when_opik_is_enabled(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "Opik", _DummyOpik)
    monkeypatch.setattr(
        client_module,
        "get_settings",
        lambda: Settings(opik_enabled=True, opik_api_key="test-key", opik_project="kairos-test"),
    )
    client_module.reset_opik_client()

    try:
        synthesizer = ScheduleSynthesizer(ScriptedOracle(error=OracleUnavailable("offline")))
        asyncio.run(
            synthesizer.synthesize(
                energy=3,
                fixed=[],
                wishes=[],
                active_hours=ActiveHours(start="08:00", end="23:00"),
                day=date(2026, 10, 19),
                request_id="req-42",
            )
        )

        opik = client_module.get_opik_client()
        assert opik.kwargs["project_name"] == "kairos-test"
        synthesis = next(trace for trace in opik.traces if trace.name == "schedule.synthesize")
        assert synthesis.metadata["request_id"] == "req-42"
        assert synthesis.metadata["source"] == "fallback"
        assert synthesis.ended is True
        assert any(trace.name == "metric:schedule_synthesis_latency_ms" for trace in opik.traces)
    finally:
        client_module.reset_opik_client()
