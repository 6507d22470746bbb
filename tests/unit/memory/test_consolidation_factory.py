from datetime import timedelta

import pytest

from continuum.core.exceptions import ConfigurationError
from continuum.memory.backends import InMemoryMemoryStore
from continuum.memory.config import CONFIG_PATH_ENV_VAR
from continuum.memory.factory import create_consolidation_engine, run_consolidation
from tests.factories.memories import NOW, memory_record


def test_create_engine_loads_configuration_from_path(tmp_path):
    path = tmp_path / "continuum.yaml"
    path.write_text("identity:\n  contradiction_limit: 0.5\n", encoding="utf-8")

    engine = create_consolidation_engine(InMemoryMemoryStore(), path, dry_run=True)

    assert engine.dry_run is True
    assert engine.guard.contradiction_limit == pytest.approx(0.5)


def test_create_engine_uses_environment_configuration(tmp_path, monkeypatch):
    path = tmp_path / "continuum.yaml"
    path.write_text("tiers:\n  t1:\n    threshold: 0.4\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_PATH_ENV_VAR, str(path))

    engine = create_consolidation_engine(InMemoryMemoryStore())

    assert engine.policy.threshold("t1") == pytest.approx(0.4)


def test_create_engine_propagates_configuration_errors(tmp_path):
    path = tmp_path / "continuum.yaml"
    path.write_text("weights:\n  novelty: 0.9\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        create_consolidation_engine(InMemoryMemoryStore(), path)


@pytest.mark.asyncio
async def test_run_consolidation_summarizes_the_cycle(config):
    store = InMemoryMemoryStore.from_records(
        [
            memory_record("promote", tags=("love",)),
            memory_record("expire", age=timedelta(days=2)),
            memory_record("young", age=timedelta(minutes=5)),
        ]
    )

    summary = await run_consolidation(store, config, now=NOW)

    assert summary.success is True
    assert summary.total_processed == 3
    assert summary.total_consolidated == 1
    assert summary.total_expired == 1
    assert len(summary.reports) == 4
    assert store.ids_in("t1") == ["young"]
    assert store.ids_in("t2") == ["promote"]


@pytest.mark.asyncio
async def test_run_consolidation_reports_failures(config):
    store = InMemoryMemoryStore.from_records([{"id": "broken", "tier": "t2", "content": "x"}])

    summary = await run_consolidation(store, config, now=NOW)

    assert summary.success is False
    assert summary.total_failed == 1


@pytest.mark.asyncio
async def test_dry_run_summary_leaves_store_untouched(config):
    store = InMemoryMemoryStore.from_records([memory_record("promote", tags=("love",))])

    summary = await run_consolidation(store, config, dry_run=True, now=NOW)

    assert summary.dry_run is True
    assert summary.total_consolidated == 1
    assert store.ids_in("t1") == ["promote"]
