"""Unit tests for the JSON-backed device state table."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from datastore.device_store import DeviceStateTable
from models.errors import StorageError
from models.records import SensorSample

_BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _sample(minutes: int = 0, temperature: float | None = 25.0) -> SensorSample:
    return SensorSample(
        channels={"temperature": temperature, "humidity": None},
        fan_on=True,
        timestamp=_BASE_TIME + timedelta(minutes=minutes),
    )


def test_upsert_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    table = DeviceStateTable(name="test", persistence_path=path)

    table.upsert_actuator_state("led1", True, _BASE_TIME)
    table.upsert_actuator_state("led1", True, _BASE_TIME)

    assert table.load_all_actuator_states() == [("led1", True)]
    payload = json.loads(path.read_text())
    assert list(payload["actuator_states"]) == ["led1"]
    assert payload["actuator_states"]["led1"]["state"] is True


def test_upsert_overwrites_by_key() -> None:
    table = DeviceStateTable(name="test")

    table.upsert_actuator_state("led1", True, _BASE_TIME)
    table.upsert_actuator_state("led1", False, _BASE_TIME + timedelta(seconds=1))

    assert table.load_all_actuator_states() == [("led1", False)]


def test_latest_sample_is_none_when_empty() -> None:
    assert DeviceStateTable(name="test").load_latest_sample() is None


def test_samples_persist_and_reload(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    table = DeviceStateTable(name="test", persistence_path=path)
    first = _sample(0, temperature=25.0)
    second = _sample(5, temperature=None)

    table.insert_sample(first)
    table.insert_sample(second)

    reloaded = DeviceStateTable(name="test", persistence_path=path)
    latest = reloaded.load_latest_sample()
    assert latest == second
    assert latest.value("temperature") is None
    assert reloaded.last_update() == second.timestamp
    assert reloaded.list_samples() == [second, first]


def test_zero_is_stored_distinctly_from_missing(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    table = DeviceStateTable(name="test", persistence_path=path)

    table.insert_sample(_sample(temperature=0.0))

    stored = json.loads(path.read_text())["samples"][0]["channels"]
    assert stored == {"temperature": 0.0, "humidity": None}


def test_list_samples_respects_limit() -> None:
    table = DeviceStateTable(name="test")
    for minutes in range(5):
        table.insert_sample(_sample(minutes))

    listed = table.list_samples(limit=2)

    assert [sample.timestamp for sample in listed] == [
        _BASE_TIME + timedelta(minutes=4),
        _BASE_TIME + timedelta(minutes=3),
    ]


def test_corrupt_file_starts_empty(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json")

    table = DeviceStateTable(name="test", persistence_path=path)

    assert table.load_all_actuator_states() == []
    assert table.load_latest_sample() is None


def test_failed_write_raises_and_rolls_back(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    table = DeviceStateTable(name="test", persistence_path=path)
    table.insert_sample(_sample(0))
    path.unlink()
    path.mkdir()

    with pytest.raises(StorageError):
        table.insert_sample(_sample(5))
    with pytest.raises(StorageError):
        table.upsert_actuator_state("led1", True, _BASE_TIME)

    assert table.load_latest_sample() == _sample(0)
    assert table.last_update() == _BASE_TIME
    assert table.load_all_actuator_states() == []


def test_invalid_rows_are_skipped_on_load(tmp_path: Path, caplog) -> None:
    path = tmp_path / "store.json"
    path.write_text(
        json.dumps(
            {
                "actuator_states": {
                    "led1": {"state": "maybe"},
                    "led2": {
                        "actuator_id": "led2",
                        "state": True,
                        "updated_at": "2024-01-01T12:00:00+00:00",
                    },
                },
                "samples": [
                    {"channels": {"temperature": "warm"}, "fan_on": True},
                    {
                        "channels": {"temperature": 21.0},
                        "fan_on": False,
                        "timestamp": "2024-01-01T12:00:00+00:00",
                    },
                ],
                "last_update": "yesterday",
            }
        )
    )

    with caplog.at_level(logging.WARNING):
        table = DeviceStateTable(name="test", persistence_path=path)

    assert table.load_all_actuator_states() == [("led2", True)]
    latest = table.load_latest_sample()
    assert latest is not None
    assert latest.value("temperature") == 21.0
    assert table.last_update() == _BASE_TIME
    assert any(getattr(record, "actuator_id", None) == "led1" for record in caplog.records)


@pytest.mark.parametrize("content", ["[1, 2, 3]", '"text"', '{"actuator_states": [], "samples": {}}'])
def test_unexpected_layout_starts_empty(tmp_path: Path, content: str) -> None:
    path = tmp_path / "store.json"
    path.write_text(content)

    table = DeviceStateTable(name="test", persistence_path=path)

    assert table.load_all_actuator_states() == []
    assert table.load_latest_sample() is None
    assert table.last_update() is None
