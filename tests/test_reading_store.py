"""Unit tests for the bounded in-memory reading store."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone

import pytest

from datastore.reading_store import ReadingStore
from models.errors import PersistenceError, ValidationError
from models.records import ReadingCandidate
from storage.snapshot import SnapshotFile


def _candidate(device_id: str = "esp32-1", temperature=21.0, humidity=40.0, **extra) -> ReadingCandidate:
    return ReadingCandidate(
        device_id=device_id, temperature=temperature, humidity=humidity, **extra
    )


def test_append_parses_string_numbers_and_defaults_location() -> None:
    store = ReadingStore()

    reading = store.append(_candidate(temperature="24.5", humidity="60"))

    assert reading.temperature == 24.5
    assert reading.humidity == 60.0
    assert isinstance(reading.temperature, float)
    assert reading.location == "Unknown"
    assert reading.device_id == "esp32-1"
    assert len(store) == 1


def test_append_assigns_unique_ids_and_receipt_time() -> None:
    store = ReadingStore()
    started = datetime.now(timezone.utc)

    readings = [store.append(_candidate(temperature=index)) for index in range(50)]

    ids = [reading.id for reading in readings]
    assert len(set(ids)) == len(ids)
    assert ids == sorted(ids)
    assert all(reading.received_at >= started for reading in readings)


def test_append_defaults_timestamp_to_receipt_time() -> None:
    store = ReadingStore()

    reading = store.append(_candidate(timestamp="not-a-number"))

    expected = int(reading.received_at.timestamp() * 1000)
    assert reading.timestamp == expected


def test_append_keeps_caller_timestamp_and_location() -> None:
    store = ReadingStore()

    reading = store.append(_candidate(timestamp="1700000000000", location="greenhouse"))

    assert reading.timestamp == 1700000000000
    assert reading.location == "greenhouse"


def test_append_rejects_empty_device_without_mutation() -> None:
    store = ReadingStore()
    store.append(_candidate())

    with pytest.raises(ValidationError) as excinfo:
        store.append(_candidate(device_id="", temperature=20, humidity=50))

    assert excinfo.value.missing_fields == ("device_id",)
    assert "Missing required fields: device_id" in str(excinfo.value)
    assert len(store) == 1


def test_append_reports_every_missing_field() -> None:
    store = ReadingStore()

    with pytest.raises(ValidationError) as excinfo:
        store.append(ReadingCandidate())

    assert excinfo.value.missing_fields == ("device_id", "temperature", "humidity")
    assert len(store) == 0


@pytest.mark.parametrize("bad_value", ["warm", "nan", "inf", True, [1]])
def test_append_rejects_unparseable_measurements(bad_value) -> None:
    store = ReadingStore()

    with pytest.raises(ValidationError) as excinfo:
        store.append(_candidate(humidity=bad_value))

    assert excinfo.value.invalid_fields == ("humidity",)
    assert len(store) == 0


def test_zero_measurements_are_accepted() -> None:
    store = ReadingStore()

    reading = store.append(_candidate(temperature=0, humidity="0"))

    assert reading.temperature == 0.0
    assert reading.humidity == 0.0


def test_capacity_evicts_oldest_in_order() -> None:
    store = ReadingStore(max_retained=1000)

    appended = [store.append(_candidate(temperature=index)) for index in range(1001)]

    assert len(store) == 1000
    retained = list(reversed(store.recent(2000)))
    assert [reading.id for reading in retained] == [reading.id for reading in appended[1:]]


def test_recent_returns_newest_first_after_eviction() -> None:
    store = ReadingStore(max_retained=1000)
    appended = [store.append(_candidate(temperature=index)) for index in range(1001)]

    latest = store.recent(5)

    assert [reading.id for reading in latest] == [reading.id for reading in reversed(appended[-5:])]


def test_recent_never_exceeds_store_size() -> None:
    store = ReadingStore()
    for index in range(3):
        store.append(_candidate(temperature=index))

    assert len(store.recent(10)) == 3
    assert len(store.recent(2)) == 2
    assert store.recent(0) == []


def test_by_device_filters_before_limiting() -> None:
    store = ReadingStore()
    for index in range(6):
        device = "alpha" if index % 2 == 0 else "beta"
        store.append(_candidate(device_id=device, temperature=index))

    alpha = store.by_device("alpha", limit=2)

    assert [reading.device_id for reading in alpha] == ["alpha", "alpha"]
    assert [reading.temperature for reading in alpha] == [4.0, 2.0]
    assert store.by_device("missing") == []


def test_stats_empty_store_returns_none() -> None:
    assert ReadingStore().stats() is None


def test_stats_summarises_store() -> None:
    store = ReadingStore()
    store.append(_candidate(device_id="a", temperature=20, humidity=40))
    store.append(_candidate(device_id="b", temperature=25, humidity=50))
    last = store.append(_candidate(device_id="a", temperature=21, humidity=61))

    stats = store.stats()

    assert stats is not None
    assert stats.total_records == 3
    assert stats.temperature.min == 20.0
    assert stats.temperature.max == 25.0
    assert stats.temperature.avg == 22.0
    assert stats.humidity.avg == 50.33
    assert stats.devices == ["a", "b"]
    assert stats.latest_reading == last


def test_replace_all_swaps_sequence_and_continues_ids() -> None:
    source = ReadingStore()
    readings = [source.append(_candidate(temperature=index)) for index in range(3)]
    store = ReadingStore(max_retained=2)

    store.replace_all(readings)

    assert [reading.id for reading in store.recent()] == [readings[2].id, readings[1].id]
    appended = store.append(_candidate())
    assert appended.id > readings[2].id


def test_append_persists_snapshot(tmp_path) -> None:
    path = tmp_path / "sensor_data.json"
    store = ReadingStore(snapshot=SnapshotFile(path))

    reading = store.append(_candidate(location="lab"))

    payload = json.loads(path.read_text())
    assert len(payload) == 1
    assert payload[0]["id"] == reading.id
    assert payload[0]["location"] == "lab"

    reloaded = ReadingStore(snapshot=SnapshotFile(path))
    assert reloaded.recent() == [reading]


def test_corrupt_snapshot_starts_empty(tmp_path, caplog) -> None:
    path = tmp_path / "sensor_data.json"
    path.write_text("{not json")

    with caplog.at_level("ERROR"):
        store = ReadingStore(snapshot=SnapshotFile(path))

    assert len(store) == 0
    assert any("Failed to load snapshot" in record.getMessage() for record in caplog.records)


def test_corrupt_snapshot_is_moved_aside_before_next_save(tmp_path) -> None:
    path = tmp_path / "sensor_data.json"
    path.write_text("{not json")
    store = ReadingStore(snapshot=SnapshotFile(path))

    reading = store.append(_candidate())

    assert (tmp_path / "sensor_data.json.corrupt").read_text() == "{not json"
    assert [item["id"] for item in json.loads(path.read_text())] == [reading.id]


def test_unmovable_corrupt_snapshot_disables_saving(tmp_path, caplog) -> None:
    class StuckSnapshot(SnapshotFile):
        def quarantine(self):
            raise PersistenceError("read-only directory")

    path = tmp_path / "sensor_data.json"
    path.write_text("{not json")

    with caplog.at_level("ERROR"):
        store = ReadingStore(snapshot=StuckSnapshot(path))
    store.append(_candidate())

    assert store.snapshot is None
    assert path.read_text() == "{not json"
    assert any("persistence disabled" in record.getMessage() for record in caplog.records)


def test_invalid_snapshot_record_does_not_cost_the_rest(tmp_path) -> None:
    path = tmp_path / "sensor_data.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": 1,
                    "device_id": "esp32-1",
                    "temperature": 21.5,
                    "humidity": 40,
                    "timestamp": 1700000000000,
                    "received_at": "2024-01-01T00:00:00.000Z",
                },
                {
                    "id": 2,
                    "device_id": "esp32-1",
                    "temperature": None,
                    "humidity": 41,
                    "timestamp": 1700000000001,
                    "received_at": "2024-01-01T00:00:01.000Z",
                },
            ]
        )
    )
    store = ReadingStore(snapshot=SnapshotFile(path))
    assert [reading.id for reading in store.recent()] == [1]

    appended = store.append(_candidate())

    payload = json.loads(path.read_text())
    assert len(payload) >= 2
    assert [item["id"] for item in payload] == [1, appended.id]


def test_recent_with_total_reports_window_and_size() -> None:
    store = ReadingStore()
    appended = [store.append(_candidate(temperature=index)) for index in range(4)]

    readings, total = store.recent_with_total(2)

    assert total == 4
    assert readings == [appended[3], appended[2]]
    assert store.recent_with_total(0) == ([], 4)


def test_concurrent_appends_keep_ids_unique_and_ordered() -> None:
    store = ReadingStore(max_retained=20)
    produced: list[int] = []
    produced_lock = threading.Lock()

    def worker(worker_index: int) -> None:
        for step in range(25):
            reading = store.append(_candidate(device_id=f"dev-{worker_index}", temperature=step))
            with produced_lock:
                produced.append(reading.id)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(produced) == 200
    assert len(set(produced)) == 200
    assert len(store) == store.max_retained
    retained = [reading.id for reading in reversed(store.recent(100))]
    assert retained == sorted(retained)
    assert retained == sorted(produced)[-20:]


def test_save_failure_keeps_memory_authoritative(tmp_path, caplog) -> None:
    class FailingSnapshot(SnapshotFile):
        def save(self, readings) -> None:
            raise PersistenceError("disk full")

    store = ReadingStore(snapshot=FailingSnapshot(tmp_path / "data.json"))

    with caplog.at_level("ERROR"):
        reading = store.append(_candidate())

    assert store.recent() == [reading]
    records = [record for record in caplog.records if record.name == "datastore.reading_store"]
    assert any(getattr(record, "reason", None) == "disk full" for record in records)
