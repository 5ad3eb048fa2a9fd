from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from storesync.adapters.memory import InMemoryRecordRepository, InMemoryRecordStore
from storesync.domain.errors import (
    ConcurrentImportError,
    PersistenceError,
    UnknownDataTypeError,
)
from storesync.domain.merge import ImportManager
from storesync.domain.model import DataType, FlatRecord, MergeMode
from tests.helpers.records import make_record

if TYPE_CHECKING:
    from tests.conftest import FakeClock


async def _seed(store: InMemoryRecordStore, *records: FlatRecord) -> InMemoryRecordRepository:
    repository = store("purchase")
    for record in records:
        await repository.add(record)
    return repository


@pytest.mark.asyncio
async def test_append_adds_every_record(memory_store: InMemoryRecordStore) -> None:
    await _seed(memory_store, make_record())
    manager = ImportManager(memory_store)

    summary = await manager.import_data("purchase", [make_record(), make_record()], "append")

    assert (summary.added, summary.updated, summary.skipped, summary.errors) == (2, 0, 0, 0)
    assert await memory_store("purchase").count() == 3


@pytest.mark.asyncio
async def test_replace_clears_collection_first(memory_store: InMemoryRecordStore) -> None:
    await _seed(memory_store, make_record(cost=1), make_record(cost=2))
    manager = ImportManager(memory_store)

    summary = await manager.import_data(
        DataType.PURCHASE, [make_record(cost=3)], MergeMode.REPLACE
    )

    assert summary.added == 1
    stored = await memory_store("purchase").get_all()
    assert [record.cost for record in stored] == [3]


@pytest.mark.asyncio
async def test_skip_ignores_existing_and_in_batch_duplicates(
    memory_store: InMemoryRecordStore,
) -> None:
    await _seed(memory_store, make_record())
    manager = ImportManager(memory_store)

    summary = await manager.import_data(
        "purchase",
        [
            make_record(cost=999),
            make_record(supplier="Dairy"),
            make_record(supplier="Dairy", cost=5),
        ],
        "skip",
    )

    assert (summary.added, summary.skipped) == (1, 2)
    assert await memory_store("purchase").count() == 2


@pytest.mark.asyncio
async def test_smart_inserts_updates_and_skips(memory_store: InMemoryRecordStore) -> None:
    repository = await _seed(
        memory_store,
        make_record(supplier="Farm Co", cost=100),
        make_record(supplier="Dairy", cost=10),
    )
    manager = ImportManager(memory_store)

    summary = await manager.import_data(
        "purchase",
        [
            make_record(supplier="Farm Co", cost=120),
            make_record(supplier="Dairy", cost=10),
            make_record(supplier="Bakery", cost=30),
        ],
    )

    assert (summary.added, summary.updated, summary.skipped) == (1, 1, 1)
    updated = await repository.get(1)
    assert updated is not None
    assert updated.cost == 120
    assert updated.version == 2
    assert await repository.count() == 3


@pytest.mark.asyncio
async def test_smart_matches_records_inserted_earlier_in_same_batch(
    memory_store: InMemoryRecordStore,
) -> None:
    manager = ImportManager(memory_store)

    summary = await manager.import_data(
        "purchase",
        [
            make_record(supplier="Farm Co", cost=100),
            make_record(supplier="Dairy", cost=10),
            make_record(supplier="Farm Co", cost=110),
        ],
        MergeMode.SMART,
    )

    assert (summary.added, summary.updated, summary.skipped) == (2, 1, 0)
    stored = await memory_store("purchase").get_all()
    assert [(record.supplier, record.cost) for record in stored] == [
        ("Farm Co", 110),
        ("Dairy", 10),
    ]


@pytest.mark.asyncio
async def test_smart_reimport_is_idempotent(memory_store: InMemoryRecordStore) -> None:
    batch = [make_record(cost=1), make_record(supplier="Dairy"), make_record(cost=1)]
    manager = ImportManager(memory_store)

    await manager.import_data("purchase", batch)
    snapshot = await memory_store("purchase").get_all()
    summary = await manager.import_data("purchase", batch)

    assert summary.added == 0
    assert summary.updated == 0
    assert summary.skipped == 3
    assert await memory_store("purchase").get_all() == snapshot


@pytest.mark.asyncio
async def test_smart_converges_after_updates_within_batch(
    memory_store: InMemoryRecordStore,
) -> None:
    await _seed(memory_store, make_record(cost=1))
    manager = ImportManager(memory_store)

    summary = await manager.import_data("purchase", [make_record(cost=2), make_record(cost=2)])

    assert (summary.added, summary.updated, summary.skipped) == (0, 1, 1)


class _FailingRepository(InMemoryRecordRepository):
    async def add(self, record: FlatRecord) -> int:
        if record.item_name == "Broken":
            raise PersistenceError("disk full")
        return await super().add(record)


class _SingleRepositoryProvider:
    def __init__(self, repository: InMemoryRecordRepository) -> None:
        self.repository = repository
        self.requested: list[str] = []

    def __call__(self, collection: str) -> InMemoryRecordRepository:
        self.requested.append(collection)
        return self.repository


@pytest.mark.asyncio
async def test_failed_records_are_reported_and_batch_continues(clock: FakeClock) -> None:
    repository = _FailingRepository("purchase", clock=clock)
    manager = ImportManager(_SingleRepositoryProvider(repository), clock=clock)
    progress: list[tuple[int, int]] = []

    summary = await manager.import_data(
        "purchase",
        [
            make_record(supplier="A"),
            make_record(supplier="B", item_name="Broken"),
            make_record(supplier="C"),
        ],
        "append",
        progress=lambda done, total: progress.append((done, total)),
    )

    assert summary.added == 2
    assert summary.errors == 1
    (detail,) = summary.error_details
    assert detail.index == 1
    assert detail.data["supplier"] == "B"
    assert detail.error == "disk full"
    assert progress == [(1, 3), (2, 3), (3, 3)]
    assert summary.added + summary.updated + summary.skipped + summary.errors == 3


class _CrashingRepository(InMemoryRecordRepository):
    async def add(self, record: FlatRecord) -> int:
        if record.supplier == "B":
            raise RuntimeError("connection reset")
        return await super().add(record)


@pytest.mark.asyncio
async def test_unexpected_exceptions_are_reported_per_record(clock: FakeClock) -> None:
    repository = _CrashingRepository("purchase", clock=clock)
    manager = ImportManager(_SingleRepositoryProvider(repository), clock=clock)

    summary = await manager.import_data(
        "purchase",
        [make_record(supplier="A"), make_record(supplier="B"), make_record(supplier="C")],
        MergeMode.APPEND,
    )

    assert (summary.added, summary.errors) == (2, 1)
    assert summary.error_details[0].error == "connection reset"
    assert [record.supplier for record in await repository.get_all()] == ["A", "C"]
    assert manager.last_sync("purchase") is summary
    assert manager.sync_in_progress is False


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_abort_batch(
    memory_store: InMemoryRecordStore,
) -> None:
    manager = ImportManager(memory_store)
    calls: list[int] = []

    def progress(done: int, total: int) -> None:
        calls.append(done)
        if done == 1:
            raise ValueError(f"progress bar closed at {done}/{total}")

    summary = await manager.import_data(
        "purchase",
        [make_record(supplier="A"), make_record(supplier="B"), make_record(supplier="C")],
        "append",
        progress=progress,
    )

    assert (summary.added, summary.errors) == (3, 0)
    assert calls == [1, 2, 3]
    assert await memory_store("purchase").count() == 3


class _BlockingRepository(InMemoryRecordRepository):
    def __init__(self, collection: str) -> None:
        super().__init__(collection)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.get_all_calls = 0
        self.added: list[FlatRecord] = []

    async def add(self, record: FlatRecord) -> int:
        self.added.append(record)
        return await super().add(record)

    async def get_all(self) -> list[FlatRecord]:
        self.get_all_calls += 1
        self.entered.set()
        await self.release.wait()
        return await super().get_all()


@pytest.mark.asyncio
async def test_concurrent_import_is_rejected() -> None:
    repository = _BlockingRepository("purchase")
    provider = _SingleRepositoryProvider(repository)
    manager = ImportManager(provider)

    first = asyncio.create_task(manager.import_data("purchase", [make_record()]))
    await repository.entered.wait()
    assert manager.sync_in_progress is True

    with pytest.raises(ConcurrentImportError):
        await manager.import_data("purchase", [make_record(supplier="Other")])

    assert provider.requested == ["purchase"]
    assert repository.get_all_calls == 1
    assert repository.added == []
    assert await repository.count() == 0

    repository.release.set()
    summary = await first
    assert summary.added == 1
    assert [record.supplier for record in repository.added] == ["Farm Co"]
    assert repository.get_all_calls == 1
    assert manager.sync_in_progress is False


@pytest.mark.asyncio
async def test_unknown_or_unmapped_data_type_raises(memory_store: InMemoryRecordStore) -> None:
    manager = ImportManager(memory_store)

    with pytest.raises(UnknownDataTypeError):
        await manager.import_data("lottery", [make_record()])
    with pytest.raises(UnknownDataTypeError):
        await manager.import_data(DataType.PREV_YEAR_SALES, [make_record()])

    assert manager.sync_in_progress is False
    assert memory_store.collections == ()


@pytest.mark.asyncio
async def test_invalid_mode_raises_before_any_write(memory_store: InMemoryRecordStore) -> None:
    manager = ImportManager(memory_store)

    with pytest.raises(ValueError, match="overwrite"):
        await manager.import_data("purchase", [make_record()], "overwrite")

    assert manager.sync_in_progress is False
    assert manager.last_sync("purchase") is None


@pytest.mark.asyncio
async def test_sync_status_tracks_last_summary_per_type(
    memory_store: InMemoryRecordStore,
    clock: FakeClock,
) -> None:
    manager = ImportManager(memory_store, clock=clock)

    purchase = await manager.import_data("purchase", [make_record()])
    sales = await manager.import_data("sales", [make_record()], "append")

    assert manager.last_sync(DataType.PURCHASE) is purchase
    assert manager.all_sync_status() == {DataType.PURCHASE: purchase, DataType.SALES: sales}
    assert purchase.timestamp is not None
    assert purchase.to_dict()["mode"] == "smart"

    manager.clear_sync_status("purchase")
    assert manager.last_sync("purchase") is None
    manager.clear_sync_status()
    assert manager.all_sync_status() == {}


@pytest.mark.asyncio
async def test_detect_diff_classifies_without_writing(memory_store: InMemoryRecordStore) -> None:
    repository = await _seed(
        memory_store,
        make_record(supplier="Farm Co", cost=100),
        make_record(supplier="Dairy", cost=10),
        make_record(supplier="Dairy", cost=11),
    )
    manager = ImportManager(memory_store)

    preview = await manager.detect_diff(
        "purchase",
        [
            make_record(supplier="Farm Co", cost=120),
            make_record(supplier="Dairy", cost=10),
            make_record(supplier="Bakery"),
        ],
    )

    assert preview.counts() == {"to_add": 1, "to_update": 1, "unchanged": 0, "conflicts": 1}
    assert preview.to_update[0].existing.id == 1
    assert len(preview.conflicts[0].candidates) == 2
    assert await repository.count() == 3
    assert manager.last_sync("purchase") is None


@pytest.mark.asyncio
async def test_export_data_strips_metadata_and_filters(memory_store: InMemoryRecordStore) -> None:
    await _seed(
        memory_store,
        make_record(store="1", invoice="A"),
        make_record(store="2", invoice="B"),
    )
    manager = ImportManager(memory_store)

    everything = await manager.export_data("purchase")
    filtered = await manager.export_data("purchase", filters={"store": "2"})

    assert len(everything) == 2
    assert "id" not in everything[0]
    assert [row["invoice"] for row in filtered] == ["B"]


def test_repository_for_caches_by_collection(clock: FakeClock) -> None:
    provider = _SingleRepositoryProvider(InMemoryRecordRepository("purchase", clock=clock))
    manager = ImportManager(provider)

    assert manager.repository_for("purchase") is manager.repository_for(DataType.PURCHASE)
    assert provider.requested == ["purchase"]


@pytest.mark.asyncio
async def test_export_data_by_inclusive_date_range(memory_store: InMemoryRecordStore) -> None:
    await _seed(
        memory_store,
        make_record(date="2024-02-29", invoice="A"),
        make_record(date="2024-03-01", invoice="B"),
        make_record(date="2024-03-15", invoice="C"),
        make_record(date="2024-03-31", invoice="D"),
        make_record(date="2024-04-01", invoice="E"),
    )
    manager = ImportManager(memory_store)

    march = await manager.export_data("purchase", date_range=("2024-03-01", "2024-03-31"))
    filtered = await manager.export_data(
        "purchase",
        filters={"invoice": "A"},
        date_range=("2024-03-01", "2024-03-31"),
    )

    assert [row["invoice"] for row in march] == ["B", "C", "D"]
    assert "version" not in march[0]
    assert [row["invoice"] for row in filtered] == ["A"]
