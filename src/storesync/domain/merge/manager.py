"""Apply flat record batches to persistence under a merge policy.

``ImportManager`` runs at most one import at a time. Records are applied
strictly in input order; a record that fails is reported in the summary and the
batch carries on. Only a concurrent second import, an unknown data type or an
unknown merge mode abort the call, and all of those are raised before the
repository is touched.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final, assert_never

from storesync.domain.errors import (
    ConcurrentImportError,
    PersistenceError,
    RecordApplyError,
    UnknownDataTypeError,
)
from storesync.domain.model import DataType, FlatRecord, MergeMode, parse_data_type

from .contracts import (
    ErrorDetail,
    ImportSummary,
    MergeConflict,
    MergePreview,
    ProgressCallback,
    UpdateCandidate,
)
from .matching import DuplicateIndex, find_best_match, has_important_changes

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from storesync.domain.model import DuplicateKey
    from storesync.domain.ports.persistence import RecordRepository, RecordRepositoryProvider


log = getLogger(__name__)

# Data types persisted as flat record collections, by collection name.
DEFAULT_COLLECTIONS: Final[Mapping[DataType, str]] = {
    DataType.PURCHASE: "purchase",
    DataType.SALES: "sales",
    DataType.DISCOUNT: "discount",
    DataType.CONSUMABLES: "consumables",
    DataType.INTER_STORE_IN: "inter_store_in",
    DataType.INTER_STORE_OUT: "inter_store_out",
    DataType.DIRECT_PRODUCE: "direct_produce",
    DataType.FLOWERS: "flowers",
    DataType.BUDGET: "budget",
    DataType.SETTINGS: "settings",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ImportManager:
    """Merge engine for flat record collections."""

    def __init__(
        self,
        repositories: RecordRepositoryProvider,
        *,
        collections: Mapping[DataType, str] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repositories = repositories
        self._collections = dict(DEFAULT_COLLECTIONS if collections is None else collections)
        self._clock = clock
        self._repository_cache: dict[str, RecordRepository] = {}
        self._last_sync: dict[DataType, ImportSummary] = {}
        self._sync_in_progress = False

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_in_progress

    def repository_for(self, data_type: DataType | str) -> RecordRepository:
        """Return the (cached) repository backing ``data_type``."""

        collection = self._collection_for(data_type)
        repository = self._repository_cache.get(collection)
        if repository is None:
            repository = self._repositories(collection)
            self._repository_cache[collection] = repository
        return repository

    async def import_data(
        self,
        data_type: DataType | str,
        records: Iterable[FlatRecord],
        mode: MergeMode | str = MergeMode.SMART,
        *,
        progress: ProgressCallback | None = None,
    ) -> ImportSummary:
        """Apply ``records`` to the collection for ``data_type`` and summarise the outcome."""

        if self._sync_in_progress:
            raise ConcurrentImportError("Import already in progress")
        resolved_type = parse_data_type(str(data_type))
        resolved_mode = MergeMode(mode)
        repository = self.repository_for(resolved_type)

        self._sync_in_progress = True
        try:
            batch = list(records)
            log.info(
                "Importing %s records into %s (mode=%s)",
                len(batch),
                resolved_type,
                resolved_mode,
            )
            started = time.perf_counter()
            outcome = _BatchOutcome(total=len(batch), progress=progress)

            match resolved_mode:
                case MergeMode.REPLACE:
                    await _import_replace(repository, batch, outcome)
                case MergeMode.APPEND:
                    await _import_append(repository, batch, outcome)
                case MergeMode.SMART:
                    await _import_smart(repository, batch, outcome)
                case MergeMode.SKIP:
                    await _import_skip(repository, batch, outcome)
                case _:
                    assert_never(resolved_mode)

            summary = ImportSummary(
                data_type=resolved_type,
                mode=resolved_mode,
                added=outcome.added,
                updated=outcome.updated,
                skipped=outcome.skipped,
                error_details=tuple(outcome.error_details),
                duration_ms=round((time.perf_counter() - started) * 1000),
                timestamp=self._clock(),
            )
            self._last_sync[resolved_type] = summary
            log.info(
                "Import into %s finished in %sms: added=%s, updated=%s, skipped=%s, errors=%s",
                resolved_type,
                summary.duration_ms,
                summary.added,
                summary.updated,
                summary.skipped,
                summary.errors,
            )
            return summary
        finally:
            self._sync_in_progress = False

    async def detect_diff(
        self,
        data_type: DataType | str,
        records: Iterable[FlatRecord],
    ) -> MergePreview:
        """Classify ``records`` the way a SMART import would, without writing anything.

        Records matching several stored candidates are reported as conflicts
        instead of being resolved by similarity.
        """

        repository = self.repository_for(data_type)
        index = DuplicateIndex.from_records(await repository.get_all())
        preview = MergePreview()

        for record in records:
            candidates = index.candidates(record.duplicate_key)
            if not candidates:
                preview.to_add.append(record)
            elif len(candidates) == 1:
                existing = candidates[0]
                if has_important_changes(existing, record):
                    preview.to_update.append(UpdateCandidate(existing=existing, incoming=record))
                else:
                    preview.unchanged.append(record)
            else:
                preview.conflicts.append(MergeConflict(incoming=record, candidates=candidates))

        log.info("Merge preview for %s: %s", data_type, preview.counts())
        return preview

    async def export_data(
        self,
        data_type: DataType | str,
        *,
        filters: Mapping[str, object] | None = None,
        date_range: tuple[str, str] | None = None,
    ) -> list[dict[str, object]]:
        """Return stored records as plain mappings without persistence metadata.

        ``filters`` (field equality) takes precedence over ``date_range``, an
        inclusive ``(start, end)`` pair of ISO dates.
        """

        repository = self.repository_for(data_type)
        if filters:
            records = await repository.query(**filters)
        elif date_range is not None:
            records = await repository.get_by_date_range(*date_range)
        else:
            records = await repository.get_all()
        log.info("Exported %s records from %s", len(records), data_type)
        return [record.to_dict(include_metadata=False) for record in records]

    def last_sync(self, data_type: DataType | str) -> ImportSummary | None:
        return self._last_sync.get(parse_data_type(str(data_type)))

    def all_sync_status(self) -> dict[DataType, ImportSummary]:
        return dict(self._last_sync)

    def clear_sync_status(self, data_type: DataType | str | None = None) -> None:
        if data_type is None:
            self._last_sync.clear()
            return
        self._last_sync.pop(parse_data_type(str(data_type)), None)

    def _collection_for(self, data_type: DataType | str) -> str:
        resolved = parse_data_type(str(data_type))
        collection = self._collections.get(resolved)
        if collection is None:
            raise UnknownDataTypeError(resolved.value)
        return collection


@dataclass(slots=True)
class _BatchOutcome:
    total: int
    progress: ProgressCallback | None = None
    added: int = 0
    updated: int = 0
    skipped: int = 0
    error_details: list[ErrorDetail] = field(default_factory=list[ErrorDetail])

    async def apply_each(
        self,
        batch: Sequence[FlatRecord],
        apply: Callable[[FlatRecord], Awaitable[None]],
    ) -> None:
        for index, record in enumerate(batch):
            try:
                await apply(record)
            except Exception as exc:  # noqa: BLE001
                error = RecordApplyError(index=index, record=record, cause=exc)
                log.warning("%s", error)
                self.error_details.append(ErrorDetail.from_error(error))
            self._report_progress(index + 1)

    def _report_progress(self, done: int) -> None:
        if self.progress is None:
            return
        try:
            self.progress(done, self.total)
        except Exception:  # noqa: BLE001
            log.warning("Progress callback failed at %s/%s", done, self.total, exc_info=True)


async def _import_replace(
    repository: RecordRepository,
    batch: Sequence[FlatRecord],
    outcome: _BatchOutcome,
) -> None:
    await repository.clear()
    await _import_append(repository, batch, outcome)


async def _import_append(
    repository: RecordRepository,
    batch: Sequence[FlatRecord],
    outcome: _BatchOutcome,
) -> None:
    async def apply(record: FlatRecord) -> None:
        await repository.add(record)
        outcome.added += 1

    await outcome.apply_each(batch, apply)


async def _import_smart(
    repository: RecordRepository,
    batch: Sequence[FlatRecord],
    outcome: _BatchOutcome,
) -> None:
    index = DuplicateIndex.from_records(await repository.get_all())

    async def apply(record: FlatRecord) -> None:
        candidates = index.candidates(record.duplicate_key)
        if not candidates:
            record_id = await repository.add(record)
            outcome.added += 1
            # later records in this batch must be able to match this one
            index.add(replace(record, id=record_id))
            return

        match = find_best_match(record, candidates)
        if not has_important_changes(match, record):
            outcome.skipped += 1
            return
        changes = record.field_values()
        await repository.update(_identity_of(match), changes)
        outcome.updated += 1
        index.refresh(match, match.with_changes(changes))

    await outcome.apply_each(batch, apply)


async def _import_skip(
    repository: RecordRepository,
    batch: Sequence[FlatRecord],
    outcome: _BatchOutcome,
) -> None:
    seen: set[DuplicateKey] = {record.duplicate_key for record in await repository.get_all()}

    async def apply(record: FlatRecord) -> None:
        key = record.duplicate_key
        if key in seen:
            outcome.skipped += 1
            return
        await repository.add(record)
        outcome.added += 1
        seen.add(key)

    await outcome.apply_each(batch, apply)


def _identity_of(record: FlatRecord) -> int:
    if record.id is None:
        raise PersistenceError("Stored record has no identity")
    return record.id
