"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from storesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRecordUnitOfWork,
    is_started,
    startup,
)
from storesync.config import get_sync_config
from storesync.domain.diff import calculate_diff, summarize_diff
from storesync.domain.merge import ImportManager
from storesync.domain.ports.unit_of_work import RecordUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterable

    from storesync.domain.diff import DiffResult
    from storesync.domain.merge import ImportSummary, MergePreview, ProgressCallback
    from storesync.domain.model import DataType, FlatRecord, MergeMode, Snapshot

UnitOfWorkFactory = Callable[[], RecordUnitOfWork]


log = getLogger(__name__)


def diff_snapshots(
    existing: Snapshot,
    incoming: Snapshot,
    imported_types: Iterable[str],
) -> DiffResult:
    """Diff two snapshots and log a one-line tally."""

    result = calculate_diff(existing, incoming, imported_types)
    log.info(
        "Snapshot diff: %s (needs_confirmation=%s, auto_approved=%s)",
        summarize_diff(result),
        result.needs_confirmation,
        [data_type.value for data_type in result.auto_approved],
    )
    return result


def import_records(
    data_type: DataType | str,
    records: Iterable[FlatRecord],
    *,
    mode: MergeMode | str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    progress: ProgressCallback | None = None,
) -> ImportSummary:
    """Merge ``records`` into persistence and commit, using the configured adapters."""

    effective_mode = mode or get_sync_config().merge_mode
    effective_uow = unit_of_work_factory or _default_unit_of_work

    with effective_uow() as uow:
        manager = ImportManager(uow.repositories)
        summary = asyncio.run(
            manager.import_data(data_type, records, effective_mode, progress=progress)
        )
        uow.commit()

    return summary


def preview_records(
    data_type: DataType | str,
    records: Iterable[FlatRecord],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> MergePreview:
    """Classify ``records`` against stored data without writing anything."""

    effective_uow = unit_of_work_factory or _default_unit_of_work

    with effective_uow() as uow:
        manager = ImportManager(uow.repositories)
        preview = asyncio.run(manager.detect_diff(data_type, records))
        uow.rollback()

    return preview


def _default_unit_of_work() -> RecordUnitOfWork:
    if not is_started():
        startup()
    return SqlAlchemyRecordUnitOfWork()
