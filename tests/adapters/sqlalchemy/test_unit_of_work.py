from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from storesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyRecordUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from tests.helpers.records import make_record

if TYPE_CHECKING:
    from collections.abc import Callable


def test_commit_persists_between_units_of_work(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRecordUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        asyncio.run(uow.repositories("purchase").add(make_record()))
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert asyncio.run(uow.repositories("purchase").count()) == 1


def test_exception_rolls_back(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRecordUnitOfWork],
) -> None:
    with pytest.raises(RuntimeError, match="boom"), sqlite_unit_of_work() as uow:
        asyncio.run(uow.repositories("purchase").add(make_record()))
        raise RuntimeError("boom")

    with sqlite_unit_of_work() as uow:
        assert asyncio.run(uow.repositories("purchase").count()) == 0


def test_repositories_require_an_open_session(
    sqlite_unit_of_work: Callable[[], SqlAlchemyRecordUnitOfWork],
) -> None:
    uow = sqlite_unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_startup_lifecycle() -> None:
    shutdown()
    assert is_started() is False
    with pytest.raises(StartupError):
        SqlAlchemyRecordUnitOfWork()

    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        startup(engine=engine)
        assert configured_engine() is engine
        with pytest.raises(StartupError):
            startup(engine=engine)
        startup(engine=engine, force=True)
        assert is_started() is True
    finally:
        shutdown()
    assert configured_engine() is None
