"""
Durable energy store: append-only sample log plus per-day baselines.

Backed by SQLite through the SQLAlchemy async engine (aiosqlite driver).
The schema is created idempotently on open so a fresh install works
without running migrations; alembic revisions describe the same schema
for managed upgrades.

Operations:
- insert_sample(sample): append one poll result.
- samples_since(cutoff) / samples_between(start, end): bounded range scans.
- trim_samples(before): retention trim.
- insert_baseline_if_absent(date, counters): race-free first-writer-wins.
- get_baseline(date) / list_baselines(limit).

Supports the async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-09: Add trim_samples and count_samples
- 2026-10-03: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from dashboard.src.db.models import Base, DailyBaselineRow, PowerSample
from dashboard.src.db.session import create_engine, create_session_factory
from dashboard.src.models import CumulativeCounters, DailyBaseline, Sample

logger = logging.getLogger(__name__)


class EnergyStore:
    """Async store for power samples and daily baselines.

    Args:
        database_url: SQLAlchemy async URL for the SQLite database.

    Usage::

        async with EnergyStore("sqlite+aiosqlite:///data/energy.db") as store:
            await store.insert_sample(sample)
            rows = await store.samples_since(cutoff)
    """

    def __init__(self, database_url: str) -> None:
        self._database_url = database_url
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def open(self) -> None:
        """Create the engine and ensure both tables exist."""
        self._engine = create_engine(self._database_url)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._session_factory = create_session_factory(self._engine)
        logger.info("Energy store opened: %s", self._database_url)

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def __aenter__(self) -> EnergyStore:
        """Enter async context manager: open the database."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager: close the database."""
        await self.close()

    def _session(self) -> AsyncSession:
        assert self._session_factory is not None, (
            "Store not opened. Call open() or use async with."
        )
        return self._session_factory()

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------

    async def insert_sample(self, sample: Sample) -> None:
        """Append one sample row.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the write fails.
        """
        row = PowerSample(**sample.model_dump(exclude={"id"}))
        async with self._session() as session:
            session.add(row)
            await session.commit()

    async def samples_since(self, cutoff: datetime) -> list[Sample]:
        """Return samples with ``ts > cutoff`` in timestamp order."""
        stmt = select(PowerSample).where(PowerSample.ts > cutoff).order_by(PowerSample.ts)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [Sample.model_validate(row) for row in result.scalars().all()]

    async def samples_between(self, start: datetime, end: datetime) -> list[Sample]:
        """Return samples with ``start < ts <= end`` in timestamp order."""
        stmt = (
            select(PowerSample)
            .where(PowerSample.ts > start, PowerSample.ts <= end)
            .order_by(PowerSample.ts)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [Sample.model_validate(row) for row in result.scalars().all()]

    async def trim_samples(self, before: datetime) -> int:
        """Delete samples older than *before*.

        Returns:
            Number of rows removed.
        """
        async with self._session() as session:
            result = await session.execute(delete(PowerSample).where(PowerSample.ts < before))
            await session.commit()
        return result.rowcount or 0

    async def count_samples(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(PowerSample))
            return result.scalar_one()

    # ------------------------------------------------------------------
    # Daily baselines
    # ------------------------------------------------------------------

    async def get_baseline(self, date_key: str) -> DailyBaseline | None:
        """Return the baseline stored for *date_key*, or ``None``."""
        async with self._session() as session:
            result = await session.execute(
                select(DailyBaselineRow).where(DailyBaselineRow.date == date_key)
            )
            row = result.scalar_one_or_none()
        return DailyBaseline.model_validate(row) if row is not None else None

    async def insert_baseline_if_absent(
        self,
        date_key: str,
        counters: CumulativeCounters,
    ) -> DailyBaseline:
        """Insert *counters* as the baseline for *date_key* unless one exists.

        Uses ``INSERT ... ON CONFLICT(date) DO NOTHING`` so that concurrent
        callers racing on the same date cannot both win; the loser simply
        reads back the winning row.

        Returns:
            The baseline stored for *date_key* after the insert attempt.
        """
        stmt = (
            sqlite_insert(DailyBaselineRow)
            .values(date=date_key, **counters.model_dump())
            .on_conflict_do_nothing(index_elements=["date"])
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            if result.rowcount == 1:
                logger.info("New daily baseline set for %s", date_key)
            winner = await session.execute(
                select(DailyBaselineRow).where(DailyBaselineRow.date == date_key)
            )
            return DailyBaseline.model_validate(winner.scalar_one())

    async def list_baselines(self, limit: int = 90) -> list[DailyBaseline]:
        """Return up to *limit* baselines, newest date first."""
        stmt = select(DailyBaselineRow).order_by(DailyBaselineRow.date.desc()).limit(limit)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [DailyBaseline.model_validate(row) for row in result.scalars().all()]
