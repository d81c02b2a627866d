"""
SQLAlchemy ORM models for the energy history database.

Two durable tables:

- ``power_samples``: append-only log, one row per successful poll, indexed
  by timestamp. Rows are only ever removed by retention trims.
- ``daily_baselines``: one row per calendar date holding the cumulative
  counters seen at the first poll of that day. The primary key on ``date``
  is what makes insert-if-absent race-free.

Timestamps are stored as naive UTC (SQLite has no timezone type) and handed
back as aware UTC datetimes by :class:`UtcDateTime`.

CHANGELOG:
- 2026-10-03: Initial creation

TODO:
- None
"""

import datetime

from sqlalchemy import DateTime, Double, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UtcDateTime(TypeDecorator):
    """DateTime column that stores naive UTC and loads aware UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(datetime.UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=datetime.UTC)
        return value


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all dashboard ORM models."""

    pass


class PowerSample(Base):
    """Instantaneous power snapshot persisted once per successful poll.

    Attributes:
        id: Autoincrement row id.
        ts: Reading timestamp in UTC.
        solar_w: Solar production in watts.
        battery_w: Battery power in watts (positive = discharging).
        grid_w: Grid power in watts (positive = importing).
        load_w: House load in watts.
        battery_soe: Battery state of energy in percent.
        battery_status: ``charging``, ``discharging`` or ``standby``.
    """

    __tablename__ = "power_samples"
    __table_args__ = (Index("idx_power_ts", "ts"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ts: Mapped[datetime.datetime] = mapped_column(UtcDateTime, nullable=False)
    solar_w: Mapped[float] = mapped_column(Double, nullable=False)
    battery_w: Mapped[float] = mapped_column(Double, nullable=False)
    grid_w: Mapped[float] = mapped_column(Double, nullable=False)
    load_w: Mapped[float] = mapped_column(Double, nullable=False)
    battery_soe: Mapped[float] = mapped_column(Double, nullable=False)
    battery_status: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of the PowerSample."""
        return (
            f"PowerSample(id={self.id!r}, ts={self.ts!r}, "
            f"load_w={self.load_w!r}, battery_soe={self.battery_soe!r})"
        )


class DailyBaselineRow(Base):
    """Cumulative counters observed at the first poll of a calendar date.

    Written once per date and never updated.
    """

    __tablename__ = "daily_baselines"

    date: Mapped[str] = mapped_column(Text, primary_key=True)
    solar_exported_wh: Mapped[float] = mapped_column(Double, nullable=False)
    battery_exported_wh: Mapped[float] = mapped_column(Double, nullable=False)
    battery_imported_wh: Mapped[float] = mapped_column(Double, nullable=False)
    grid_imported_wh: Mapped[float] = mapped_column(Double, nullable=False)
    grid_exported_wh: Mapped[float] = mapped_column(Double, nullable=False)
    load_imported_wh: Mapped[float] = mapped_column(Double, nullable=False)

    def __repr__(self) -> str:
        """Return string representation of the DailyBaselineRow."""
        return f"DailyBaselineRow(date={self.date!r})"
