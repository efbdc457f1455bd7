# models.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Station(Base):
    __tablename__ = "station"
    station_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    device_id: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    station_name: Mapped[str] = mapped_column(String, nullable=False)
    province: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # normal | warning | critical | offline (cached, derived)
    status: Mapped[str] = mapped_column(String, nullable=False, default="normal")

    sensors: Mapped[List["Sensor"]] = relationship(back_populates="station")


class Sensor(Base):
    __tablename__ = "sensor"
    sensor_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    station_id: Mapped[int] = mapped_column(
        ForeignKey("station.station_id"), nullable=False, index=True
    )
    sensor_type: Mapped[str] = mapped_column(String, nullable=False)
    # active | inactive | error
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    station: Mapped[Station] = relationship(back_populates="sensors")

    __table_args__ = (
        UniqueConstraint("station_id", "sensor_type", name="uq_sensor_station_type"),
    )


class SensorData(Base):
    __tablename__ = "sensor_data"
    data_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sensor_id: Mapped[int] = mapped_column(
        ForeignKey("sensor.sensor_id"), nullable=False
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_sensor_data_sensor_recorded", "sensor_id", "recorded_at"),
    )


class Threshold(Base):
    __tablename__ = "threshold"
    threshold_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sensor_type: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    min_value: Mapped[float] = mapped_column(Float, nullable=False)
    max_value: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("min_value < max_value", name="ck_threshold_min_lt_max"),
    )


class Alert(Base):
    __tablename__ = "alert"
    alert_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    station_id: Mapped[int] = mapped_column(
        ForeignKey("station.station_id"), nullable=False, index=True
    )
    sensor_id: Mapped[int] = mapped_column(ForeignKey("sensor.sensor_id"), nullable=False)
    data_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sensor_data.data_id"), nullable=False
    )
    alert_type: Mapped[str] = mapped_column(String, nullable=False)
    alert_message: Mapped[str] = mapped_column(String, nullable=False)
    severity: Mapped[str] = mapped_column(String, nullable=False)
    is_acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, index=True)
