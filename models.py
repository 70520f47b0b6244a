# models.py – one table per document collection
from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String
from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SensorReading(Base):
    __tablename__ = "readings"

    id            = Column(Integer, primary_key=True, index=True)
    soil_moisture = Column(Float, nullable=False)          # percent, 0‑100
    temperature   = Column(Float, nullable=True)           # °C
    humidity      = Column(Float, nullable=True)
    ts            = Column(DateTime(timezone=True), default=utcnow, index=True)


class ValveStatus(Base):
    """Actual valve state, as last reported by firmware or a manual toggle."""
    __tablename__ = "valve_status"

    valve_id   = Column(String(64), primary_key=True)
    is_on      = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ValveCommand(Base):
    """State the dashboard asked for; firmware applies it and reports back."""
    __tablename__ = "valve_commands"

    valve_id   = Column(String(64), primary_key=True)
    desired    = Column(Boolean, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class AutoModeConfig(Base):
    __tablename__ = "auto_config"

    id                = Column(Integer, primary_key=True)  # always 1
    auto_mode_enabled = Column(Boolean, nullable=False, default=False)
    min_humidity      = Column(Integer, nullable=False, default=35)
    max_humidity      = Column(Integer, nullable=False, default=60)
    updated_at        = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class ScheduleEntry(Base):
    __tablename__ = "schedules"

    id         = Column(Integer, primary_key=True, index=True)
    time       = Column(String(5), nullable=False, index=True)   # "HH:MM"
    minutes    = Column(Integer, nullable=False)
    valve_id   = Column(String(64), nullable=False)
    days       = Column(JSON, nullable=False, default=list)      # 0=Sun … 6=Sat
    enabled    = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
