# schemas.py
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
import os
from dotenv import load_dotenv

from controls import is_valid_time, normalize_days, normalize_soil

load_dotenv()

DEFAULT_VALVE_ID = os.getenv("DEFAULT_VALVE_ID", "valve1")


class SensorReadingIn(BaseModel):
    soil_moisture: float = Field(ge=0)
    temperature: Optional[float] = None
    humidity: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("soil_moisture")
    @classmethod
    def to_percent(cls, v: float) -> float:
        return normalize_soil(v)

class SensorReadingOut(BaseModel):
    id: int
    soil_moisture: float
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    ts: datetime

    class Config:
        from_attributes = True

class ValveStatusIn(BaseModel):
    is_on: bool

class ValveStatusOut(BaseModel):
    valve_id: str
    is_on: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ValveCommandOut(BaseModel):
    valve_id: str
    desired: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AutoModeConfigOut(BaseModel):
    auto_mode_enabled: bool
    min_humidity: int
    max_humidity: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AutoModeConfigPatch(BaseModel):
    """Merge update – only the fields sent are touched."""
    auto_mode_enabled: Optional[bool] = None
    min_humidity: Optional[int] = Field(default=None, ge=0, le=100)
    max_humidity: Optional[int] = Field(default=None, ge=0, le=100)

class ScheduleIn(BaseModel):
    time: str                                   # "HH:MM"
    minutes: int = Field(ge=1)
    valve_id: str = DEFAULT_VALVE_ID
    days: list[int] = []                        # empty → every day
    enabled: bool = True

    @field_validator("time")
    @classmethod
    def check_time(cls, v: str) -> str:
        if not is_valid_time(v):
            raise ValueError("time must be HH:MM")
        return v

    @field_validator("days")
    @classmethod
    def check_days(cls, v: list[int]) -> list[int]:
        return normalize_days(v)

class ScheduleOut(ScheduleIn):
    id: int
    created_at: datetime

    class Config:
        from_attributes = True
