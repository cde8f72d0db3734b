# clinic_scheduler/schemas.py

from datetime import datetime, date, time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from clinic_scheduler.core import to_local_naive
from clinic_scheduler.models import AppointmentStatus


class StatusAction(str, Enum):
    arrived = "arrived"
    completed = "completed"
    no_show = "no_show"
    cancelled = "cancelled"


class SlotPublic(BaseModel):
    start: datetime
    end: datetime


class SlotsResponse(BaseModel):
    date: date
    slots: List[SlotPublic]


class NextSlotResponse(BaseModel):
    slot: SlotPublic


class AppointmentCreate(BaseModel):
    client_id: int
    start_time: datetime
    end_time: datetime
    appointment_type: Optional[str] = None
    note: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_local(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class AppointmentUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    note: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def to_local(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v) if v is not None else v


class AppointmentStatusChange(BaseModel):
    action: StatusAction


class AppointmentPublic(BaseModel):
    id: int
    client_id: int
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    appointment_type: Optional[str] = None
    note: Optional[str] = None


class AppointmentResponse(BaseModel):
    appointment: AppointmentPublic


class AppointmentListResponse(BaseModel):
    appointments: List[AppointmentPublic]


class NextAppointmentResponse(BaseModel):
    appointment: Optional[AppointmentPublic] = None


class RuleCreate(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0=Sunday
    start_time: time
    end_time: time
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def minute_precision(cls, v: time) -> time:
        return v.replace(second=0, microsecond=0)

    @model_validator(mode="after")
    def check_order(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time")
        if self.effective_from and self.effective_to and self.effective_from > self.effective_to:
            raise ValueError("effective_from cannot be after effective_to")
        return self


class RulePublic(RuleCreate):
    id: int


class RulesResponse(BaseModel):
    rules: List[RulePublic]


class TimeOffCreate(BaseModel):
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = None

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def to_local(cls, v: datetime) -> datetime:
        return to_local_naive(v)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class TimeOffPublic(BaseModel):
    id: int
    start_datetime: datetime
    end_datetime: datetime
    reason: Optional[str] = None


class TimeOffListResponse(BaseModel):
    time_offs: List[TimeOffPublic]


class WorkingHoursDay(BaseModel):
    weekday: int = Field(ge=0, le=6)
    enabled: bool
    start_time: time = time(9, 0)
    end_time: time = time(17, 0)

    @model_validator(mode="after")
    def check_order(self):
        if self.enabled and self.start_time >= self.end_time:
            raise ValueError("start_time must be earlier than end_time for enabled days")
        return self


class BookingSettings(BaseModel):
    slot_length: int = Field(ge=5, le=180)
    buffer_time: int = Field(ge=0, le=60)


class SchedulingSettingsPayload(BaseModel):
    block_red_days: Optional[bool] = None
    working_hours: Optional[List[WorkingHoursDay]] = None

    @field_validator("working_hours")
    @classmethod
    def one_entry_per_weekday(cls, v: Optional[List[WorkingHoursDay]]):
        if v is None:
            return v
        if len(v) != 7:
            raise ValueError("working_hours must contain exactly 7 weekday entries")
        if len({day.weekday for day in v}) != 7:
            raise ValueError("Each weekday must appear once")
        return v


class SettingsUpdate(BaseModel):
    booking: Optional[BookingSettings] = None
    scheduling: Optional[SchedulingSettingsPayload] = None


class SchedulingSettingsPublic(BaseModel):
    block_red_days: bool
    working_hours: List[WorkingHoursDay]


class SettingsResponse(BaseModel):
    booking: BookingSettings
    scheduling: SchedulingSettingsPublic
    updated_at: Optional[datetime] = None
