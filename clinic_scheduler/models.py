# clinic_scheduler/models.py

from enum import Enum
from typing import Annotated, Optional
from datetime import datetime, date as Date, time

from pydantic import NaiveDatetime
from sqlmodel import SQLModel, Field

from clinic_scheduler.core import Bounded, Standing

# Wall-clock local time, stored without an offset
LocalDatetime = Annotated[datetime, NaiveDatetime]


class AppointmentStatus(str, Enum):
    BOOKED = "BOOKED"
    ARRIVED = "ARRIVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class Client(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = Field(default=None, index=True)


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: int = Field(foreign_key="client.id", index=True)
    start_time: LocalDatetime = Field(index=True)
    end_time: LocalDatetime = Field(index=True)
    status: AppointmentStatus = Field(default=AppointmentStatus.BOOKED, index=True)
    appointment_type: Optional[str] = None
    note: Optional[str] = None
    created_at: LocalDatetime = Field(default_factory=datetime.now)


class WorkingHoursRule(SQLModel, table=True):
    __tablename__ = "working_hours_rule"

    id: Optional[int] = Field(default=None, primary_key=True)
    weekday: int = Field(index=True)  # 0=Sunday ... 6=Saturday
    start_time: time
    end_time: time
    effective_from: Optional[Date] = None
    effective_to: Optional[Date] = None

    def effective_range(self) -> Standing | Bounded:
        if self.effective_from is None and self.effective_to is None:
            return Standing()
        return Bounded(self.effective_from, self.effective_to)


class TimeOff(SQLModel, table=True):
    __tablename__ = "time_off"

    id: Optional[int] = Field(default=None, primary_key=True)
    start_datetime: LocalDatetime = Field(index=True)
    end_datetime: LocalDatetime = Field(index=True)
    reason: Optional[str] = None


class SchedulingSettings(SQLModel, table=True):
    __tablename__ = "scheduling_settings"

    id: Optional[int] = Field(default=None, primary_key=True)
    slot_length: int = 30
    buffer_time: int = 5
    block_red_days: bool = False
    updated_at: LocalDatetime = Field(default_factory=datetime.now)


class AdmissionLock(SQLModel, table=True):
    # One row per calendar day; writers touching a day upsert its row first
    __tablename__ = "admission_lock"

    day: Date = Field(primary_key=True)
    version: int = 1


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    entity_type: str
    entity_id: int
    action: str
    created_at: LocalDatetime = Field(default_factory=datetime.now)
