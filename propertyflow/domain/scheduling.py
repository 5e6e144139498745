# propertyflow/domain/scheduling.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class DaySchedule:
    start: str = "09:00"
    end: str = "17:00"
    enabled: bool = True

    def bounds(self, day: date) -> tuple[datetime, datetime]:
        return datetime.combine(day, _parse_hhmm(self.start)), datetime.combine(day, _parse_hhmm(self.end))


def _parse_hhmm(v: str) -> time:
    hh, mm = str(v).split(":", 1)
    return time(int(hh), int(mm))


def default_weekly_schedule() -> dict[str, DaySchedule]:
    return {d: DaySchedule(enabled=d not in ("saturday", "sunday")) for d in WEEKDAYS}


@dataclass(frozen=True)
class AvailabilityRules:
    weekly: dict[str, DaySchedule] = field(default_factory=default_weekly_schedule)
    buffer_minutes: int = 30
    min_notice_hours: int = 24
    max_advance_days: int = 60
    blocked_dates: tuple[date, ...] = ()

    def day(self, d: date) -> Optional[DaySchedule]:
        return self.weekly.get(WEEKDAYS[d.weekday()])

    def weekly_json(self) -> str:
        return json.dumps(
            {k: {"start": v.start, "end": v.end, "enabled": v.enabled} for k, v in self.weekly.items()},
            sort_keys=True,
        )

    def blocked_json(self) -> str:
        return json.dumps(sorted(d.isoformat() for d in self.blocked_dates))

    @classmethod
    def from_storage(
        cls,
        *,
        weekly_schedule_json: Optional[str],
        blocked_dates_json: Optional[str],
        buffer_minutes: int,
        min_notice_hours: int,
        max_advance_days: int,
    ) -> "AvailabilityRules":
        weekly = default_weekly_schedule()
        if weekly_schedule_json:
            for k, v in json.loads(weekly_schedule_json).items():
                if k in WEEKDAYS:
                    weekly[k] = DaySchedule(start=v.get("start", "09:00"), end=v.get("end", "17:00"), enabled=bool(v.get("enabled", False)))
        blocked = tuple(date.fromisoformat(str(x)[:10]) for x in json.loads(blocked_dates_json or "[]"))
        return cls(
            weekly=weekly,
            buffer_minutes=int(buffer_minutes),
            min_notice_hours=int(min_notice_hours),
            max_advance_days=int(max_advance_days),
            blocked_dates=blocked,
        )


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime
    appointment_id: Optional[int] = None


@dataclass(frozen=True)
class TimeSlot:
    start_time: datetime
    end_time: datetime
    is_available: bool


def slot_rejection(
    rules: AvailabilityRules,
    start: datetime,
    end: datetime,
    busy: Iterable[BusyInterval],
    *,
    now: datetime,
    exclude_id: Optional[int] = None,
) -> Optional[str]:
    """
    Why a slot cannot be booked, or None when it can.

    Checks blocked dates, minimum notice, maximum advance window, the
    weekday's working hours, then overlaps with other appointments widened
    by the buffer on both sides.
    """
    if end <= start:
        return "end must be after start"
    if start.date() in rules.blocked_dates:
        return "date is blocked"
    if start < now + timedelta(hours=rules.min_notice_hours):
        return "not enough notice"
    if start > now + timedelta(days=rules.max_advance_days):
        return "too far in advance"

    day = rules.day(start.date())
    if day is None or not day.enabled:
        return "contractor does not work this day"
    open_at, close_at = day.bounds(start.date())
    if start < open_at or end > close_at:
        return "outside working hours"

    buf = timedelta(minutes=rules.buffer_minutes)
    for b in busy:
        if exclude_id is not None and b.appointment_id == exclude_id:
            continue
        if b.start < end and b.end > start:
            return "overlaps another appointment"
        if b.start < end + buf and b.end > start - buf:
            return "too close to another appointment"
    return None


def is_slot_available(
    rules: AvailabilityRules,
    start: datetime,
    end: datetime,
    busy: Iterable[BusyInterval],
    *,
    now: datetime,
    exclude_id: Optional[int] = None,
) -> bool:
    return slot_rejection(rules, start, end, busy, now=now, exclude_id=exclude_id) is None


def build_day_slots(
    rules: AvailabilityRules,
    day: date,
    busy: Iterable[BusyInterval],
    *,
    now: datetime,
    duration_minutes: int = 60,
) -> List[TimeSlot]:
    if duration_minutes <= 0:
        raise ValueError("slot duration must be positive")
    if day > (now + timedelta(days=rules.max_advance_days)).date():
        return []
    if day in rules.blocked_dates:
        return []
    sched = rules.day(day)
    if sched is None or not sched.enabled:
        return []

    busy = list(busy)
    open_at, close_at = sched.bounds(day)
    step = timedelta(minutes=duration_minutes)

    out: List[TimeSlot] = []
    cur = open_at
    while cur + step <= close_at:
        out.append(TimeSlot(start_time=cur, end_time=cur + step, is_available=is_slot_available(rules, cur, cur + step, busy, now=now)))
        cur += step
    return out
