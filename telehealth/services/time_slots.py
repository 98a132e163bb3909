"""
Time slot values and the date conventions shared by the doctor and patient paths.

All instants are normalized to UTC, and an availability day is the UTC calendar
date of a slot's start. Naive datetimes (as returned by SQLite) are read as UTC.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from telehealth.core import config
from telehealth.core.errors import BookingValidationError


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    try:
        # fromisoformat only accepts a trailing "Z" from Python 3.11 on.
        return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except (AttributeError, ValueError) as exc:
        raise BookingValidationError(f"Invalid timestamp: {value!r}.") from exc


def format_instant(value: datetime) -> str:
    return to_utc(value).isoformat().replace("+00:00", "Z")


def day_of(instant: datetime) -> date:
    """Calendar date an instant belongs to, in UTC."""
    return to_utc(instant).date()


def availability_day_key(doctor_id: str, day: date) -> str:
    return f"{doctor_id}_{day.isoformat()}"


@dataclass(frozen=True, eq=False)
class TimeSlot:
    """A bookable window. Two slots are the same slot when they start together."""

    start_time: datetime
    end_time: datetime = field(compare=False)

    def __post_init__(self):
        object.__setattr__(self, "start_time", to_utc(self.start_time))
        object.__setattr__(self, "end_time", to_utc(self.end_time))
        if self.end_time <= self.start_time:
            raise BookingValidationError(
                f"Slot end {format_instant(self.end_time)} must be after start {format_instant(self.start_time)}."
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSlot):
            return NotImplemented
        return self.start_time == other.start_time

    def __hash__(self) -> int:
        return hash(self.start_time)

    @property
    def day(self) -> date:
        return day_of(self.start_time)

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def to_document(self) -> dict:
        return {
            "start_time": format_instant(self.start_time),
            "end_time": format_instant(self.end_time),
        }

    @classmethod
    def from_document(cls, document: dict) -> "TimeSlot":
        try:
            start_value = document["start_time"]
            end_value = document["end_time"]
        except (KeyError, TypeError) as exc:
            raise BookingValidationError("Slot must have start_time and end_time.") from exc
        return cls(start_time=parse_instant(start_value), end_time=parse_instant(end_value))


def validate_slot(slot: TimeSlot, slot_duration_minutes: int | None = None) -> TimeSlot:
    duration = slot_duration_minutes or config.SLOT_DURATION_MINUTES

    if slot.end_time - slot.start_time != timedelta(minutes=duration):
        raise BookingValidationError(f"Time slots must be exactly {duration} minutes long.")

    start = slot.start_time
    if start.second or start.microsecond or start.minute % duration != 0:
        raise BookingValidationError(f"Time slots must start on {duration}-minute boundaries.")

    return slot


def validate_day_slots(
    day: date,
    slots: Iterable[TimeSlot],
    slot_duration_minutes: int | None = None,
) -> list[TimeSlot]:
    """Check a doctor's slot set for one date and return it sorted by start time."""
    validated: list[TimeSlot] = []
    seen: set[TimeSlot] = set()

    for slot in slots:
        validate_slot(slot, slot_duration_minutes)
        if slot.day != day:
            raise BookingValidationError(
                f"Slot starting {format_instant(slot.start_time)} is not on {day.isoformat()} (UTC)."
            )
        if slot in seen:
            raise BookingValidationError(f"Duplicate slot starting {format_instant(slot.start_time)}.")
        seen.add(slot)
        validated.append(slot)

    return sorted(validated, key=lambda item: item.start_time)


def slots_from_documents(documents: Iterable[dict] | None) -> list[TimeSlot]:
    return sorted(
        (TimeSlot.from_document(document) for document in documents or []),
        key=lambda item: item.start_time,
    )
