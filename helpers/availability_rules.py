"""
Weekly availability rules.

Pure checks over a practitioner's staged weekly time blocks:
- validate(): can a proposed block be added (or an existing one edited)?
- weekly_load_summary(): how many bookable sessions the active blocks give
- validate_week(): pre-flight of a whole staged week before it is saved

Nothing here touches the database or the network.
"""

import re
from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


MIN_BLOCK_MINUTES = 30
SESSION_DURATIONS = (30, 60)

DAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

TimeValue = Union[str, time]


class TimeBlock(BaseModel):
    id: Optional[str] = None
    day_of_week: int = Field(ge=0, le=6, description="0=Sunday, 1=Monday, ..., 6=Saturday")
    start_time: str = Field(description="HH:MM (24h format)")
    end_time: str = Field(description="HH:MM (24h format)")
    session_duration: int = 60
    active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return None if value is None else str(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_time(cls, value):
        return format_minutes(to_minutes(value))

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def label(self) -> str:
        return f"{self.start_time} - {self.end_time}"


class RejectionReason(str, Enum):
    END_NOT_AFTER_START = "end_not_after_start"
    TOO_SHORT = "too_short"
    OVERLAP = "overlap"


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[RejectionReason] = None
    conflict: Optional[TimeBlock] = None

    @property
    def message(self) -> Optional[str]:
        if self.reason is RejectionReason.END_NOT_AFTER_START:
            return "End time must be after start time"
        if self.reason is RejectionReason.TOO_SHORT:
            return f"A block must last at least {MIN_BLOCK_MINUTES} minutes"
        if self.reason is RejectionReason.OVERLAP:
            return f"This block overlaps with {self.conflict.label()}"
        return None

    def to_dict(self) -> dict:
        data = {
            "accepted": self.accepted,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }
        if self.conflict is not None:
            data["conflict"] = {
                "id": self.conflict.id,
                "start_time": self.conflict.start_time,
                "end_time": self.conflict.end_time,
            }
        return data


ACCEPTED = ValidationResult(accepted=True)


@dataclass(frozen=True)
class WeeklyLoadSummary:
    total_blocks: int
    slots_30: int
    slots_60: int

    def to_dict(self) -> dict:
        return {
            "total_blocks": self.total_blocks,
            "sessions_30_min": self.slots_30,
            "sessions_60_min": self.slots_60,
        }


@dataclass(frozen=True)
class BlockIssue:
    """A problem found in a staged week; `index` is the block's position in the input."""
    index: int
    block: TimeBlock
    detail: str


def to_minutes(value: TimeValue) -> int:
    """Convert "HH:MM", "HH:MM:SS" or a time object to minutes since midnight."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    if not isinstance(value, str):
        raise ValueError(f"Unsupported time value: {value!r}")

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time format: {value!r}. Use HH:MM")

    hours, minutes, seconds = int(match.group(1)), int(match.group(2)), int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    # Half-open intervals: a block ending at 10:00 does not touch one starting at 10:00
    return start < other_end and end > other_start


def validate(
    day_of_week: int,
    proposed_start: TimeValue,
    proposed_end: TimeValue,
    existing_blocks: Iterable[TimeBlock],
    exclude_block_id: Optional[str] = None,
) -> ValidationResult:
    """
    Decide whether [proposed_start, proposed_end) fits on `day_of_week`.

    Returns the first rejection that applies, in order: end not after start,
    too short, overlap. When several staged blocks conflict, the first one in
    the given order is reported. A malformed day or time raises ValueError.
    """
    if day_of_week not in DAY_NAMES:
        raise ValueError(f"day_of_week must be between 0 and 6, got {day_of_week}")

    start = to_minutes(proposed_start)
    end = to_minutes(proposed_end)

    if end <= start:
        return ValidationResult(accepted=False, reason=RejectionReason.END_NOT_AFTER_START)

    if end - start < MIN_BLOCK_MINUTES:
        return ValidationResult(accepted=False, reason=RejectionReason.TOO_SHORT)

    for block in existing_blocks:
        if block.day_of_week != day_of_week:
            continue
        if exclude_block_id is not None and block.id == exclude_block_id:
            continue
        if overlaps(start, end, block.start_minutes, block.end_minutes):
            return ValidationResult(accepted=False, reason=RejectionReason.OVERLAP, conflict=block)

    return ACCEPTED


def weekly_load_summary(blocks: Iterable[TimeBlock]) -> WeeklyLoadSummary:
    total_blocks = 0
    slots_30 = 0
    slots_60 = 0

    for block in blocks:
        duration = block.duration_minutes
        # Inactive or inverted blocks offer no sessions
        if not block.active or duration <= 0:
            continue
        total_blocks += 1
        slots_30 += duration // 30
        slots_60 += duration // 60

    return WeeklyLoadSummary(total_blocks=total_blocks, slots_30=slots_30, slots_60=slots_60)


def validate_week(blocks: List[TimeBlock]) -> List[BlockIssue]:
    """
    Check a whole staged week, block by block, in the given order.

    Each block is validated against the blocks of its day that come before it,
    so an overlapping pair is reported once, on the later block.
    """
    issues: List[BlockIssue] = []

    for index, block in enumerate(blocks):
        if block.session_duration not in SESSION_DURATIONS:
            issues.append(BlockIssue(
                index=index,
                block=block,
                detail=f"{DAY_NAMES[block.day_of_week]} {block.label()}: session duration must be 30 or 60 minutes",
            ))

        result = validate(block.day_of_week, block.start_time, block.end_time, blocks[:index])
        if not result.accepted:
            issues.append(BlockIssue(
                index=index,
                block=block,
                detail=f"{DAY_NAMES[block.day_of_week]} {block.label()}: {result.message}",
            ))

    return issues
