import asyncio
import itertools
import logging
from typing import Dict, List, Optional

from helpers.availability_rules import (
    DAY_NAMES,
    TimeBlock,
    TimeValue,
    ValidationResult,
    format_minutes,
    to_minutes,
    validate,
    weekly_load_summary,
    WeeklyLoadSummary,
)


logger = logging.getLogger("staged_schedule")

TEMP_ID_PREFIX = "temp-"

TEMPLATES = {
    "weekdays": {
        "label": "Mon-Fri 09:00-17:00",
        "description": "Standard working hours",
        "days": [1, 2, 3, 4, 5],
        "start": "09:00",
        "end": "17:00",
    },
    "afternoons": {
        "label": "Mon-Fri 14:00-20:00",
        "description": "Afternoon hours",
        "days": [1, 2, 3, 4, 5],
        "start": "14:00",
        "end": "20:00",
    },
    "extended": {
        "label": "Mon-Sat 08:00-20:00",
        "description": "Full-time hours",
        "days": [1, 2, 3, 4, 5, 6],
        "start": "08:00",
        "end": "20:00",
    },
}


class BlockNotFoundError(KeyError):
    pass


class UnknownTemplateError(KeyError):
    pass


class StagedSchedule:
    """
    A practitioner's weekly blocks while they are being edited.

    Blocks are kept per day in insertion order. New blocks get provisional
    ids ("temp-1", "temp-2", ...) until the schedule is saved and reloaded
    with the ids issued by the scheduling service.
    """

    def __init__(self, blocks: Optional[List[TimeBlock]] = None):
        self._days: Dict[int, List[TimeBlock]] = {day: [] for day in DAY_NAMES}
        self._counter = itertools.count(1)
        for block in blocks or []:
            if block.id is None:
                block = block.model_copy(update={"id": self._next_id()})
            self._days[block.day_of_week].append(block)

    @classmethod
    def from_records(cls, records: List[dict]) -> "StagedSchedule":
        return cls([TimeBlock(**record) for record in records])

    def _next_id(self) -> str:
        return f"{TEMP_ID_PREFIX}{next(self._counter)}"

    def _locate(self, block_id: str):
        for day, blocks in self._days.items():
            for index, block in enumerate(blocks):
                if block.id == block_id:
                    return day, index
        raise BlockNotFoundError(block_id)

    def blocks_for_day(self, day_of_week: int) -> List[TimeBlock]:
        return list(self._days[day_of_week])

    def all_blocks(self) -> List[TimeBlock]:
        return [block for day in sorted(self._days) for block in self._days[day]]

    def get_block(self, block_id: str) -> TimeBlock:
        day, index = self._locate(block_id)
        return self._days[day][index]

    def add_block(
        self,
        day_of_week: int,
        start_time: TimeValue,
        end_time: TimeValue,
        session_duration: int = 60,
    ) -> ValidationResult:
        result = validate(day_of_week, start_time, end_time, self._days.get(day_of_week, []))
        if not result.accepted:
            logger.info(f"Rejected new block on {DAY_NAMES[day_of_week]}: {result.message}")
            return result

        block = TimeBlock(
            id=self._next_id(),
            day_of_week=day_of_week,
            start_time=format_minutes(to_minutes(start_time)),
            end_time=format_minutes(to_minutes(end_time)),
            session_duration=session_duration,
            active=True,
        )
        self._days[day_of_week].append(block)
        logger.info(f"Staged block {block.id} on {DAY_NAMES[day_of_week]} {block.label()}")
        return result

    def edit_block(self, block_id: str, start_time: TimeValue, end_time: TimeValue) -> ValidationResult:
        day, index = self._locate(block_id)
        result = validate(day, start_time, end_time, self._days[day], exclude_block_id=block_id)
        if not result.accepted:
            logger.info(f"Rejected edit of block {block_id}: {result.message}")
            return result

        self._days[day][index] = self._days[day][index].model_copy(update={
            "start_time": format_minutes(to_minutes(start_time)),
            "end_time": format_minutes(to_minutes(end_time)),
        })
        logger.info(f"Updated block {block_id} to {self._days[day][index].label()}")
        return result

    def remove_block(self, block_id: str) -> TimeBlock:
        day, index = self._locate(block_id)
        block = self._days[day].pop(index)
        logger.info(f"Removed block {block_id} from {DAY_NAMES[day]}")
        return block

    def toggle_active(self, block_id: str) -> TimeBlock:
        day, index = self._locate(block_id)
        block = self._days[day][index]
        self._days[day][index] = block.model_copy(update={"active": not block.active})
        return self._days[day][index]

    def apply_template(self, name: str) -> None:
        """Replace every staged block with one block per template day."""
        template = TEMPLATES.get(name)
        if template is None:
            raise UnknownTemplateError(name)

        self._days = {day: [] for day in DAY_NAMES}
        for day in template["days"]:
            self._days[day].append(TimeBlock(
                id=self._next_id(),
                day_of_week=day,
                start_time=template["start"],
                end_time=template["end"],
                session_duration=60,
                active=True,
            ))
        logger.info(f"Applied template {name!r}")

    def summary(self) -> WeeklyLoadSummary:
        return weekly_load_summary(self.all_blocks())

    def to_payload(self) -> List[dict]:
        return [
            {
                "day_of_week": block.day_of_week,
                "start_time": block.start_time,
                "end_time": block.end_time,
                "session_duration": block.session_duration,
                "active": block.active,
            }
            for block in self.all_blocks()
        ]

    def to_dict(self) -> dict:
        return {
            "days": [
                {
                    "day_of_week": day,
                    "name": DAY_NAMES[day],
                    "blocks": [block.model_dump() for block in self._days[day]],
                }
                for day in sorted(self._days)
            ],
            "summary": self.summary().to_dict(),
        }


class DraftStore:
    """In-process drafts, one per professional profile."""

    def __init__(self):
        self._drafts: Dict[int, StagedSchedule] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def lock(self, profile_id: int) -> asyncio.Lock:
        """Serializes load, edit and save of one profile's draft across requests."""
        return self._locks.setdefault(profile_id, asyncio.Lock())

    def get(self, profile_id: int) -> Optional[StagedSchedule]:
        return self._drafts.get(profile_id)

    def put(self, profile_id: int, schedule: StagedSchedule) -> StagedSchedule:
        self._drafts[profile_id] = schedule
        return schedule

    def discard(self, profile_id: int) -> None:
        self._drafts.pop(profile_id, None)

    def clear(self) -> None:
        self._drafts.clear()
        self._locks.clear()


draft_store = DraftStore()
