"""Расписание открытия уроков.

Каждый рабочий день открывается ровно один новый урок. Расписание строится
один раз от даты старта пользователя и дальше не меняется: новая дата
старта даёт новое расписание.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from datetime import date, datetime, timedelta
from types import MappingProxyType

from ..domain.entities import LessonRef, UnlockEntry

# Глава 1: 9 уроков; главы 2-12: по 10, кроме главы 5 (11)
DEFAULT_CURRICULUM_SHAPE: tuple[int, ...] = (9, 10, 10, 10, 11, 10, 10, 10, 10, 10, 10, 10)

_SATURDAY = 5


def _as_date(value: date | datetime) -> date:
    # время суток не важно: уроки открываются по дням
    return value.date() if isinstance(value, datetime) else value


def is_weekday(day: date) -> bool:
    return day.weekday() < _SATURDAY


def next_weekday_on_or_after(day: date) -> date:
    while not is_weekday(day):
        day += timedelta(days=1)
    return day


def next_weekday_after(day: date) -> date:
    return next_weekday_on_or_after(day + timedelta(days=1))


def lesson_id_for(chapter_number: int, lesson_number: int) -> str:
    return f"les_{chapter_number}_{lesson_number}"


def canonical_lessons(curriculum_shape: Sequence[int] = DEFAULT_CURRICULUM_SHAPE) -> list[LessonRef]:
    """Уроки в каноническом порядке; shape[i] - число уроков в главе i+1."""
    lessons = []
    index = 0
    for chapter_number, lesson_count in enumerate(curriculum_shape, start=1):
        for lesson_number in range(1, lesson_count + 1):
            lessons.append(LessonRef(
                id=lesson_id_for(chapter_number, lesson_number),
                chapter_number=chapter_number,
                lesson_number=lesson_number,
                global_index=index,
            ))
            index += 1
    return lessons


class UnlockSchedule:
    """Неизменяемое упорядоченное отображение lesson_id -> UnlockEntry."""

    def __init__(self, entries: Iterable[UnlockEntry], global_launch_date: date):
        self._entries = MappingProxyType({e.lesson_id: e for e in entries})
        self.global_launch_date = global_launch_date

    def __getitem__(self, lesson_id: str) -> UnlockEntry:
        return self._entries[lesson_id]

    def __contains__(self, lesson_id: object) -> bool:
        return lesson_id in self._entries

    def __iter__(self) -> Iterator[UnlockEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, lesson_id: str) -> UnlockEntry | None:
        return self._entries.get(lesson_id)

    def lesson_ids(self) -> list[str]:
        return list(self._entries)

    @property
    def effective_start_date(self) -> date | None:
        first = next(iter(self._entries.values()), None)
        return first.unlock_date if first else None


def build_unlock_schedule(
    start_date: date | datetime,
    global_launch_date: date | datetime,
    curriculum_shape: Sequence[int] = DEFAULT_CURRICULUM_SHAPE,
) -> UnlockSchedule:
    launch = _as_date(global_launch_date)
    effective_start = max(_as_date(start_date), launch)
    current = next_weekday_on_or_after(effective_start)

    entries = []
    for lesson in canonical_lessons(curriculum_shape):
        if lesson.global_index > 0:
            current = next_weekday_after(current)
        entries.append(UnlockEntry(
            lesson=lesson,
            unlock_date=current,
            is_first_lesson=lesson.global_index == 0,
        ))
    return UnlockSchedule(entries, launch)


def get_unlock_date(schedule: UnlockSchedule, lesson_id: str) -> date | None:
    entry = schedule.get(lesson_id)
    return entry.unlock_date if entry else None


def is_lesson_unlocked(schedule: UnlockSchedule, lesson_id: str, as_of: date | datetime) -> bool:
    entry = schedule.get(lesson_id)
    if entry is None:
        # неизвестный урок считается открытым (новые уроки вне расписания)
        return True
    today = _as_date(as_of)
    return today >= schedule.global_launch_date and today >= entry.unlock_date


def days_until_unlock(schedule: UnlockSchedule, lesson_id: str, as_of: date | datetime) -> int:
    entry = schedule.get(lesson_id)
    if entry is None:
        return 0
    today = _as_date(as_of)
    if today < schedule.global_launch_date:
        return (schedule.global_launch_date - today).days
    return max(0, (entry.unlock_date - today).days)


def is_chapter_unlocked(
    schedule: UnlockSchedule,
    chapter_lesson_ids: Iterable[str],
    as_of: date | datetime,
) -> bool:
    # глава открывается постепенно: достаточно одного открытого урока
    return any(is_lesson_unlocked(schedule, lesson_id, as_of) for lesson_id in chapter_lesson_ids)
