"""Разбор журнала событий прогресса.

Одни типы событий накапливаются (выполненные задания и уроки), другие
описывают одно меняющееся значение (баллы теста, просмотренные темы, флаги).
Для вторых текущим считается значение самого позднего события.
"""
from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from ..domain.entities import ProgressEvent, ProgressType

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def event_time(event: ProgressEvent) -> datetime:
    """Время события для сравнения; события без времени старше любых датированных."""
    ts = event.updated_at
    if ts is None:
        return _EPOCH
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def resolve_latest_value(
    events: Iterable[ProgressEvent],
    type: ProgressType,
    lesson_id: str = "",
    task_id: str = "",
) -> Any | None:
    latest: ProgressEvent | None = None
    for event in events:
        if event.type != type or event.lesson_id != lesson_id or event.task_id != task_id:
            continue
        # при равном времени побеждает более позднее по порядку
        if latest is None or event_time(event) >= event_time(latest):
            latest = event
    return latest.value if latest is not None else None


def _completed_ids(events: Iterable[ProgressEvent], course_id: str, type: ProgressType, attr: str) -> set[str]:
    return {
        getattr(e, attr)
        for e in events
        if e.type == type and e.course_id == course_id and e.value is True and getattr(e, attr)
    }


def resolve_completed_task_ids(events: Iterable[ProgressEvent], course_id: str) -> set[str]:
    return _completed_ids(events, course_id, ProgressType.COMPLETED_TASKS, "task_id")


def resolve_completed_lesson_ids(events: Iterable[ProgressEvent], course_id: str) -> set[str]:
    return _completed_ids(events, course_id, ProgressType.COMPLETED_LESSONS, "lesson_id")


def watched_topics_for_lesson(events: Iterable[ProgressEvent], lesson_id: str) -> list:
    latest = resolve_latest_value(events, ProgressType.WATCHED_TOPICS, lesson_id)
    return list(latest) if isinstance(latest, list) else []


def quiz_score_for_lesson(events: Iterable[ProgressEvent], lesson_id: str) -> float | None:
    latest = resolve_latest_value(events, ProgressType.QUIZ_SCORE, lesson_id)
    # bool - подкласс int, флаг баллами не считаем
    if isinstance(latest, bool) or not isinstance(latest, (int, float)):
        return None
    return latest


def is_quiz_passed(events: Iterable[ProgressEvent], lesson_id: str) -> bool:
    return resolve_latest_value(events, ProgressType.QUIZ_PASSED, lesson_id) is True


def is_learning_done(events: Iterable[ProgressEvent], lesson_id: str) -> bool:
    return resolve_latest_value(events, ProgressType.LEARNING_DONE, lesson_id) is True
