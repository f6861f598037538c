"""Сборка дерева учебного плана из плоских строк (курс/глава/урок/задание)."""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from ..domain.entities import Chapter, Course, Lesson, Task
from ..domain.errors import InputShapeError

logger = structlog.get_logger()

REQUIRED_COLUMNS = ("course_id", "chapter_id", "lesson_id")


def coerce_xp(value: Any) -> float:
    try:
        xp = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(xp) or xp < 0:
        return 0.0
    return xp


def _text(row: Mapping[str, Any], key: str) -> str:
    value = row.get(key)
    return str(value).strip() if value is not None else ""


def _validate_row(row: Mapping[str, Any]) -> None:
    for column in REQUIRED_COLUMNS:
        if not _text(row, column):
            raise InputShapeError("curriculum row", f"missing {column}")


def build_curriculum(rows: Iterable[Mapping[str, Any]]) -> list[Course]:
    # порядок курсов, глав, уроков и заданий - порядок первого появления
    courses: dict[str, dict] = {}
    for position, row in enumerate(rows):
        try:
            _validate_row(row)
        except InputShapeError as exc:
            logger.warning("curriculum_row_skipped", position=position, error=str(exc))
            continue

        course = courses.setdefault(_text(row, "course_id"), {
            "name": _text(row, "course_name"), "chapters": {},
        })
        chapter = course["chapters"].setdefault(_text(row, "chapter_id"), {
            "name": _text(row, "chapter_name"), "lessons": {},
        })
        lesson = chapter["lessons"].setdefault(_text(row, "lesson_id"), {
            "name": _text(row, "lesson_name"), "tasks": {},
        })

        task_id = _text(row, "task_id")
        if task_id and task_id not in lesson["tasks"]:
            lesson["tasks"][task_id] = Task(id=task_id, title=_text(row, "task_title"), xp=coerce_xp(row.get("xp")))

    return [
        Course(
            id=course_id,
            name=course["name"],
            chapters=tuple(
                Chapter(
                    id=chapter_id,
                    name=chapter["name"],
                    lessons=tuple(
                        Lesson(id=lesson_id, name=lesson["name"], tasks=tuple(lesson["tasks"].values()))
                        for lesson_id, lesson in chapter["lessons"].items()
                    ),
                )
                for chapter_id, chapter in course["chapters"].items()
            ),
        )
        for course_id, course in courses.items()
    ]
