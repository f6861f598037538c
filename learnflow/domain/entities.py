from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class ProgressType(str, Enum):
    COMPLETED_TASKS = "completed_tasks"
    COMPLETED_LESSONS = "completed_lessons"
    WATCHED_TOPICS = "watched_topics"
    QUIZ_SCORE = "quiz_score"
    QUIZ_PASSED = "quiz_passed"
    LEARNING_DONE = "learning_done"


class ActivityType(str, Enum):
    LESSON_COMPLETED = "lesson_completed"
    TASK_COMPLETED = "task_completed"
    QUIZ_PASSED = "quiz_passed"


# --- Расписание открытия уроков

@dataclass(frozen=True)
class LessonRef:
    id: str
    chapter_number: int
    lesson_number: int
    global_index: int


@dataclass(frozen=True)
class UnlockEntry:
    lesson: LessonRef
    unlock_date: date
    is_first_lesson: bool = False

    @property
    def lesson_id(self) -> str:
        return self.lesson.id


# --- Журнал прогресса

@dataclass(frozen=True)
class ProgressEvent:
    """Один факт о действии пользователя. Журнал только дописывается."""
    user_id: str
    course_id: str
    type: ProgressType
    value: Any
    lesson_id: str = ""
    task_id: str = ""
    updated_at: datetime | None = None
    source: str = "web"

    def __post_init__(self):
        if not isinstance(self.type, ProgressType):
            object.__setattr__(self, "type", ProgressType(self.type))


# --- Учебный план: курс -> глава -> урок -> задание

@dataclass(frozen=True)
class Task:
    id: str
    title: str = ""
    xp: float = 0


@dataclass(frozen=True)
class Lesson:
    id: str
    name: str = ""
    tasks: tuple[Task, ...] = ()


@dataclass(frozen=True)
class Chapter:
    id: str
    name: str = ""
    lessons: tuple[Lesson, ...] = ()


@dataclass(frozen=True)
class Course:
    id: str
    name: str = ""
    chapters: tuple[Chapter, ...] = ()


# --- Снимок прогресса (вычисляется, не хранится)

@dataclass(frozen=True)
class ProgressStats:
    total_lessons: int = 0
    completed_lessons: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    total_xp: float = 0
    earned_xp: float = 0
    completion_percentage: int = 0
    task_completion_percentage: int = 0


@dataclass(frozen=True)
class LessonProgress:
    lesson_id: str
    lesson_name: str
    chapter_id: str
    course_id: str
    completed: bool
    stats: ProgressStats


@dataclass(frozen=True)
class ChapterProgress:
    chapter_id: str
    chapter_name: str
    course_id: str
    course_name: str
    stats: ProgressStats


@dataclass(frozen=True)
class CourseProgress:
    course_id: str
    course_name: str
    stats: ProgressStats


@dataclass(frozen=True)
class ActivityItem:
    id: str
    type: ActivityType
    title: str
    course_id: str
    course_name: str
    chapter_id: str | None = None
    chapter_name: str | None = None
    lesson_id: str | None = None
    lesson_name: str | None = None
    task_id: str | None = None
    # None: выполнено до того, как события стали получать время
    timestamp: datetime | None = None
    xp: float | None = None


@dataclass(frozen=True)
class ProgressSnapshot:
    overall: ProgressStats
    by_course: tuple[CourseProgress, ...] = ()
    by_chapter: tuple[ChapterProgress, ...] = ()
    by_lesson: tuple[LessonProgress, ...] = ()
    activities: tuple[ActivityItem, ...] = field(default_factory=tuple)
