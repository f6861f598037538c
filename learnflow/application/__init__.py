from .aggregation import aggregate_progress, is_course_included
from .curriculum import build_curriculum
from .progress import (
    is_learning_done,
    is_quiz_passed,
    quiz_score_for_lesson,
    resolve_completed_lesson_ids,
    resolve_completed_task_ids,
    resolve_latest_value,
    watched_topics_for_lesson,
)
from .unlock import (
    DEFAULT_CURRICULUM_SHAPE,
    UnlockSchedule,
    build_unlock_schedule,
    canonical_lessons,
    days_until_unlock,
    get_unlock_date,
    is_chapter_unlocked,
    is_lesson_unlocked,
)

__all__ = [
    "aggregate_progress",
    "is_course_included",
    "build_curriculum",
    "is_learning_done",
    "is_quiz_passed",
    "quiz_score_for_lesson",
    "resolve_completed_lesson_ids",
    "resolve_completed_task_ids",
    "resolve_latest_value",
    "watched_topics_for_lesson",
    "DEFAULT_CURRICULUM_SHAPE",
    "UnlockSchedule",
    "build_unlock_schedule",
    "canonical_lessons",
    "days_until_unlock",
    "get_unlock_date",
    "is_chapter_unlocked",
    "is_lesson_unlocked",
]
