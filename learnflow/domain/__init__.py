from .entities import (
    ActivityItem,
    ActivityType,
    Chapter,
    ChapterProgress,
    Course,
    CourseProgress,
    Lesson,
    LessonProgress,
    LessonRef,
    ProgressEvent,
    ProgressSnapshot,
    ProgressStats,
    ProgressType,
    Task,
    UnlockEntry,
)
from .errors import InputShapeError, LearnflowError, UnknownReferenceError

__all__ = [
    "ActivityItem",
    "ActivityType",
    "Chapter",
    "ChapterProgress",
    "Course",
    "CourseProgress",
    "Lesson",
    "LessonProgress",
    "LessonRef",
    "ProgressEvent",
    "ProgressSnapshot",
    "ProgressStats",
    "ProgressType",
    "Task",
    "UnlockEntry",
    "InputShapeError",
    "LearnflowError",
    "UnknownReferenceError",
]
