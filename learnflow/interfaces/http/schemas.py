from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from ...domain.entities import ActivityType, ProgressType

# --- Прогресс

class ProgressWriteReq(BaseModel):
    course_id: str = Field(min_length=1)
    lesson_id: str = ""
    task_id: str = ""
    progress_type: ProgressType
    progress_value: Any

class WriteResp(BaseModel):
    ok: bool

class ProgressRowOut(BaseModel):
    user_id: str
    course_id: str
    lesson_id: str
    task_id: str
    progress_type: ProgressType
    progress_value: Any
    updated_at: datetime | None = None
    source: str = "web"

class ProgressReadResp(BaseModel):
    rows: list[ProgressRowOut]

class LessonStateOut(BaseModel):
    lesson_id: str
    watched_topics: list
    quiz_score: float | None = None
    quiz_passed: bool
    learning_done: bool

# --- Дашборд

class StatsOut(BaseModel):
    total_lessons: int
    completed_lessons: int
    total_tasks: int
    completed_tasks: int
    total_xp: float
    earned_xp: float
    completion_percentage: int
    task_completion_percentage: int

class CourseProgressOut(BaseModel):
    course_id: str
    course_name: str
    stats: StatsOut

class ChapterProgressOut(BaseModel):
    chapter_id: str
    chapter_name: str
    course_id: str
    course_name: str
    stats: StatsOut

class LessonProgressOut(BaseModel):
    lesson_id: str
    lesson_name: str
    chapter_id: str
    course_id: str
    completed: bool
    stats: StatsOut

class ActivityOut(BaseModel):
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
    timestamp: datetime | None = None
    xp: float | None = None

class DashboardOut(BaseModel):
    overall: StatsOut
    by_course: list[CourseProgressOut]
    by_chapter: list[ChapterProgressOut]
    by_lesson: list[LessonProgressOut]
    activities: list[ActivityOut]

# --- Расписание

class UnlockEntryOut(BaseModel):
    lesson_id: str
    chapter_number: int
    lesson_number: int
    global_index: int
    unlock_date: date
    is_first_lesson: bool
    unlocked: bool

class ScheduleOut(BaseModel):
    start_date: date
    global_launch_date: date
    lessons: list[UnlockEntryOut]

class LessonUnlockOut(BaseModel):
    lesson_id: str
    unlocked: bool
    unlock_date: date | None = None
    days_until_unlock: int

# --- Учебный план

class CurriculumRowIn(BaseModel):
    course_id: str
    course_name: str = ""
    chapter_id: str
    chapter_name: str = ""
    lesson_id: str
    lesson_name: str = ""
    task_id: str = ""
    task_title: str = ""
    xp: float = Field(default=0, ge=0)

class CurriculumImportResp(BaseModel):
    ok: bool
    rows: int

class TaskOut(BaseModel):
    id: str
    title: str
    xp: float

class LessonOut(BaseModel):
    id: str
    name: str
    tasks: list[TaskOut]

class ChapterOut(BaseModel):
    id: str
    name: str
    lessons: list[LessonOut]

class CourseOut(BaseModel):
    id: str
    name: str
    chapters: list[ChapterOut]
