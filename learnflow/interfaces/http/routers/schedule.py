from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ....application.unlock import (
    UnlockSchedule,
    build_unlock_schedule,
    days_until_unlock,
    get_unlock_date,
    is_lesson_unlocked,
)
from ....config import settings
from ....infrastructure.db import get_db
from ....infrastructure.repositories import EnrollmentRepository
from ..authz import get_user_id
from ..deps import get_today
from ..schemas import LessonUnlockOut, ScheduleOut, UnlockEntryOut

router = APIRouter(prefix="/api/schedule", tags=["schedule"])

def get_schedule(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
) -> UnlockSchedule:
    # дата старта фиксируется при первом обращении пользователя
    start = EnrollmentRepository(db).get_or_create(user_id, today)
    return build_unlock_schedule(start, settings.CURRICULUM_LAUNCH_DATE)

@router.get("", response_model=ScheduleOut)
def my_schedule(
    schedule: UnlockSchedule = Depends(get_schedule),
    today: date = Depends(get_today),
):
    lessons = [
        UnlockEntryOut(
            lesson_id=entry.lesson.id,
            chapter_number=entry.lesson.chapter_number,
            lesson_number=entry.lesson.lesson_number,
            global_index=entry.lesson.global_index,
            unlock_date=entry.unlock_date,
            is_first_lesson=entry.is_first_lesson,
            unlocked=is_lesson_unlocked(schedule, entry.lesson.id, today),
        )
        for entry in schedule
    ]
    return ScheduleOut(
        start_date=schedule.effective_start_date,
        global_launch_date=schedule.global_launch_date,
        lessons=lessons,
    )

@router.get("/lessons/{lesson_id}", response_model=LessonUnlockOut)
def lesson_unlock(
    lesson_id: str,
    schedule: UnlockSchedule = Depends(get_schedule),
    today: date = Depends(get_today),
):
    return LessonUnlockOut(
        lesson_id=lesson_id,
        unlocked=is_lesson_unlocked(schedule, lesson_id, today),
        unlock_date=get_unlock_date(schedule, lesson_id),
        days_until_unlock=days_until_unlock(schedule, lesson_id, today),
    )
