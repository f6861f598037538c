from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ....application.aggregation import aggregate_progress
from ....application.progress import (
    is_learning_done,
    is_quiz_passed,
    quiz_score_for_lesson,
    watched_topics_for_lesson,
)
from ....config import settings
from ....domain.entities import Course
from ....infrastructure.db import get_db
from ....infrastructure.metrics import dashboard_aggregations_total, progress_events_written_total
from ....infrastructure.repositories import ProgressEventRepository
from ..authz import get_user_id
from ..deps import get_curriculum
from ..schemas import (
    DashboardOut,
    LessonStateOut,
    ProgressReadResp,
    ProgressRowOut,
    ProgressWriteReq,
    WriteResp,
)

router = APIRouter(prefix="/api/progress", tags=["progress"])

@router.get("/health")
def health(): return {"status": "ok"}

@router.post("/write", response_model=WriteResp)
def write_progress(
    payload: ProgressWriteReq,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    # журнал только дописывается: текущее значение определяется при чтении
    ProgressEventRepository(db).append(
        user_id=user_id,
        course_id=payload.course_id,
        progress_type=payload.progress_type,
        value=payload.progress_value,
        lesson_id=payload.lesson_id,
        task_id=payload.task_id,
    )
    progress_events_written_total.labels(progress_type=payload.progress_type.value).inc()
    return WriteResp(ok=True)

@router.get("/read", response_model=ProgressReadResp)
def read_progress(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    course_id: str | None = Query(None),
):
    events = ProgressEventRepository(db).list_for_user(user_id, course_id)
    rows = [
        ProgressRowOut(
            user_id=e.user_id,
            course_id=e.course_id,
            lesson_id=e.lesson_id,
            task_id=e.task_id,
            progress_type=e.type,
            progress_value=e.value,
            updated_at=e.updated_at,
            source=e.source,
        )
        for e in events
    ]
    return ProgressReadResp(rows=rows)

@router.get("/dashboard", response_model=DashboardOut)
def dashboard(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    curriculum: list[Course] = Depends(get_curriculum),
):
    events = ProgressEventRepository(db).list_for_user(user_id)
    snapshot = aggregate_progress(curriculum, events, activity_limit=settings.ACTIVITY_FEED_LIMIT)
    dashboard_aggregations_total.inc()
    return DashboardOut.model_validate(asdict(snapshot))

@router.get("/lessons/{lesson_id}", response_model=LessonStateOut)
def lesson_state(
    lesson_id: str,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    course_id: str | None = Query(None),
):
    events = ProgressEventRepository(db).list_for_user(user_id, course_id)
    return LessonStateOut(
        lesson_id=lesson_id,
        watched_topics=watched_topics_for_lesson(events, lesson_id),
        quiz_score=quiz_score_for_lesson(events, lesson_id),
        quiz_passed=is_quiz_passed(events, lesson_id),
        learning_done=is_learning_done(events, lesson_id),
    )
