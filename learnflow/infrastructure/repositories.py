import json
from datetime import date, datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..domain.entities import ProgressEvent, ProgressType
from .models import CurriculumRowORM, EnrollmentORM, ProgressEventORM

logger = structlog.get_logger()


def encode_progress_value(value: Any) -> str:
    # объекты, списки и null - JSON, остальное - строкой
    if value is None or isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_progress_value(value: str | None) -> Any:
    if not value:
        return value
    try:
        return json.loads(value)
    except ValueError:
        pass
    if value == "true":
        return True
    if value == "false":
        return False
    try:
        return float(value)
    except ValueError:
        return value


def to_domain(row: ProgressEventORM) -> ProgressEvent:
    return ProgressEvent(
        user_id=row.user_id,
        course_id=row.course_id,
        lesson_id=row.lesson_id or "",
        task_id=row.task_id or "",
        type=ProgressType(row.progress_type),
        value=parse_progress_value(row.progress_value),
        updated_at=row.updated_at,
        source=row.source or "web",
    )


class ProgressEventRepository:
    def __init__(self, db: Session): self.db = db

    def append(self, user_id: str, course_id: str, progress_type: ProgressType, value: Any,
               lesson_id: str = "", task_id: str = "", now: datetime | None = None) -> ProgressEvent:
        row = ProgressEventORM(
            user_id=user_id,
            course_id=course_id,
            lesson_id=lesson_id,
            task_id=task_id,
            progress_type=ProgressType(progress_type).value,
            progress_value=encode_progress_value(value),
            updated_at=now or datetime.now(timezone.utc),
            source="web",
        )
        self.db.add(row); self.db.commit(); self.db.refresh(row)
        logger.info("progress_saved", user_id=user_id, progress_type=row.progress_type, course_id=course_id)
        return to_domain(row)

    def list_for_user(self, user_id: str, course_id: str | None = None) -> list[ProgressEvent]:
        q = select(ProgressEventORM).where(ProgressEventORM.user_id == user_id)
        if course_id:
            q = q.where(ProgressEventORM.course_id == course_id)
        q = q.order_by(ProgressEventORM.id)
        events = []
        for row in self.db.execute(q).scalars():
            try:
                events.append(to_domain(row))
            except ValueError:
                # строка с неизвестным типом прогресса не мешает остальным
                logger.warning("progress_row_skipped", row_id=row.id, progress_type=row.progress_type)
        return events


class EnrollmentRepository:
    def __init__(self, db: Session): self.db = db

    def get_or_create(self, user_id: str, today: date) -> date:
        row = self.db.query(EnrollmentORM).filter(EnrollmentORM.user_id == user_id).first()
        if row:
            return row.started_on
        row = EnrollmentORM(user_id=user_id, started_on=today)
        self.db.add(row); self.db.commit()
        logger.info("enrollment_created", user_id=user_id, started_on=today.isoformat())
        return today


class CurriculumRepository:
    def __init__(self, db: Session): self.db = db

    def list_rows(self) -> list[dict]:
        rows = self.db.query(CurriculumRowORM).order_by(CurriculumRowORM.position, CurriculumRowORM.id).all()
        return [r.to_row() for r in rows]

    def replace_rows(self, rows: list[dict]) -> int:
        self.db.execute(delete(CurriculumRowORM))
        for position, row in enumerate(rows):
            self.db.add(CurriculumRowORM(position=position, **row))
        self.db.commit()
        return len(rows)
