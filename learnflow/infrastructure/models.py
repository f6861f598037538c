from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, Float, Integer, String, Text, TIMESTAMP, func
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class ProgressEventORM(Base):
    """Строка журнала прогресса; колонки повторяют таблицу прогресса."""
    __tablename__ = "progress_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)  # берём из JWT sub
    course_id: Mapped[str] = mapped_column(String(128), index=True)
    lesson_id: Mapped[str] = mapped_column(String(128), default="")
    task_id: Mapped[str] = mapped_column(String(128), default="")
    progress_type: Mapped[str] = mapped_column(String(32), nullable=False)
    progress_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=True,
    )
    source: Mapped[str] = mapped_column(String(32), default="web")

    def __repr__(self) -> str:
        return f"ProgressEventORM(id={self.id!r}, user_id={self.user_id!r}, type={self.progress_type!r})"


class EnrollmentORM(Base):
    """Дата первого входа пользователя - точка отсчёта расписания уроков."""
    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    started_on: Mapped[date] = mapped_column(Date, nullable=False)


class CurriculumRowORM(Base):
    __tablename__ = "curriculum_rows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    course_id: Mapped[str] = mapped_column(String(128), nullable=False)
    course_name: Mapped[str] = mapped_column(String(255), default="")
    chapter_id: Mapped[str] = mapped_column(String(128), nullable=False)
    chapter_name: Mapped[str] = mapped_column(String(255), default="")
    lesson_id: Mapped[str] = mapped_column(String(128), nullable=False)
    lesson_name: Mapped[str] = mapped_column(String(255), default="")
    task_id: Mapped[str] = mapped_column(String(128), default="")
    task_title: Mapped[str] = mapped_column(String(255), default="")
    xp: Mapped[float] = mapped_column(Float, default=0)

    def to_row(self) -> dict:
        return {
            "course_id": self.course_id,
            "course_name": self.course_name,
            "chapter_id": self.chapter_id,
            "chapter_name": self.chapter_name,
            "lesson_id": self.lesson_id,
            "lesson_name": self.lesson_name,
            "task_id": self.task_id,
            "task_title": self.task_title,
            "xp": self.xp,
        }


__all__ = [
    "Base",
    "ProgressEventORM",
    "EnrollmentORM",
    "CurriculumRowORM",
]
