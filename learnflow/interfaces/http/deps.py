from datetime import date, datetime, timezone

from fastapi import Depends
from sqlalchemy.orm import Session

from ...application.curriculum import build_curriculum
from ...domain.entities import Course
from ...infrastructure.cache import get_cache, set_cache
from ...infrastructure.db import get_db
from ...infrastructure.metrics import cache_hits_total, cache_misses_total
from ...infrastructure.repositories import CurriculumRepository

CURRICULUM_CACHE_KEY = "curriculum:rows"


def get_today() -> date:
    """Текущая дата; в тестах подменяется через dependency_overrides."""
    return datetime.now(timezone.utc).date()


def get_curriculum_rows(db: Session = Depends(get_db)) -> list[dict]:
    cached = get_cache(CURRICULUM_CACHE_KEY)
    # пустой учебный план тоже валидное значение кэша
    if cached is not None:
        cache_hits_total.inc()
        return cached

    cache_misses_total.inc()
    rows = CurriculumRepository(db).list_rows()
    set_cache(CURRICULUM_CACHE_KEY, rows)
    return rows


def get_curriculum(rows: list[dict] = Depends(get_curriculum_rows)) -> list[Course]:
    return build_curriculum(rows)
