from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ....domain.entities import Course
from ....infrastructure.cache import delete_cache
from ....infrastructure.db import get_db
from ....infrastructure.repositories import CurriculumRepository
from ..authz import require_admin
from ..deps import CURRICULUM_CACHE_KEY, get_curriculum
from ..schemas import CourseOut, CurriculumImportResp, CurriculumRowIn

router = APIRouter(prefix="/api/curriculum", tags=["curriculum"])

@router.get("", response_model=list[CourseOut])
def get_tree(curriculum: list[Course] = Depends(get_curriculum)):
    return [CourseOut.model_validate(asdict(course)) for course in curriculum]

# --- Admin-only import:

@router.put("", response_model=CurriculumImportResp, dependencies=[Depends(require_admin)])
def replace_curriculum(payload: list[CurriculumRowIn], db: Session = Depends(get_db)):
    count = CurriculumRepository(db).replace_rows([row.model_dump() for row in payload])
    # Инвалидируем кэш учебного плана
    delete_cache(CURRICULUM_CACHE_KEY)
    return CurriculumImportResp(ok=True, rows=count)
