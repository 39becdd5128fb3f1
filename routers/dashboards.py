"""
Statistics and dashboard APIs.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from auth.dependencies import Identity, get_db_session, require_operation
from services.statistics_service import StatisticsService


router = APIRouter(prefix="/api", tags=["dashboards"])


@router.get("/statistics/evaluation", response_model=List[dict])
async def evaluation_statistics(
    _: Identity = Depends(require_operation("statistics.evaluation")),
    db: Session = Depends(get_db_session)
):
    """Sheets evaluated and marks spread per examiner."""
    return StatisticsService.evaluation_statistics(db)


@router.get("/statistics/subjects", response_model=List[dict])
async def subject_statistics(
    _: Identity = Depends(require_operation("statistics.subjects")),
    db: Session = Depends(get_db_session)
):
    return StatisticsService.subject_statistics(db)


@router.get("/statistics/schools", response_model=List[dict])
async def school_statistics(
    _: Identity = Depends(require_operation("statistics.schools")),
    db: Session = Depends(get_db_session)
):
    return StatisticsService.school_statistics(db)


@router.get("/dashboard", response_model=dict)
async def dashboard(
    _: Identity = Depends(require_operation("dashboard")),
    db: Session = Depends(get_db_session)
):
    """Table counts plus the three statistics lists."""
    return StatisticsService.dashboard(db)
