"""
Invigilation duty APIs.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database.models import ExamSession, InvigilationAssignment
from auth.dependencies import Identity, get_db_session, require_operation
from services.invigilation_service import InvigilationService


router = APIRouter(prefix="/api/invigilation", tags=["invigilation"])


class InvigilationCreate(BaseModel):
    """Schedule an invigilation duty. exam_date is YYYY-MM-DD."""
    examiner_id: int
    school_id: int
    subject_id: int
    exam_date: str
    exam_session: ExamSession


class InvigilationUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""
    examiner_id: Optional[int] = None
    school_id: Optional[int] = None
    subject_id: Optional[int] = None
    exam_date: Optional[str] = None
    exam_session: Optional[ExamSession] = None


def get_invigilation_service(db: Session = Depends(get_db_session)) -> InvigilationService:
    return InvigilationService(db)


def assignment_to_dict(assignment: InvigilationAssignment) -> dict:
    return {
        "assignment_id": assignment.assignment_id,
        "examiner_id": assignment.examiner_id,
        "school_id": assignment.school_id,
        "subject_id": assignment.subject_id,
        "exam_date": assignment.exam_date.isoformat(),
        "exam_session": assignment.exam_session,
        "created_at": assignment.created_at.isoformat() if assignment.created_at else None,
    }


@router.get("", response_model=List[dict])
async def list_assignments(
    _: Identity = Depends(require_operation("invigilation.list")),
    service: InvigilationService = Depends(get_invigilation_service)
):
    """Invigilation schedule ordered by exam date and session."""
    return service.list_schedule()


@router.get("/examiner/{examiner_id}", response_model=List[dict])
async def list_assignments_by_examiner(
    examiner_id: int,
    _: Identity = Depends(require_operation("invigilation.by_examiner")),
    service: InvigilationService = Depends(get_invigilation_service)
):
    return service.by_examiner(examiner_id)


@router.get("/school/{school_id}", response_model=List[dict])
async def list_assignments_by_school(
    school_id: int,
    _: Identity = Depends(require_operation("invigilation.by_school")),
    service: InvigilationService = Depends(get_invigilation_service)
):
    return service.by_school(school_id)


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: InvigilationCreate,
    _: Identity = Depends(require_operation("invigilation.create")),
    service: InvigilationService = Depends(get_invigilation_service)
):
    """Schedule a duty after checking the date and every reference."""
    assignment = service.create(
        examiner_id=payload.examiner_id,
        school_id=payload.school_id,
        subject_id=payload.subject_id,
        exam_date=payload.exam_date,
        exam_session=payload.exam_session.value
    )
    return assignment_to_dict(assignment)


@router.put("/{assignment_id}", response_model=dict)
async def update_assignment(
    assignment_id: int,
    payload: InvigilationUpdate,
    _: Identity = Depends(require_operation("invigilation.update")),
    service: InvigilationService = Depends(get_invigilation_service)
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("exam_session") is not None:
        changes["exam_session"] = changes["exam_session"].value
    return assignment_to_dict(service.update(assignment_id, changes))


@router.delete("/{assignment_id}", response_model=dict)
async def delete_assignment(
    assignment_id: int,
    _: Identity = Depends(require_operation("invigilation.delete")),
    service: InvigilationService = Depends(get_invigilation_service)
):
    service.delete(assignment_id)
    return {"success": True, "message": f"Invigilation assignment {assignment_id} deleted"}
