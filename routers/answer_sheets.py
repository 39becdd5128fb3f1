"""
Answer-sheet evaluation APIs.

Examiner accounts only see and write sheets tied to their own examiner id.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database.models import AnswerSheet, Examiner, Student, Subject, UserRole
from auth.dependencies import Identity, get_db_session, require_operation
from routers.examiners import require_reference
from core.exceptions import AccessDenied, DuplicateKey, NotFound, ValidationError
from core.logger import logger


router = APIRouter(prefix="/api/answer-sheets", tags=["answer sheets"])


class AnswerSheetCreate(BaseModel):
    """Record an evaluated answer book."""
    answer_book_id: str = Field(..., min_length=1, max_length=50)
    student_roll_number: str = Field(..., min_length=1, max_length=50)
    subject_id: int
    examiner_id: Optional[int] = None
    marks_assigned: int = Field(..., ge=0, le=100)
    evaluation_date: Optional[date] = None
    remarks: Optional[str] = None


class MarksUpdate(BaseModel):
    """Revise marks and remarks of an evaluated sheet."""
    marks_assigned: int = Field(..., ge=0, le=100)
    remarks: Optional[str] = None


def sheet_to_dict(sheet: AnswerSheet) -> dict:
    return {
        "sheet_id": sheet.sheet_id,
        "answer_book_id": sheet.answer_book_id,
        "student_roll_number": sheet.student_roll_number,
        "subject_id": sheet.subject_id,
        "examiner_id": sheet.examiner_id,
        "marks_assigned": sheet.marks_assigned,
        "evaluation_date": sheet.evaluation_date.isoformat() if sheet.evaluation_date else None,
        "remarks": sheet.remarks,
        "updated_at": sheet.updated_at.isoformat() if sheet.updated_at else None,
    }


def _ensure_own_examiner(identity: Identity, examiner_id: Optional[int]) -> None:
    """Examiners may only act on their own examiner id."""
    if identity.role != UserRole.EXAMINER:
        return
    if identity.examiner_id is None or examiner_id != identity.examiner_id:
        logger.warning(f"Examiner {identity.username} denied access to examiner {examiner_id} sheets")
        raise AccessDenied("Access denied. Examiners can only access their own answer sheets.")


def _evaluation_summary(db: Session, where: str = "", params: Optional[dict] = None) -> List[dict]:
    sql = f"SELECT * FROM evaluation_summary {where} ORDER BY evaluation_date DESC, sheet_id"
    return [dict(row) for row in db.execute(text(sql), params or {}).mappings().all()]


@router.get("", response_model=List[dict])
async def list_answer_sheets(
    identity: Identity = Depends(require_operation("answer_sheets.list")),
    db: Session = Depends(get_db_session)
):
    """List evaluations, newest first. Examiners get only their own."""
    if identity.role == UserRole.EXAMINER:
        if identity.examiner_id is None:
            return []
        return _evaluation_summary(db, "WHERE examiner_id = :examiner_id", {"examiner_id": identity.examiner_id})
    return _evaluation_summary(db)


@router.get("/examiner/{examiner_id}", response_model=List[dict])
async def list_answer_sheets_by_examiner(
    examiner_id: int,
    identity: Identity = Depends(require_operation("answer_sheets.by_examiner")),
    db: Session = Depends(get_db_session)
):
    _ensure_own_examiner(identity, examiner_id)
    return _evaluation_summary(db, "WHERE examiner_id = :examiner_id", {"examiner_id": examiner_id})


@router.get("/student/{roll_number}", response_model=List[dict])
async def list_answer_sheets_by_student(
    roll_number: str,
    _: Identity = Depends(require_operation("answer_sheets.by_student")),
    db: Session = Depends(get_db_session)
):
    return _evaluation_summary(db, "WHERE student_roll_number = :roll", {"roll": roll_number})


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_answer_sheet(
    payload: AnswerSheetCreate,
    identity: Identity = Depends(require_operation("answer_sheets.create")),
    db: Session = Depends(get_db_session)
):
    """Record an evaluation. Examiners default to, and are limited to, their own id."""
    examiner_id = payload.examiner_id
    if examiner_id is None and identity.role == UserRole.EXAMINER:
        examiner_id = identity.examiner_id
    _ensure_own_examiner(identity, examiner_id)

    if db.query(Student).filter(Student.student_roll_number == payload.student_roll_number).first() is None:
        raise ValidationError("Student not found", fields=["student_roll_number"])
    require_reference(db, Subject, payload.subject_id, "subject_id", "Subject")
    if examiner_id is None:
        raise ValidationError("examiner_id is required", fields=["examiner_id"])
    require_reference(db, Examiner, examiner_id, "examiner_id", "Examiner")

    sheet = AnswerSheet(
        answer_book_id=payload.answer_book_id.strip(),
        student_roll_number=payload.student_roll_number,
        subject_id=payload.subject_id,
        examiner_id=examiner_id,
        marks_assigned=payload.marks_assigned,
        evaluation_date=payload.evaluation_date,
        remarks=payload.remarks
    )
    db.add(sheet)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey("Answer book already evaluated", fields=["answer_book_id"])
    db.refresh(sheet)
    logger.info(f"Answer sheet {sheet.answer_book_id} evaluated by examiner {examiner_id}")
    return sheet_to_dict(sheet)


@router.put("/{answer_book_id}", response_model=dict)
async def update_marks(
    answer_book_id: str,
    payload: MarksUpdate,
    identity: Identity = Depends(require_operation("answer_sheets.update_marks")),
    db: Session = Depends(get_db_session)
):
    """Revise marks and remarks by answer book id."""
    sheet = db.query(AnswerSheet).filter(AnswerSheet.answer_book_id == answer_book_id).first()
    if not sheet:
        raise NotFound("Answer sheet not found")
    _ensure_own_examiner(identity, sheet.examiner_id)

    sheet.marks_assigned = payload.marks_assigned
    sheet.remarks = payload.remarks
    db.commit()
    db.refresh(sheet)
    logger.info(f"Marks updated for answer sheet {answer_book_id} by {identity.username}")
    return sheet_to_dict(sheet)
