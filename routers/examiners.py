"""
Examiner and student APIs.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database.models import Examiner, School, Student, Subject
from auth.dependencies import Identity, get_db_session, require_operation
from core.exceptions import DuplicateKey, ValidationError
from core.logger import logger


router = APIRouter(prefix="/api", tags=["examiners"])


class ExaminerCreate(BaseModel):
    """Create examiner request."""
    examiner_name: str = Field(..., min_length=1, max_length=255)
    school_id: int
    subject_id: int
    qualification: Optional[str] = Field(None, max_length=255)
    contact_number: Optional[str] = Field(None, max_length=15)
    email: Optional[EmailStr] = None
    experience_years: Optional[int] = Field(None, ge=0)


class StudentCreate(BaseModel):
    """Create student request."""
    student_roll_number: str = Field(..., min_length=1, max_length=50)
    student_name: str = Field(..., min_length=1, max_length=255)
    school_id: int
    class_standard: int = Field(10, ge=1, le=12)


def require_reference(db: Session, model, key: int, field: str, label: str):
    """Resolve a referenced row or fail validation on the given field."""
    row = db.get(model, key)
    if row is None:
        raise ValidationError(f"{label} not found", fields=[field])
    return row


def _examiner_details(db: Session, where: str = "", params: Optional[dict] = None) -> List[dict]:
    sql = f"SELECT * FROM examiner_details {where} ORDER BY examiner_name, examiner_id"
    return [dict(row) for row in db.execute(text(sql), params or {}).mappings().all()]


@router.get("/examiners", response_model=List[dict])
async def list_examiners(
    _: Identity = Depends(require_operation("examiners.list")),
    db: Session = Depends(get_db_session)
):
    """List examiners with school and subject names, ordered by examiner name."""
    return _examiner_details(db)


@router.get("/examiners/subject/{subject_id}", response_model=List[dict])
async def list_examiners_by_subject(
    subject_id: int,
    _: Identity = Depends(require_operation("examiners.by_subject")),
    db: Session = Depends(get_db_session)
):
    return _examiner_details(db, "WHERE subject_id = :subject_id", {"subject_id": subject_id})


@router.get("/examiners/school/{school_id}", response_model=List[dict])
async def list_examiners_by_school(
    school_id: int,
    _: Identity = Depends(require_operation("examiners.by_school")),
    db: Session = Depends(get_db_session)
):
    return _examiner_details(db, "WHERE school_id = :school_id", {"school_id": school_id})


@router.post("/examiners", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_examiner(
    payload: ExaminerCreate,
    identity: Identity = Depends(require_operation("examiners.create")),
    db: Session = Depends(get_db_session)
):
    """Add an examiner."""
    require_reference(db, School, payload.school_id, "school_id", "School")
    require_reference(db, Subject, payload.subject_id, "subject_id", "Subject")

    examiner = Examiner(**payload.model_dump())
    db.add(examiner)
    db.commit()
    db.refresh(examiner)
    logger.info(f"Examiner created by {identity.username}: {examiner.examiner_name}")
    return {
        "examiner_id": examiner.examiner_id,
        "examiner_name": examiner.examiner_name,
        "school_id": examiner.school_id,
        "qualification": examiner.qualification,
        "subject_id": examiner.subject_id,
        "contact_number": examiner.contact_number,
        "email": examiner.email,
        "experience_years": examiner.experience_years,
        "created_at": examiner.created_at.isoformat(),
    }


@router.get("/students", response_model=List[dict])
async def list_students(
    _: Identity = Depends(require_operation("students.list")),
    db: Session = Depends(get_db_session)
):
    """List students with their school, ordered by roll number."""
    rows = (
        db.query(Student, School)
        .join(School, Student.school_id == School.school_id)
        .order_by(Student.student_roll_number)
        .all()
    )
    return [
        {
            "student_id": student.student_id,
            "student_roll_number": student.student_roll_number,
            "student_name": student.student_name,
            "school_id": student.school_id,
            "class_standard": student.class_standard,
            "school_name": school.school_name,
            "location": school.location,
        }
        for student, school in rows
    ]


@router.post("/students", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_student(
    payload: StudentCreate,
    identity: Identity = Depends(require_operation("students.create")),
    db: Session = Depends(get_db_session)
):
    """Add a student. Roll numbers are unique."""
    require_reference(db, School, payload.school_id, "school_id", "School")
    roll_number = payload.student_roll_number.strip()
    if db.query(Student).filter(Student.student_roll_number == roll_number).first():
        raise DuplicateKey("Student with this roll number already exists", fields=["student_roll_number"])

    student = Student(
        student_roll_number=roll_number,
        student_name=payload.student_name.strip(),
        school_id=payload.school_id,
        class_standard=payload.class_standard
    )
    db.add(student)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey("Student with this roll number already exists", fields=["student_roll_number"])
    db.refresh(student)
    logger.info(f"Student created by {identity.username}: {roll_number}")
    return {
        "student_id": student.student_id,
        "student_roll_number": student.student_roll_number,
        "student_name": student.student_name,
        "school_id": student.school_id,
        "class_standard": student.class_standard,
    }
