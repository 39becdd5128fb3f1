"""
School and subject reference-data APIs.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database.models import School, Subject
from auth.dependencies import Identity, get_db_session, require_operation
from core.exceptions import DuplicateKey
from core.logger import logger


router = APIRouter(prefix="/api", tags=["reference data"])


class SchoolCreate(BaseModel):
    """Create school request."""
    school_name: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)


class SubjectCreate(BaseModel):
    """Create subject request."""
    subject_name: str = Field(..., min_length=1, max_length=100)
    subject_code: str = Field(..., min_length=1, max_length=20)


def school_to_dict(school: School) -> dict:
    return {
        "school_id": school.school_id,
        "school_name": school.school_name,
        "location": school.location,
        "created_at": school.created_at.isoformat() if school.created_at else None,
        "updated_at": school.updated_at.isoformat() if school.updated_at else None,
    }


def subject_to_dict(subject: Subject) -> dict:
    return {
        "subject_id": subject.subject_id,
        "subject_name": subject.subject_name,
        "subject_code": subject.subject_code,
        "created_at": subject.created_at.isoformat() if subject.created_at else None,
    }


@router.get("/schools", response_model=List[dict])
async def list_schools(
    _: Optional[Identity] = Depends(require_operation("schools.list")),
    db: Session = Depends(get_db_session)
):
    """List schools ordered by name. Public endpoint."""
    schools = db.query(School).order_by(School.school_name, School.school_id).all()
    return [school_to_dict(s) for s in schools]


@router.post("/schools", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_school(
    payload: SchoolCreate,
    identity: Identity = Depends(require_operation("schools.create")),
    db: Session = Depends(get_db_session)
):
    """Add a school."""
    school = School(school_name=payload.school_name.strip(), location=payload.location.strip())
    db.add(school)
    db.commit()
    db.refresh(school)
    logger.info(f"School created by {identity.username}: {school.school_name}")
    return school_to_dict(school)


@router.get("/subjects", response_model=List[dict])
async def list_subjects(
    _: Optional[Identity] = Depends(require_operation("subjects.list")),
    db: Session = Depends(get_db_session)
):
    """List subjects ordered by name. Public endpoint."""
    subjects = db.query(Subject).order_by(Subject.subject_name, Subject.subject_id).all()
    return [subject_to_dict(s) for s in subjects]


@router.post("/subjects", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_subject(
    payload: SubjectCreate,
    identity: Identity = Depends(require_operation("subjects.create")),
    db: Session = Depends(get_db_session)
):
    """Add a subject. Subject codes are unique."""
    code = payload.subject_code.strip()
    if db.query(Subject).filter(Subject.subject_code == code).first():
        raise DuplicateKey("Subject with this code already exists", fields=["subject_code"])

    subject = Subject(subject_name=payload.subject_name.strip(), subject_code=code)
    db.add(subject)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKey("Subject with this code already exists", fields=["subject_code"])
    db.refresh(subject)
    logger.info(f"Subject created by {identity.username}: {code}")
    return subject_to_dict(subject)
