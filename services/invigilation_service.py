"""
Invigilation assignment validation and persistence.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import text
from sqlalchemy.orm import Session

from database.models import Examiner, School, Subject, InvigilationAssignment
from core.exceptions import (
    InvalidDate, NotFound, UnknownExaminer, UnknownSchool, UnknownSubject
)
from core.logger import logger

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_exam_date(value: Union[str, date, None]) -> date:
    """
    Parse a strict YYYY-MM-DD calendar date.

    Raises:
        InvalidDate: Wrong shape or not a real date (e.g. 2025-02-30, 2024-13-01)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise InvalidDate(fields=["exam_date"])
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidDate(fields=["exam_date"])


class AssignmentValidator:
    """Checks that an assignment's date and references are valid before a write."""

    def __init__(self, db: Session):
        self.db = db

    def validate(
        self,
        examiner_id: Optional[int],
        school_id: Optional[int],
        subject_id: Optional[int],
        exam_date: Union[str, date, None]
    ) -> date:
        """
        Validate in order, stopping at the first failure.

        Returns:
            The parsed exam date

        Raises:
            InvalidDate, UnknownExaminer, UnknownSchool, UnknownSubject
        """
        parsed_date = parse_exam_date(exam_date)
        if examiner_id is None or self.db.get(Examiner, examiner_id) is None:
            raise UnknownExaminer(fields=["examiner_id"])
        if school_id is None or self.db.get(School, school_id) is None:
            raise UnknownSchool(fields=["school_id"])
        if subject_id is None or self.db.get(Subject, subject_id) is None:
            raise UnknownSubject(fields=["subject_id"])
        return parsed_date


class InvigilationService:
    """Create, update, delete and list invigilation assignments."""

    SCHEDULE_QUERY = "SELECT * FROM invigilation_schedule"

    def __init__(self, db: Session):
        self.db = db
        self.validator = AssignmentValidator(db)

    def create(
        self,
        examiner_id: int,
        school_id: int,
        subject_id: int,
        exam_date: Union[str, date],
        exam_session: str
    ) -> InvigilationAssignment:
        """Validate and persist a new assignment."""
        parsed_date = self.validator.validate(examiner_id, school_id, subject_id, exam_date)
        assignment = InvigilationAssignment(
            examiner_id=examiner_id,
            school_id=school_id,
            subject_id=subject_id,
            exam_date=parsed_date,
            exam_session=exam_session,
        )
        self.db.add(assignment)
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(
            f"Invigilation scheduled: examiner {examiner_id} at school {school_id} "
            f"on {parsed_date} ({exam_session})"
        )
        return assignment

    def get(self, assignment_id: int) -> InvigilationAssignment:
        assignment = self.db.get(InvigilationAssignment, assignment_id)
        if not assignment:
            raise NotFound("Invigilation assignment not found")
        return assignment

    def update(self, assignment_id: int, changes: Dict[str, Any]) -> InvigilationAssignment:
        """
        Apply a partial update. The merged record is validated as a whole.

        Raises:
            NotFound: If the assignment does not exist
        """
        assignment = self.get(assignment_id)
        merged = {
            "examiner_id": assignment.examiner_id,
            "school_id": assignment.school_id,
            "subject_id": assignment.subject_id,
            "exam_date": assignment.exam_date,
            "exam_session": assignment.exam_session,
        }
        merged.update({k: v for k, v in changes.items() if v is not None})

        merged["exam_date"] = self.validator.validate(
            merged["examiner_id"], merged["school_id"], merged["subject_id"], merged["exam_date"]
        )
        for field, value in merged.items():
            setattr(assignment, field, value)
        self.db.commit()
        self.db.refresh(assignment)
        logger.info(f"Invigilation assignment {assignment_id} updated")
        return assignment

    def delete(self, assignment_id: int) -> None:
        assignment = self.get(assignment_id)
        self.db.delete(assignment)
        self.db.commit()
        logger.info(f"Invigilation assignment {assignment_id} deleted")

    def _schedule(self, where: str = "", params: Optional[dict] = None) -> List[dict]:
        sql = f"{self.SCHEDULE_QUERY} {where} ORDER BY exam_date, exam_session, assignment_id"
        rows = self.db.execute(text(sql), params or {}).mappings().all()
        return [dict(row) for row in rows]

    def list_schedule(self) -> List[dict]:
        """Full schedule ordered by exam date then session."""
        return self._schedule()

    def by_examiner(self, examiner_id: int) -> List[dict]:
        return self._schedule("WHERE examiner_id = :examiner_id", {"examiner_id": examiner_id})

    def by_school(self, school_id: int) -> List[dict]:
        return self._schedule("WHERE school_id = :school_id", {"school_id": school_id})
