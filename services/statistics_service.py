"""
Grouped statistics for reports and the dashboard.
"""
from typing import Dict, List, Optional

from sqlalchemy import func, distinct
from sqlalchemy.orm import Session

from database.models import (
    School, Subject, Examiner, Student, AnswerSheet, InvigilationAssignment
)


def _average(value) -> Optional[float]:
    return round(float(value), 2) if value is not None else None


class StatisticsService:
    """Service for evaluation, subject and school statistics."""

    @staticmethod
    def evaluation_statistics(db: Session) -> List[Dict]:
        """Sheets evaluated and mark spread per examiner."""
        total = func.count(AnswerSheet.answer_book_id)
        rows = (
            db.query(
                Examiner.examiner_name,
                total.label("total_sheets_evaluated"),
                func.avg(AnswerSheet.marks_assigned).label("average_marks_given"),
                func.min(AnswerSheet.marks_assigned).label("min_marks"),
                func.max(AnswerSheet.marks_assigned).label("max_marks"),
            )
            .outerjoin(AnswerSheet, AnswerSheet.examiner_id == Examiner.examiner_id)
            .group_by(Examiner.examiner_id, Examiner.examiner_name)
            .order_by(total.desc(), Examiner.examiner_name)
            .all()
        )
        return [
            {
                "examiner_name": row.examiner_name,
                "total_sheets_evaluated": row.total_sheets_evaluated,
                "average_marks_given": _average(row.average_marks_given),
                "min_marks": row.min_marks,
                "max_marks": row.max_marks,
            }
            for row in rows
        ]

    @staticmethod
    def subject_statistics(db: Session) -> List[Dict]:
        """Sheets, average marks and distinct examiners per subject."""
        total = func.count(AnswerSheet.answer_book_id)
        rows = (
            db.query(
                Subject.subject_name,
                total.label("total_answer_sheets"),
                func.avg(AnswerSheet.marks_assigned).label("average_marks"),
                func.count(distinct(AnswerSheet.examiner_id)).label("total_examiners"),
            )
            .outerjoin(AnswerSheet, AnswerSheet.subject_id == Subject.subject_id)
            .group_by(Subject.subject_id, Subject.subject_name)
            .order_by(total.desc(), Subject.subject_name)
            .all()
        )
        return [
            {
                "subject_name": row.subject_name,
                "total_answer_sheets": row.total_answer_sheets,
                "average_marks": _average(row.average_marks),
                "total_examiners": row.total_examiners,
            }
            for row in rows
        ]

    @staticmethod
    def school_statistics(db: Session) -> List[Dict]:
        """Distinct examiners, students and invigilation duties per school."""
        total_examiners = func.count(distinct(Examiner.examiner_id))
        rows = (
            db.query(
                School.school_name,
                School.location,
                total_examiners.label("total_examiners"),
                func.count(distinct(Student.student_id)).label("total_students"),
                func.count(distinct(InvigilationAssignment.assignment_id)).label("total_invigilation_assignments"),
            )
            .outerjoin(Examiner, Examiner.school_id == School.school_id)
            .outerjoin(Student, Student.school_id == School.school_id)
            .outerjoin(InvigilationAssignment, InvigilationAssignment.school_id == School.school_id)
            .group_by(School.school_id, School.school_name, School.location)
            .order_by(total_examiners.desc(), School.school_name)
            .all()
        )
        return [
            {
                "school_name": row.school_name,
                "location": row.location,
                "total_examiners": row.total_examiners,
                "total_students": row.total_students,
                "total_invigilation_assignments": row.total_invigilation_assignments,
            }
            for row in rows
        ]

    @staticmethod
    def counts(db: Session) -> Dict[str, int]:
        """Row counts for every record table."""
        return {
            "schools": db.query(func.count(School.school_id)).scalar() or 0,
            "subjects": db.query(func.count(Subject.subject_id)).scalar() or 0,
            "examiners": db.query(func.count(Examiner.examiner_id)).scalar() or 0,
            "students": db.query(func.count(Student.student_id)).scalar() or 0,
            "answerSheets": db.query(func.count(AnswerSheet.sheet_id)).scalar() or 0,
            "invigilationAssignments": db.query(func.count(InvigilationAssignment.assignment_id)).scalar() or 0,
        }

    @staticmethod
    def dashboard(db: Session) -> Dict:
        return {
            "counts": StatisticsService.counts(db),
            "evaluationStats": StatisticsService.evaluation_statistics(db),
            "subjectStats": StatisticsService.subject_statistics(db),
            "schoolStats": StatisticsService.school_statistics(db),
        }
