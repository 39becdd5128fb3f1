"""
Read views joining examiner/school/subject/student names for display.
"""
from typing import Dict

VIEW_DEFINITIONS: Dict[str, str] = {
    "examiner_details": """
        SELECT
            e.examiner_id,
            e.examiner_name,
            s.school_name,
            sub.subject_name,
            e.qualification,
            e.contact_number,
            e.email,
            e.experience_years,
            e.school_id,
            e.subject_id
        FROM examiners e
        JOIN schools s ON e.school_id = s.school_id
        JOIN subjects sub ON e.subject_id = sub.subject_id
    """,
    "evaluation_summary": """
        SELECT
            a.sheet_id,
            a.answer_book_id,
            a.student_roll_number,
            st.student_name,
            sub.subject_name,
            e.examiner_name,
            a.marks_assigned,
            a.evaluation_date,
            a.remarks,
            a.examiner_id,
            a.subject_id
        FROM answer_sheets a
        JOIN students st ON a.student_roll_number = st.student_roll_number
        JOIN subjects sub ON a.subject_id = sub.subject_id
        JOIN examiners e ON a.examiner_id = e.examiner_id
    """,
    "invigilation_schedule": """
        SELECT
            ia.assignment_id,
            e.examiner_name,
            s.school_name,
            ia.exam_date,
            ia.exam_session,
            sub.subject_name,
            ia.examiner_id,
            ia.school_id,
            ia.subject_id
        FROM invigilation_assignments ia
        JOIN examiners e ON ia.examiner_id = e.examiner_id
        JOIN schools s ON ia.school_id = s.school_id
        JOIN subjects sub ON ia.subject_id = sub.subject_id
    """,
}


def create_view_statement(name: str, dialect_name: str) -> str:
    """Build an idempotent CREATE VIEW statement for the given dialect."""
    body = VIEW_DEFINITIONS[name]
    if dialect_name == "postgresql":
        return f"CREATE OR REPLACE VIEW {name} AS {body}"
    return f"CREATE VIEW IF NOT EXISTS {name} AS {body}"
