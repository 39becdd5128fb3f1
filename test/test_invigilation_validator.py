# test/test_invigilation_validator.py
from datetime import date

import pytest

from database.connection import Database
from database.models import Examiner, School, Subject
from services.invigilation_service import AssignmentValidator, parse_exam_date
from core.exceptions import InvalidDate, UnknownExaminer, UnknownSchool, UnknownSubject


@pytest.fixture
def db_session(tmp_path):
    db = Database(f"sqlite:///{(tmp_path / 'validator.sqlite3').as_posix()}")
    db.bootstrap(attempts=1)
    with db.get_session() as session:
        school = School(school_name="Kendriya Vidyalaya", location="Delhi")
        subject = Subject(subject_name="Mathematics", subject_code="MATH")
        session.add_all([school, subject])
        session.flush()
        examiner = Examiner(examiner_name="R. Sharma", school_id=school.school_id, subject_id=subject.subject_id)
        session.add(examiner)
        session.flush()
        session.info["ids"] = (examiner.examiner_id, school.school_id, subject.subject_id)
        yield session
    db.engine.dispose()


@pytest.mark.parametrize("value", ["2025-02-30", "2024-13-01", "2025-1-05", "05/03/2025", "", None, "2025-03-05T10:00"])
def test_invalid_dates(value):
    with pytest.raises(InvalidDate) as exc:
        parse_exam_date(value)
    assert exc.value.fields == ["exam_date"]


def test_valid_dates():
    assert parse_exam_date("2024-02-29") == date(2024, 2, 29)
    assert parse_exam_date(date(2025, 3, 5)) == date(2025, 3, 5)


def test_valid_assignment_returns_parsed_date(db_session):
    examiner_id, school_id, subject_id = db_session.info["ids"]
    result = AssignmentValidator(db_session).validate(examiner_id, school_id, subject_id, "2025-03-05")
    assert result == date(2025, 3, 5)


def test_unknown_examiner(db_session):
    _, school_id, subject_id = db_session.info["ids"]
    with pytest.raises(UnknownExaminer):
        AssignmentValidator(db_session).validate(999, school_id, subject_id, "2025-03-05")


def test_unknown_school_and_subject(db_session):
    examiner_id, school_id, subject_id = db_session.info["ids"]
    validator = AssignmentValidator(db_session)
    with pytest.raises(UnknownSchool):
        validator.validate(examiner_id, 999, subject_id, "2025-03-05")
    with pytest.raises(UnknownSubject):
        validator.validate(examiner_id, school_id, 999, "2025-03-05")
    with pytest.raises(UnknownSubject):
        validator.validate(examiner_id, school_id, None, "2025-03-05")


def test_date_is_checked_before_references(db_session):
    with pytest.raises(InvalidDate):
        AssignmentValidator(db_session).validate(999, 999, 999, "2025-02-30")


def test_examiner_is_checked_before_school(db_session):
    with pytest.raises(UnknownExaminer):
        AssignmentValidator(db_session).validate(999, 999, 999, "2025-03-05")
