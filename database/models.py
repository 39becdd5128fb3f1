"""
Database models for the board examination records system.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text,
    ForeignKey, Index, CheckConstraint, TypeDecorator
)
from sqlalchemy.orm import declarative_base, relationship
import enum

Base = declarative_base()


# ============================================================================
# Custom Type Decorator for Enum Values
# ============================================================================

class EnumValue(TypeDecorator):
    """Type decorator to ensure enum values (not names) are stored."""
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        """Convert enum to its value when writing to database."""
        if value is None:
            return None
        if isinstance(value, enum.Enum):
            return value.value
        return value

    def process_result_value(self, value, dialect):
        """Convert database value back to enum when reading."""
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return self.enum_class(value)
            except ValueError:
                return value
        return value


# ============================================================================
# Enums
# ============================================================================

class UserRole(str, enum.Enum):
    """User roles for authorization."""
    ADMIN = "admin"
    COORDINATOR = "coordinator"
    EXAMINER = "examiner"


class ExamSession(str, enum.Enum):
    """Exam sitting within a day."""
    MORNING = "Morning"
    AFTERNOON = "Afternoon"


# ============================================================================
# Models
# ============================================================================

class School(Base):
    """Examination centre school."""
    __tablename__ = "schools"

    school_id = Column(Integer, primary_key=True, index=True)
    school_name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    examiners = relationship("Examiner", back_populates="school")
    students = relationship("Student", back_populates="school")


class Subject(Base):
    """Examination subject."""
    __tablename__ = "subjects"

    subject_id = Column(Integer, primary_key=True, index=True)
    subject_name = Column(String(100), nullable=False)
    subject_code = Column(String(20), unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    examiners = relationship("Examiner", back_populates="subject")


class Examiner(Base):
    """Examiner who evaluates answer sheets and invigilates exams."""
    __tablename__ = "examiners"

    examiner_id = Column(Integer, primary_key=True, index=True)
    examiner_name = Column(String(255), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.school_id"), nullable=True)
    qualification = Column(String(255), nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.subject_id"), nullable=True)
    contact_number = Column(String(15), nullable=True)
    email = Column(String(255), nullable=True)
    experience_years = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="examiners")
    subject = relationship("Subject", back_populates="examiners")

    __table_args__ = (
        Index('idx_examiner_name', 'examiner_name'),
        Index('idx_examiner_school', 'school_id'),
        Index('idx_examiner_subject', 'subject_id'),
    )


class Student(Base):
    """Registered board-exam candidate."""
    __tablename__ = "students"

    student_id = Column(Integer, primary_key=True, index=True)
    student_roll_number = Column(String(50), unique=True, nullable=False)
    student_name = Column(String(255), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.school_id"), nullable=True)
    class_standard = Column(Integer, default=10, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    school = relationship("School", back_populates="students")


class AnswerSheet(Base):
    """Evaluated answer book."""
    __tablename__ = "answer_sheets"

    sheet_id = Column(Integer, primary_key=True, index=True)
    answer_book_id = Column(String(50), unique=True, nullable=False)
    student_roll_number = Column(String(50), ForeignKey("students.student_roll_number"), nullable=True)
    subject_id = Column(Integer, ForeignKey("subjects.subject_id"), nullable=True)
    examiner_id = Column(Integer, ForeignKey("examiners.examiner_id"), nullable=True)
    marks_assigned = Column(Integer, nullable=True)
    evaluation_date = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint('marks_assigned >= 0 AND marks_assigned <= 100', name='ck_answer_sheet_marks'),
        Index('idx_answer_sheet_examiner', 'examiner_id'),
        Index('idx_answer_sheet_student', 'student_roll_number'),
    )


class InvigilationAssignment(Base):
    """Invigilation duty of an examiner at a school for one exam sitting."""
    __tablename__ = "invigilation_assignments"

    assignment_id = Column(Integer, primary_key=True, index=True)
    examiner_id = Column(Integer, ForeignKey("examiners.examiner_id"), nullable=True)
    school_id = Column(Integer, ForeignKey("schools.school_id"), nullable=True)
    exam_date = Column(Date, nullable=False)
    exam_session = Column(String(20), nullable=False)  # 'Morning', 'Afternoon'
    subject_id = Column(Integer, ForeignKey("subjects.subject_id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_invigilation_examiner', 'examiner_id'),
        Index('idx_invigilation_school', 'school_id'),
        Index('idx_invigilation_date', 'exam_date'),
    )


class User(Base):
    """User model for authentication and authorization."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(EnumValue(UserRole, 20), default=UserRole.EXAMINER, nullable=False)

    # Examiner accounts are linked to their examiner row; coordinators optionally to a school
    examiner_id = Column(Integer, ForeignKey("examiners.examiner_id", ondelete="SET NULL"), nullable=True)
    school_id = Column(Integer, ForeignKey("schools.school_id", ondelete="SET NULL"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_login = Column(DateTime, nullable=True)

    examiner = relationship("Examiner", foreign_keys=[examiner_id])
    school = relationship("School", foreign_keys=[school_id])
    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_user_role', 'role'),
        Index('idx_user_active', 'is_active'),
    )


class Session(Base):
    """Server-side record of an active login, keyed by the session cookie."""
    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    username = Column(String(100), nullable=False)
    role = Column(EnumValue(UserRole, 20), nullable=False)
    session_key = Column(String(255), unique=True, nullable=False)  # Encrypted cookie value
    session_hash = Column(String(255), unique=True, index=True, nullable=False)  # Hashed for lookup
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index('idx_session_user', 'user_id'),
    )
