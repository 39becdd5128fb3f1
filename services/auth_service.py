"""
Authentication services: credential store and server-side session registry.
"""
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func, or_

from database.models import User, UserRole, Session as DBSession, Examiner, School
from auth.security import (
    verify_password, get_password_hash, generate_session_key, hash_session_key
)
from core.exceptions import DuplicateIdentity, NotFound, ValidationError
from core.logger import logger


def normalize_username(username: Optional[str]) -> str:
    """Canonical form shared by registration and login lookups."""
    return (username or "").strip()


class CredentialStore:
    """Persists user identity records and authenticates credentials."""

    def __init__(self, db: Session):
        self.db = db

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: UserRole = UserRole.EXAMINER,
        examiner_id: Optional[int] = None,
        school_id: Optional[int] = None,
    ) -> User:
        """
        Create a new user. Only the bcrypt hash of the password is stored.

        Args:
            username: Unique username
            email: Unique email address
            password: Plain text password
            role: User role
            examiner_id: Linked examiner (examiner accounts)
            school_id: Linked school

        Returns:
            Created User

        Raises:
            ValidationError: Password too short/long or unknown examiner/school link
            DuplicateIdentity: Username or email already registered
        """
        username = normalize_username(username)
        if not username:
            raise ValidationError("Username is required", fields=["username"])
        email = email.strip().lower()
        hashed_password = get_password_hash(password)

        # Check all users, inactive included: uniqueness is global
        existing = self.db.query(User).filter(
            or_(User.username == username, func.lower(User.email) == email)
        ).first()
        if existing:
            raise DuplicateIdentity()

        if examiner_id is not None and self.db.get(Examiner, examiner_id) is None:
            raise ValidationError("Examiner not found", fields=["examiner_id"])
        if school_id is not None and self.db.get(School, school_id) is None:
            raise ValidationError("School not found", fields=["school_id"])

        user = User(
            username=username,
            email=email,
            hashed_password=hashed_password,
            role=role,
            examiner_id=examiner_id,
            school_id=school_id,
            is_active=True,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a concurrent registration race on the unique indexes
            self.db.rollback()
            raise DuplicateIdentity()
        self.db.refresh(user)
        logger.info(f"Created user: {username} (role: {role.value})")
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        """Get an active user by username."""
        return self.db.query(User).filter(
            User.username == normalize_username(username),
            User.is_active == True
        ).first()

    def find_by_email(self, email: str) -> Optional[User]:
        """Get an active user by email (case-insensitive)."""
        return self.db.query(User).filter(
            func.lower(User.email) == email.strip().lower(),
            User.is_active == True
        ).first()

    def touch_last_login(self, user_id: int) -> None:
        """Record a successful authentication."""
        updated = self.db.query(User).filter(User.id == user_id).update(
            {User.last_login: datetime.utcnow()}, synchronize_session="fetch"
        )
        if not updated:
            raise NotFound("User not found")
        self.db.commit()

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Authenticate a user by username and password.

        Inactive users never authenticate.

        Returns:
            User if authenticated, None otherwise
        """
        user = self.find_by_username(username)
        if not user or not verify_password(password, user.hashed_password):
            return None

        self.touch_last_login(user.id)
        self.db.refresh(user)
        return user

    def list_users(self) -> List[User]:
        """All users, inactive included, ordered by username."""
        return self.db.query(User).order_by(User.username).all()

    def set_active(self, user_id: int, is_active: bool) -> User:
        """Deactivate or reactivate a user. Users are never hard-deleted."""
        user = self.db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        user.is_active = is_active
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"User {user.username} {'activated' if is_active else 'deactivated'}")
        return user


class SessionRegistry:
    """Server-side session records used to invalidate a login explicitly."""

    def __init__(self, db: Session, session_secret: str, expire_hours: int = 24):
        self.db = db
        self.session_secret = session_secret
        self.expire_hours = expire_hours

    def create_session(
        self,
        user: User,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None
    ) -> Tuple[str, DBSession]:
        """
        Create a new session for user.

        Returns:
            Tuple of (session_key, DBSession object); the key goes in the cookie
        """
        session_key, encrypted_key, session_hash = generate_session_key(self.session_secret)
        session = DBSession(
            user_id=user.id,
            username=user.username,
            role=user.role,
            session_key=encrypted_key,
            session_hash=session_hash,
            ip_address=ip_address,
            user_agent=user_agent,
            expires_at=datetime.utcnow() + timedelta(hours=self.expire_hours),
            is_active=True
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)

        logger.info(f"Created session for user: {user.id}")
        return session_key, session

    def revoke_session(self, session_key: str) -> bool:
        """Deactivate the session named by a cookie value."""
        session = self.db.query(DBSession).filter(
            DBSession.session_hash == hash_session_key(session_key),
            DBSession.is_active == True
        ).first()

        if not session:
            return False

        session.is_active = False
        self.db.commit()
        return True

    def revoke_user_sessions(self, user_id: int) -> int:
        """Deactivate every active session of a user. Returns how many were closed."""
        sessions = self.db.query(DBSession).filter(
            DBSession.user_id == user_id,
            DBSession.is_active == True
        ).all()

        for session in sessions:
            session.is_active = False

        self.db.commit()
        return len(sessions)
