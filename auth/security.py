"""
Security utilities for authentication.
Includes password hashing, JWT session tokens and session cookie keys.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from cryptography.fernet import Fernet
import bcrypt
import secrets
import hashlib
import base64

from core.exceptions import TokenExpired, TokenInvalid, ValidationError
import config

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__ident="2b",
    bcrypt__rounds=12
)

BCRYPT_MAX_BYTES = 72


# Password utilities
def validate_password(password: str) -> Tuple[bool, Optional[str]]:
    """
    Validate password length.

    Requirements:
    - Minimum PASSWORD_MIN_LENGTH characters
    - Maximum 72 bytes (bcrypt limit)

    Args:
        password: Password to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, "Password is required"

    if len(password) < config.PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters long"

    if len(password.encode('utf-8')) > BCRYPT_MAX_BYTES:
        return False, "Password cannot be longer than 72 bytes. Please use a shorter password."

    return True, None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # Not a raw bcrypt hash; let passlib identify the scheme
        return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Raises:
        ValidationError: If the password fails validate_password()
    """
    is_valid, error_message = validate_password(password)
    if not is_valid:
        raise ValidationError(error_message, fields=["password"])

    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


# JWT session tokens
class TokenIssuer:
    """
    Issues and verifies signed, time-bounded session tokens.

    One instance is built at startup from config and shared by the
    login route and the authentication gateway.
    """

    TOKEN_TYPE = "access"

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl_seconds: int = 86400):
        if not secret_key:
            raise ValueError("Token signing secret must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds

    def issue(self, claims: Dict[str, Any], ttl_seconds: Optional[int] = None) -> str:
        """
        Create a signed token embedding the claims and an absolute expiry.

        Args:
            claims: Identity claims to embed
            ttl_seconds: Lifetime override (defaults to the issuer TTL)

        Returns:
            Encoded JWT
        """
        now = datetime.utcnow()
        lifetime = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        to_encode = claims.copy()
        to_encode.update({
            "exp": now + timedelta(seconds=lifetime),
            "iat": now,
            "type": self.TOKEN_TYPE
        })
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry and return the claims.

        Raises:
            TokenExpired: Signature valid but expiry elapsed
            TokenInvalid: Malformed token, bad signature or wrong token type
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpired()
        except JWTError:
            raise TokenInvalid()

        if payload.get("type") != self.TOKEN_TYPE or payload.get("user_id") is None:
            raise TokenInvalid()
        return payload

    @staticmethod
    def claims_for(user) -> Dict[str, Any]:
        """Build the claim set carried by a user's session token."""
        return {
            "sub": user.username,
            "user_id": user.id,
            "username": user.username,
            "role": user.role.value,
            "examiner_id": user.examiner_id,
            "school_id": user.school_id,
        }


# Session cookie utilities
def get_session_cipher(session_secret: str) -> Fernet:
    """Derive a Fernet cipher from the session-signing secret."""
    key_bytes = hashlib.sha256(session_secret.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(key_bytes))


def generate_session_key(session_secret: str) -> Tuple[str, str, str]:
    """
    Generate a new session cookie value.

    Returns:
        Tuple of (session_key, encrypted_session_key, session_hash)
    """
    session_key = secrets.token_urlsafe(32)
    session_hash = hash_session_key(session_key)
    encrypted_key = get_session_cipher(session_secret).encrypt(session_key.encode()).decode()
    return session_key, encrypted_key, session_hash


def hash_session_key(key: str) -> str:
    """Hash a session key for storage/comparison."""
    return hashlib.sha256(key.encode()).hexdigest()
