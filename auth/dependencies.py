"""
Authentication dependencies for FastAPI.
"""
from dataclasses import dataclass, asdict
from typing import Optional

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database.models import UserRole
from auth.security import TokenIssuer
from auth.policy import policy
from services.auth_service import CredentialStore, SessionRegistry
from core.exceptions import MissingCredential, Unauthorized, UnexpectedFailure
from core.logger import logger

# Missing credentials are reported by the gateway itself, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Caller identity resolved from verified token claims."""
    user_id: int
    username: str
    role: UserRole
    examiner_id: Optional[int] = None
    school_id: Optional[int] = None

    @classmethod
    def from_claims(cls, claims: dict) -> "Identity":
        try:
            role = UserRole(claims.get("role"))
        except ValueError:
            raise Unauthorized()
        return cls(
            user_id=int(claims["user_id"]),
            username=claims.get("username") or claims.get("sub"),
            role=role,
            examiner_id=claims.get("examiner_id"),
            school_id=claims.get("school_id"),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["role"] = self.role.value
        return data


def get_db_session(request: Request):
    """Get database session."""
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=503, detail="Database not initialized")
    with db.get_session() as session:
        yield session


def get_token_issuer(request: Request) -> TokenIssuer:
    """Token issuer created once at startup."""
    issuer = getattr(request.app.state, "token_issuer", None)
    if issuer is None:
        raise UnexpectedFailure("Token issuer not initialized")
    return issuer


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    issuer: TokenIssuer = Depends(get_token_issuer)
) -> Identity:
    """
    Resolve the caller identity from the bearer token.

    The verified claims are the only identity source; the session
    registry is not consulted here.

    Raises:
        MissingCredential: No bearer token supplied
        Unauthorized: Token invalid or expired (generic message)
    """
    if credentials is None or not credentials.credentials:
        raise MissingCredential()

    try:
        claims = issuer.verify(credentials.credentials)
    except Unauthorized as e:
        logger.info(f"Rejected token on {request.method} {request.url.path}: {e.code}")
        raise Unauthorized()

    identity = Identity.from_claims(claims)
    request.state.identity = identity
    return identity


async def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    issuer: TokenIssuer = Depends(get_token_issuer)
) -> Optional[Identity]:
    """Get the caller identity if a valid token is supplied, otherwise None."""
    if credentials is None:
        return None

    try:
        return await get_current_identity(request, credentials, issuer)
    except Unauthorized:
        return None


def require_operation(operation: str):
    """
    Dependency factory gating a route by its entry in the policy table.

    Args:
        operation: Operation name declared in auth.policy.ROUTE_POLICIES

    Returns:
        Dependency function yielding the caller Identity (None on public routes
        called anonymously)
    """
    if not policy.requires_identity(operation):
        async def public_access(
            identity: Optional[Identity] = Depends(get_optional_identity)
        ) -> Optional[Identity]:
            return identity

        return public_access

    async def operation_checker(
        identity: Identity = Depends(get_current_identity)
    ) -> Identity:
        policy.check(operation, identity.role)
        return identity

    return operation_checker


def get_credential_store(db: Session = Depends(get_db_session)) -> CredentialStore:
    """Get CredentialStore with request-scoped DB session."""
    return CredentialStore(db)


def get_session_registry(
    request: Request,
    db: Session = Depends(get_db_session)
) -> SessionRegistry:
    """Get SessionRegistry bound to the session secret configured at startup."""
    state = request.app.state
    return SessionRegistry(db, state.session_secret, state.session_expire_hours)
