"""
Role-based authorization policy.

Every route declares its requirement in ROUTE_POLICIES. Roles form no
hierarchy: an operation open to coordinators is not implicitly open to
admins unless admin is listed too.
"""
from typing import Dict, FrozenSet, Optional, Union

from database.models import UserRole
from core.exceptions import AccessDenied
from core.logger import logger


class Access:
    """Route requirements that are not a role set."""
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"


RoutePolicy = Union[str, FrozenSet[UserRole]]

ADMIN_ONLY: FrozenSet[UserRole] = frozenset({UserRole.ADMIN})
STAFF: FrozenSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.COORDINATOR})
ALL_ROLES: FrozenSet[UserRole] = frozenset(UserRole)


ROUTE_POLICIES: Dict[str, RoutePolicy] = {
    # Authentication
    "auth.register": Access.PUBLIC,
    "auth.login": Access.PUBLIC,
    "auth.logout": Access.AUTHENTICATED,
    "auth.verify": Access.AUTHENTICATED,
    "auth.me": Access.AUTHENTICATED,
    # User administration
    "users.list": ADMIN_ONLY,
    "users.create": ADMIN_ONLY,
    "users.set_active": ADMIN_ONLY,
    # Reference data
    "schools.list": Access.PUBLIC,
    "schools.create": STAFF,
    "subjects.list": Access.PUBLIC,
    "subjects.create": STAFF,
    "examiners.list": Access.AUTHENTICATED,
    "examiners.by_subject": Access.AUTHENTICATED,
    "examiners.by_school": Access.AUTHENTICATED,
    "examiners.create": STAFF,
    "students.list": STAFF,
    "students.create": STAFF,
    # Evaluations (examiners are further scoped to their own sheets)
    "answer_sheets.list": ALL_ROLES,
    "answer_sheets.by_examiner": ALL_ROLES,
    "answer_sheets.by_student": STAFF,
    "answer_sheets.create": ALL_ROLES,
    "answer_sheets.update_marks": ALL_ROLES,
    # Invigilation
    "invigilation.list": Access.AUTHENTICATED,
    "invigilation.by_examiner": Access.AUTHENTICATED,
    "invigilation.by_school": Access.AUTHENTICATED,
    "invigilation.create": STAFF,
    "invigilation.update": STAFF,
    "invigilation.delete": STAFF,
    # Reports
    "statistics.evaluation": STAFF,
    "statistics.subjects": STAFF,
    "statistics.schools": STAFF,
    "dashboard": STAFF,
}


class AuthorizationPolicy:
    """Maps {role, operation} to allow/deny."""

    def __init__(self, policies: Optional[Dict[str, RoutePolicy]] = None):
        self.policies = ROUTE_POLICIES if policies is None else policies

    def policy_for(self, operation: str) -> RoutePolicy:
        """Look up the declared requirement of an operation."""
        try:
            return self.policies[operation]
        except KeyError:
            raise KeyError(f"No access policy declared for operation '{operation}'")

    def requires_identity(self, operation: str) -> bool:
        """Whether the operation needs an authenticated caller."""
        return self.policy_for(operation) != Access.PUBLIC

    @staticmethod
    def authorize(role: Union[UserRole, str], allowed_roles: FrozenSet[UserRole]) -> None:
        """
        Plain set-membership check.

        Raises:
            AccessDenied: If role is not in allowed_roles
        """
        try:
            role = UserRole(role)
        except ValueError:
            raise AccessDenied()
        if role not in allowed_roles:
            allowed = ", ".join(sorted(r.value for r in allowed_roles))
            raise AccessDenied(f"Access denied. Required roles: {allowed}")

    def check(self, operation: str, role: Optional[Union[UserRole, str]]) -> None:
        """
        Authorize a caller for a named operation.

        Args:
            operation: Key into the policy table
            role: Caller role, None for anonymous callers

        Raises:
            AccessDenied: If the role is not allowed
        """
        policy = self.policy_for(operation)
        if policy == Access.PUBLIC:
            return
        if role is None:
            raise AccessDenied()
        if policy == Access.AUTHENTICATED:
            return
        try:
            self.authorize(role, policy)
        except AccessDenied:
            logger.warning(f"Access denied: role '{getattr(role, 'value', role)}' on {operation}")
            raise


policy = AuthorizationPolicy()
