"""
Users Module
============
Staff accounts and the approval workflow.

Lifecycle:
    register -> PENDING -> (approve) ACTIVE
                        -> (reject)  REJECTED

Only ACTIVE accounts can sign in. Passwords are kept as werkzeug
salted hashes, never in clear text.
"""

import logging
from typing import Dict, List, Any, Optional, Iterable
from datetime import datetime
from dataclasses import dataclass, field
from enum import Enum

from werkzeug.security import check_password_hash, generate_password_hash

from ids import IdAllocator, UuidIdAllocator


logger = logging.getLogger(__name__)


class UserRole(Enum):
    ADMINISTRATOR = "Administrator"
    STAFF = "Staff"


class UserStatus(Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    REJECTED = "Rejected"


# ============================================================================
# ERRORS
# ============================================================================

class UserError(Exception):
    """Base class for user workflow errors."""
    pass


class DuplicateEmailError(UserError):
    pass


class InvalidCredentialsError(UserError):
    pass


class AccountNotActiveError(UserError):
    """Credentials are right but the account is pending or rejected."""

    def __init__(self, status: UserStatus):
        self.status = status
        super().__init__(f"Account status is {status.value}")


class UnknownUserError(UserError, KeyError):
    pass


# ============================================================================
# PASSWORD HASHING
# ============================================================================

def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password or a malformed hash."""
    return check_password_hash(password_hash, password)


# ============================================================================
# USER
# ============================================================================

@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.STAFF
    status: UserStatus = UserStatus.PENDING
    joined_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Public view (no password hash)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "joined_at": self.joined_at.isoformat(),
        }


class UserDirectory:
    """In-memory user store with the approval workflow."""

    def __init__(
        self,
        users: Optional[Iterable[User]] = None,
        id_allocator: Optional[IdAllocator] = None
    ):
        self._ids = id_allocator or UuidIdAllocator()
        self._users: Dict[str, User] = {}
        for user in users or ():
            self._users[user.id] = user

    def __len__(self) -> int:
        return len(self._users)

    def all(self) -> List[User]:
        return list(self._users.values())

    def pending(self) -> List[User]:
        return [u for u in self._users.values() if u.status == UserStatus.PENDING]

    def active(self) -> List[User]:
        return [u for u in self._users.values() if u.status == UserStatus.ACTIVE]

    def get(self, user_id: str) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise UnknownUserError(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        needle = (email or "").strip().lower()
        for user in self._users.values():
            if user.email.lower() == needle:
                return user
        return None

    def register(self, name: str, email: str, password: str) -> User:
        """
        Register a new staff account awaiting approval.

        Raises:
            ValueError: If name, email or password is empty
            DuplicateEmailError: If the email is already registered
        """
        if not name or not email or not password:
            raise ValueError("Name, email and password required")

        if self.find_by_email(email):
            raise DuplicateEmailError(f"Email already registered: {email}")

        user = User(
            id=self._ids.next_id("usr"),
            name=name.strip(),
            email=email.strip(),
            password_hash=hash_password(password),
            role=UserRole.STAFF,
            status=UserStatus.PENDING
        )
        self._users[user.id] = user

        logger.info(f"User registered: {user.id} ({user.email}), awaiting approval")

        return user

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials of an active account.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountNotActiveError: Account is pending or rejected
        """
        user = self.find_by_email(email)

        if user is None or not verify_password(password or "", user.password_hash):
            logger.warning(f"Login failed for {email}")
            raise InvalidCredentialsError("Invalid email or password")

        if user.status != UserStatus.ACTIVE:
            logger.warning(f"Login refused for {email}: {user.status.value}")
            raise AccountNotActiveError(user.status)

        logger.info(f"User signed in: {user.id}")

        return user

    def approve(self, user_id: str, role: UserRole = UserRole.STAFF) -> User:
        """Activate an account with the given role."""
        user = self.get(user_id)
        user.status = UserStatus.ACTIVE
        user.role = role

        logger.info(f"User approved: {user_id} as {role.value}")

        return user

    def reject(self, user_id: str) -> User:
        user = self.get(user_id)
        user.status = UserStatus.REJECTED

        logger.info(f"User rejected: {user_id}")

        return user
