# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every sale, ID check and override must be attributable to an
employee. Uses bcrypt for password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import User, Store, ROLES
from justsell.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash password using bcrypt (default cost factor 12).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for malformed hashes instead of raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    role: str = "CASHIER",
    store_id: int | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    bcrypt_rounds: int = 12,
) -> User:
    """
    Create new employee account.

    Raises PasswordValidationError for weak passwords, ValidationError for
    an unknown role or store, ConflictError for a duplicate username.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("username is required")

    role = (role or "").upper()
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")

    if store_id is not None and db.session.get(Store, store_id) is None:
        raise ValidationError(f"Store {store_id} not found")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError(f"Username {username!r} already exists")

    user = User(
        username=username,
        password_hash=hash_password(password, rounds=bcrypt_rounds),
        role=role,
        store_id=store_id,
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Username {username!r} already exists")
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user by username and password.

    Returns User if credentials valid and account active, else None.
    Updates last_login_at on success.
    """
    user = db.session.query(User).filter_by(username=(username or "").strip()).first()

    if not user or not user.is_active:
        return None

    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
