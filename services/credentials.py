# services/credentials.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from model import Role, User
from services.errors import AuthError, ValidationError
from util.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "email", "phone", "location")
MIN_PASSWORD_LENGTH = 6


_DUMMY_HASH = None


def _dummy_hash() -> str:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_password("not-a-real-password")
    return _DUMMY_HASH


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def register(db: Session, profile: dict, password: str) -> User:
    """Create a user with role ``user``; the password is stored hashed only"""
    cleaned = {field: (profile.get(field) or "").strip() for field in PROFILE_FIELDS}
    missing = [field for field, value in cleaned.items() if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    cleaned["email"] = normalize_email(cleaned["email"])
    if db.query(User).filter(User.email == cleaned["email"]).first():
        raise ValidationError("Email already registered")

    user = User(**cleaned, hashed_password=hash_password(password), role=Role.user)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        db.rollback()
        raise ValidationError("Email already registered")
    db.refresh(user)

    logger.info(f"Registered user {user.id}")
    return user


def login(db: Session, email: str, password: str):
    """Return ``(token, user)``; unknown email and wrong password fail the same way"""
    user = db.query(User).filter(User.email == normalize_email(email)).first()

    # Unknown emails still pay for a bcrypt check so both failures take as long
    hashed_password = user.hashed_password if user else _dummy_hash()
    if not verify_password(password or "", hashed_password) or not user:
        logger.info("Failed login attempt")
        raise AuthError("Invalid credentials")

    token = create_access_token(user.id, user.role.value)
    return token, user


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.role.value)
