# util/security.py
# Password hashing, session tokens and the request identity dependency
from datetime import datetime, timedelta, timezone
from typing import Optional
import os
import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from model import Role
from services.authorization import Identity
from services.errors import Unauthenticated

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or foreign hash
        return False


def create_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token carrying the user id and role"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else timedelta(days=JWT_EXPIRE_DAYS))
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Identity:
    """Verify signature and expiry; return the identity the token was issued for"""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        user_id = int(payload["sub"])
        role = Role(payload["role"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token")

    return Identity(user_id=user_id, role=role)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """Dependency resolving the bearer token of the request"""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing Authorization header")
    return decode_access_token(credentials.credentials)
