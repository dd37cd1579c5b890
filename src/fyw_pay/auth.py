"""
Admin authentication and JWT token handling
A single admin account configured through the environment
"""
import hmac
import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Config
from .exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

# Security configuration
ALGORITHM = "HS256"
ADMIN_ROLE = "admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

http_bearer = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """Hash a password for ADMIN_PASSWORD_HASH"""
    if not password:
        raise ValueError("Password cannot be empty")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash"""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.warning(f"Password verification failed: {type(e).__name__}")
        return False


def authenticate_admin(email: str, password: str, config: Config) -> bool:
    """
    Check admin credentials

    The email comparison is constant-time; the password is checked against
    ADMIN_PASSWORD_HASH when set, otherwise against ADMIN_PASSWORD.
    """
    if not email or not password or not config.ADMIN_EMAIL:
        return False

    email_ok = hmac.compare_digest(
        email.strip().lower().encode(),
        config.ADMIN_EMAIL.strip().lower().encode(),
    )
    if config.ADMIN_PASSWORD_HASH:
        password_ok = verify_password(password, config.ADMIN_PASSWORD_HASH)
    elif config.ADMIN_PASSWORD:
        password_ok = hmac.compare_digest(password.encode(), config.ADMIN_PASSWORD.encode())
    else:
        password_ok = False

    if not (email_ok and password_ok):
        logger.warning("Admin login failed: invalid credentials")
        return False
    return True


def create_access_token(data: dict, config: Config, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token with JTI (JWT ID)

    Args:
        data: Claims to encode (must include 'sub')
        config: Config holding JWT_SECRET and JWT_EXPIRES_MINUTES
        expires_delta: Optional custom expiration time
    """
    to_encode = data.copy()
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=config.JWT_EXPIRES_MINUTES))
    to_encode.update({
        "exp": expire,
        "jti": str(uuid.uuid4()),
        "iat": now,
    })
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=ALGORITHM)


def verify_token(token: str, config: Config) -> Optional[dict]:
    """Verify and decode a JWT token; None when invalid or expired"""
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Token verification failed: Token has expired")
        return None
    except JWTError as e:
        logger.warning(f"Token verification failed: {type(e).__name__} - {str(e)}")
        return None


def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> dict:
    """
    FastAPI dependency guarding admin routes

    Returns:
        Decoded token claims

    Raises:
        UnauthorizedError: missing, invalid or expired token
    """
    if not credentials or not credentials.credentials.strip():
        raise UnauthorizedError("Authentication token is missing")

    payload = verify_token(credentials.credentials.strip(), request.app.state.config)
    if payload is None or payload.get("role") != ADMIN_ROLE or not payload.get("sub"):
        raise UnauthorizedError("Invalid or expired authentication token")
    return payload
