"""
Security Module - Authentication & Authorization
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, List
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from divecenter.core.config import settings
from divecenter.core.database import get_db
import logging

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "access_token"

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign `data` plus issued-at and expiry claims"""
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = dict(data, iat=issued, exp=issued + lifetime)
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def _credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Bearer header first, then the httponly cookie set at login"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    """
    Resolve the staff member behind the request's token.

    The token must name a user by email and carry the dive center that user
    belongs to; a token minted for another dive center is refused.
    """
    from divecenter.services.user_service import UserService

    token = token_from_request(request, credentials)
    if not token:
        raise _credentials_error("Not authenticated")

    payload = decode_access_token(token)
    if payload is None:
        raise _credentials_error("Invalid or expired token")

    email = payload.get("sub")
    if not email:
        raise _credentials_error("Invalid token payload")

    user = UserService(db).get_user_with_relations(email=email)
    if user is None:
        raise _credentials_error("User not found")

    if payload.get("dive_center_id") != user.dive_center_id:
        raise _credentials_error("Token does not match the user's dive center")

    return user


async def get_current_active_user(current_user=Depends(get_current_user)):
    """
    Rejects disabled accounts and accounts whose dive center is suspended.
    """
    if not current_user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled"
        )

    if current_user.dive_center is None or current_user.dive_center.status != "Active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Dive center is not active"
        )

    return current_user


class RoleChecker:
    """Dependency for restricting an endpoint to a set of user roles"""

    def __init__(self, allowed_roles: List[str]):
        self.allowed_roles = set(allowed_roles)

    def __call__(self, user=Depends(get_current_active_user)):
        if user.role not in self.allowed_roles:
            logger.info(f"User {user.id} ({user.role}) refused; requires one of {sorted(self.allowed_roles)}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role}' is not allowed to perform this action"
            )
        return user
