"""Authentication for the admin API: shared password in, JWT bearer token out."""

import secrets
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from schnitzarchiv.config import get_settings

ALGORITHM = "HS256"

# HTTP Bearer scheme for JWT; missing headers are handled in get_current_user
security = HTTPBearer(auto_error=False)


class Token(BaseModel):
    """Token response model."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Token payload data."""
    username: Optional[str] = None


class LoginRequest(BaseModel):
    """Login request model."""
    password: str


@lru_cache
def get_secret_key() -> str:
    """JWT signing key; a random one per process if none is configured."""
    return get_settings().jwt_secret_key or secrets.token_urlsafe(32)


def authenticate_admin(password: str) -> bool:
    """Check the shared admin password."""
    return secrets.compare_digest(password.encode(), get_settings().admin_password.encode())


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=get_settings().access_token_expire_minutes)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    """Decode and verify a JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    return token_data


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Dependency to get the current authenticated user from JWT token."""
    # Skip authentication in development mode if ENABLE_AUTH=false
    if not get_settings().enable_auth:
        return "dev-user"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_access_token(credentials.credentials)
    return token_data.username


def require_admin(username: str = Depends(get_current_user)) -> str:
    """Dependency that requires admin authentication."""
    # There is a single shared admin account
    return username
