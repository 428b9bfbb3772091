"""Authentication router for login and session check."""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from loguru import logger

from schnitzarchiv.auth import (
    LoginRequest,
    Token,
    authenticate_admin,
    create_access_token,
    decode_access_token,
    security,
)
from schnitzarchiv.config import get_settings

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(login_data: LoginRequest):
    """Exchange the admin password for a JWT access token."""
    if not authenticate_admin(login_data.password):
        logger.warning("Failed admin login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": "admin"})
    return Token(access_token=access_token)


@router.get("/check")
async def check_auth(credentials: HTTPAuthorizationCredentials | None = Depends(security)):
    """Tell the dashboard whether its token is still valid."""
    if not get_settings().enable_auth:
        return {"authenticated": True}
    if credentials is None:
        return {"authenticated": False}

    try:
        decode_access_token(credentials.credentials)
    except HTTPException:
        return {"authenticated": False}
    return {"authenticated": True}
