from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field

from kr_portal.backend.dependencies import get_backend
from kr_portal.core.exceptions import BackendError
from kr_portal.core.logging import auth_logger
from kr_portal.core.security import get_current_user

router = APIRouter()


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    username: Optional[str] = Field(None, max_length=50)
    full_name: Optional[str] = Field(None, max_length=100)


class PasswordResetRequest(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None


class SessionTokens(BaseModel):
    user_id: str
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None


class SignUpResponse(BaseModel):
    session: Optional[SessionTokens] = None
    confirmation_required: bool


@router.post("/sign-in", response_model=SessionTokens)
async def sign_in(body: SignInRequest, backend=Depends(get_backend)):
    try:
        session = await backend.sign_in(body.email, body.password)
    except BackendError as e:
        auth_logger.warning("Sign-in failed", error=e, email=body.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    auth_logger.info("User signed in", user_id=session.user_id)
    return SessionTokens(**session.model_dump(include={"user_id", "access_token", "refresh_token", "expires_at"}))


@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(body: SignUpRequest, backend=Depends(get_backend)):
    metadata = {k: v for k, v in {"username": body.username, "full_name": body.full_name}.items() if v}
    try:
        session = await backend.sign_up(body.email, body.password, metadata or None)
    except BackendError as e:
        auth_logger.warning("Sign-up failed", error=e, email=body.email)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if session is None:
        return SignUpResponse(session=None, confirmation_required=True)
    tokens = SessionTokens(**session.model_dump(include={"user_id", "access_token", "refresh_token", "expires_at"}))
    return SignUpResponse(session=tokens, confirmation_required=False)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(current_user: dict = Depends(get_current_user), backend=Depends(get_backend)):
    try:
        await backend.sign_out(current_user["access_token"])
    except BackendError as e:
        auth_logger.error("Sign-out failed", error=e, user_id=current_user["user_id"])
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not sign out")
    auth_logger.info("User signed out", user_id=current_user["user_id"])


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def password_reset(body: PasswordResetRequest, backend=Depends(get_backend)):
    try:
        await backend.reset_password(body.email, body.redirect_to)
    except BackendError as e:
        # Same response whether or not the account exists
        auth_logger.warning("Password reset request failed", error=e)
    return {"status": "accepted"}
