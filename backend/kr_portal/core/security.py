from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from kr_portal.core.config import settings

security = HTTPBearer()


def decode_token(token: str) -> dict:
    """Decode a Supabase access token, raising 401 when it does not verify."""
    payload = decode_token_sync(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def decode_token_sync(token: str) -> Optional[dict]:
    """
    Verify signature, expiry and audience of an access token.
    Returns None instead of raising so socket handlers can reject quietly.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError:
        return None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    token = credentials.credentials
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "access_token": token,
        "payload": payload,
    }
