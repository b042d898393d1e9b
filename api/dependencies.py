"""API Dependencies - Operator authentication"""
from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from config import settings
from domain.auth import User, UserInDB
from infrastructure.security import SECRET_KEY, ALGORITHM, get_password_hash

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

OPERATOR_ID = UUID("123e4567-e89b-12d3-a456-426614174000")


@lru_cache(maxsize=1)
def _operator_password_hash() -> str:
    return get_password_hash(settings.admin_password)


def get_user(username: str) -> Optional[UserInDB]:
    """The single configured operator, or None"""
    if username != settings.admin_username:
        return None
    return UserInDB(
        user_id=OPERATOR_ID,
        username=settings.admin_username,
        full_name="Property Operator",
        hashed_password=_operator_password_hash(),
    )


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise credentials_exception

    user = get_user(payload.get("sub") or "")
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user
