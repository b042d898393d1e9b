"""Operator account allowed to manage reservations"""
from pydantic import BaseModel
from uuid import UUID
from typing import Optional


class User(BaseModel):
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    disabled: bool = False


class UserInDB(User):
    hashed_password: str
