"""
Pydantic schemas for user-related request/response validation.
"""

import re
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator

# bcrypt only hashes the first 72 bytes
PASSWORD_MAX_LENGTH = 72

_PASSWORD_RULES = [
    (re.compile(r"[A-Z]"), "at least one uppercase letter", True),
    (re.compile(r"[a-z]"), "at least one lowercase letter", True),
    (re.compile(r"[0-9]"), "at least one number", True),
    (re.compile(r"[^A-Za-z0-9\s]"), "at least one special character", True),
    (re.compile(r"(.)\1{2,}"), "no character repeated three times in a row", False),
    (re.compile(r"123|abc|qwe|asd|zxc", re.IGNORECASE), "no sequences such as 123 or abc", False),
]


def password_problems(password: str) -> list[str]:
    """Every strength rule the password breaks. Empty when it is acceptable."""
    return [
        message
        for pattern, message, must_match in _PASSWORD_RULES
        if bool(pattern.search(password)) != must_match
    ]


class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(..., min_length=8, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        problems = password_problems(value)
        if problems:
            raise ValueError("Password needs " + "; ".join(problems))
        return value


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., max_length=PASSWORD_MAX_LENGTH)


class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    role: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
