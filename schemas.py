import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

MAX_CONTENT_LENGTH = 500
PATCH_IGNORED_FIELDS = ("id", "owner_id")


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Status(str, Enum):
    TODO = "TODO"
    COMPLETED = "COMPLETED"


def _upper(v: Any) -> Any:
    return v.strip().upper() if isinstance(v, str) else v


def _check_content(v: str) -> str:
    v = v.strip()
    if len(v) < 1 or len(v) > MAX_CONTENT_LENGTH:
        raise ValueError(f"Content must be between 1 and {MAX_CONTENT_LENGTH} characters")
    return v


# Stored records

class User(BaseModel):
    id: str
    name: str
    email: str
    password_hash: str = Field(repr=False)


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str


class Task(BaseModel):
    id: str
    content: str
    priority: Priority = Priority.LOW
    date: datetime.date
    status: Status = Status.TODO
    owner_id: str


# Request bodies

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def name_validator(cls, v):
        v = v.strip()
        if len(v) < 1 or len(v) > 100:
            raise ValueError("Name must be between 1 and 100 characters")
        return v

    @field_validator("password")
    @classmethod
    def password_validator(cls, v):
        if not v:
            raise ValueError("Password must not be empty")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class TaskCreate(BaseModel):
    # Unknown fields (an ``owner_id`` in particular) are dropped.
    model_config = ConfigDict(extra="ignore")

    content: str
    priority: Optional[Priority] = None
    date: Optional[datetime.date] = None

    @field_validator("priority", mode="before")
    @classmethod
    def priority_validator(cls, v):
        return _upper(v)

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return _check_content(v)


class TaskPatch(BaseModel):
    """Whitelisted partial update; fields left out keep their stored value."""

    model_config = ConfigDict(extra="forbid")

    content: Optional[str] = None
    priority: Optional[Priority] = None
    date: Optional[datetime.date] = None
    status: Optional[Status] = None

    @model_validator(mode="before")
    @classmethod
    def drop_ignored_fields(cls, data):
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if k not in PATCH_IGNORED_FIELDS}
        return data

    @field_validator("priority", "status", mode="before")
    @classmethod
    def enum_validator(cls, v):
        return _upper(v)

    @field_validator("content")
    @classmethod
    def content_validator(cls, v):
        return v if v is None else _check_content(v)

    @model_validator(mode="after")
    def no_null_fields(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} must not be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Responses

class Message(BaseModel):
    message: str


class Token(BaseModel):
    token: str
    token_type: str = "bearer"


class Account(BaseModel):
    id: str
    name: str
    email: str


class TaskSummary(BaseModel):
    total: int
    TODO: int
    COMPLETED: int
    LOW: int
    MEDIUM: int
    HIGH: int
