import re
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

_USER_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_password(value: str) -> str:
    # bcrypt only accepts the first 72 bytes.
    if len(value.encode("utf-8")) > 72:
        raise ValueError("password cannot be longer than 72 bytes")
    if not (re.search(r"[A-Za-z]", value) and re.search(r"\d", value)):
        raise ValueError("password must contain letters and numbers")
    return value


# --- User / auth ---

class UserCreate(BaseModel):
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    user_name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    bio: str | None = None
    avatar_url: HttpUrl | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip_names(cls, value: str) -> str:
        return value.strip()

    @field_validator("user_name")
    @classmethod
    def _check_user_name(cls, value: str) -> str:
        if not _USER_NAME_RE.match(value):
            raise ValueError("user_name may only contain letters, numbers, '.', '_' and '-'")
        return value

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return _check_password(value)


class LoginRequest(BaseModel):
    # Either an email address or a user name.
    user: str = Field(min_length=2, max_length=255)
    password: str = Field(min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class PasswordReset(BaseModel):
    password: str = Field(min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        return _check_password(value)


class SocialLogin(BaseModel):
    access_token: str = Field(min_length=1)


# --- Article ---

# Items are validated by tag_service so bad entries get its error message.
TagsInput = str | list


class ArticleCreate(BaseModel):
    title: str = Field(min_length=2, max_length=250)
    description: str | None = Field(None, max_length=500)
    article_body: str | None = None
    image: HttpUrl | None = None
    status: Literal["draft", "publish"] = "publish"
    category: str = Field("other", min_length=2, max_length=100)
    # A comma-separated string or a list of names.
    tags: TagsInput | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("title must be strings between 2 and 250 chars long")
        return value


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, min_length=2, max_length=250)
    description: str | None = Field(None, max_length=500)
    article_body: str | None = None
    image: HttpUrl | None = None
    status: Literal["draft", "publish"] | None = None
    category: str | None = Field(None, min_length=2, max_length=100)
    tags: TagsInput | None = None


# --- Comment ---

class CommentCreate(BaseModel):
    body: str = Field(min_length=1, max_length=5000)


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    pages: int
