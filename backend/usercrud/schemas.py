"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. The list-query value objects
(`PaginationParam`, `OrderParam`, `FilterParam`) are built per request by
`utils.query_params` and consumed by `utils.pagination`.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional
import re

MIN_PASSWORD_LENGTH = 8

_UPPER = re.compile(r"[A-Z]")
_DIGIT = re.compile(r"[0-9]")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PaginationParam(BaseModel):
    """Page window; `page_size == -1` disables limiting."""
    page: int = 1
    page_size: int = -1


class OrderParam(BaseModel):
    """Single ordering column and direction ("asc" or "desc")."""
    order_by: str = ""
    order: str = ""


class FilterParam(BaseModel):
    """One predicate; `operator` holds the relational form, e.g. "<=" or "not in"."""
    field: str
    value: str
    operator: str


FilterParams = List[FilterParam]


class ListReq(BaseModel):
    page: PaginationParam = Field(default_factory=PaginationParam)
    order: OrderParam = Field(default_factory=OrderParam)
    filter: List[FilterParam] = Field(default_factory=list)


class PaginationData(BaseModel):
    """Result page returned by the generic repository."""
    page: int
    page_size: int
    total_page: int
    total_data_per_page: int
    total_data: int
    data: List[Any] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int
    page_size: int
    total_page: int
    total_data_per_page: int
    total_data: int


class UserLogin(BaseModel):
    """Payload for registration, login, create and update of users.

    The password must be at least 8 characters with one uppercase letter,
    one digit and one symbol. Either `username` or `email` must be set.
    """
    username: str = ""
    email: str = ""
    password: str = Field(default="", validate_default=True)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError("password is required")
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password must be greater than or equal to {MIN_PASSWORD_LENGTH}")
        if not (_UPPER.search(value) and _DIGIT.search(value) and _SYMBOL.search(value)):
            raise ValueError(
                "password is not a valid password, at least 8 characters, "
                "1 uppercase, 1 number, and 1 special character"
            )
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if value and not _EMAIL.match(value):
            raise ValueError("email is not a valid email")
        return value

    @model_validator(mode="after")
    def require_username_or_email(self):
        if not self.username and not self.email:
            raise ValueError("either email or username must be filled")
        return self


class UserOut(BaseModel):
    """Public view of a user; the password hash never leaves the service."""
    id: str
    username: str
    email: str


class UserLoginResponse(BaseModel):
    username: str
    token: str


class JwtAuthenticationRes(BaseModel):
    username: str
    token: str


class ExampleIn(BaseModel):
    name: str
    year: int
    description: Optional[str] = None


class ExampleOut(BaseModel):
    id: str
    name: str
    year: int
    description: Optional[str] = None


class ExampleMessage(BaseModel):
    """Event published to Kafka when an example is created."""
    id: str
    name: str
    year: int
    event: str = "created"


class DataResponse(BaseModel):
    response_code: int = 200
    response_message: str = "success"
    data: Any = None


class PaginationResponse(BaseModel):
    response_code: int = 200
    response_message: str = "success"
    pagination: Optional[Pagination] = None
    data: List[Any] = Field(default_factory=list)


class SuccessResponse(BaseModel):
    response_code: int = 200
    response_message: str = "success"


class ErrorResponse(BaseModel):
    response_code: int
    response_message: Any
    error: Optional[Any] = None


ValidationErrors = Dict[str, str]
