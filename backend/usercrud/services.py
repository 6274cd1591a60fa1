"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
signatures and messaging. Payloads arrive validated by their schemas;
services execute domain logic and persist aggregates via repositories.
Failures are raised as `ServiceError` subclasses.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models, repositories
from .auth import Signature
from .exceptions import AlreadyExists, Internal, InvalidArgument, NotFound, PermissionDenied
from .messaging import ExampleProducer
from .schemas import (
    ExampleIn,
    ExampleMessage,
    ExampleOut,
    ListReq,
    Pagination,
    PaginationData,
    UserLogin,
    UserLoginResponse,
    UserOut,
)
from .utils.query_params import QueryParamError

logger = logging.getLogger("usercrud.services")


def _check_uuid(id: str, entity: str):
    try:
        uuid.UUID(id)
    except ValueError:
        raise InvalidArgument(f"invalid {entity} id, must be uuid")


def pagination_of(result: PaginationData) -> Pagination:
    return Pagination(
        page=result.page,
        page_size=result.page_size,
        total_page=result.total_page,
        total_data_per_page=result.total_data_per_page,
        total_data=result.total_data,
    )


def _list(repo: repositories.Repository, req: ListReq, entity: str) -> PaginationData:
    try:
        return repo.find_by_pagination(req.page, req.order, req.filter)
    except QueryParamError as e:
        raise InvalidArgument(str(e))
    except SQLAlchemyError as e:
        raise Internal(f"failed to get {entity}", e)


def to_user_out(user: models.User) -> UserOut:
    return UserOut(id=user.id, username=user.username, email=user.email)


def to_example_out(example: models.Example) -> ExampleOut:
    return ExampleOut(id=example.id, name=example.name, year=example.year, description=example.description)


class UserService:
    """Registration, login and CRUD for users."""
    def __init__(self, session: Session, signature: Signature):
        self.session = session
        self.signature = signature
        self.user_repo = repositories.UserRepository(session)

    def _check_duplicates(self, payload: UserLogin, own_id: Optional[str] = None):
        # empty names are not unique keys
        for column in ("username", "email"):
            value = getattr(payload, column)
            if not value:
                continue
            existing = self.user_repo.find_by_name(column, value)
            if existing is not None and existing.id != own_id:
                raise PermissionDenied(f"{column} already exists")

    def create(self, payload: UserLogin) -> UserOut:
        """Store a new user with a hashed password; usernames and emails are unique."""
        try:
            self._check_duplicates(payload)
            user = models.User(
                id=str(uuid.uuid4()),
                username=payload.username,
                email=payload.email,
                password=self.signature.hash_password(payload.password),
            )
            user = self.user_repo.create(user)
        except SQLAlchemyError as e:
            raise Internal("failed to create user", e)
        logger.info("user created id=%s", user.id)
        return to_user_out(user)

    def login(self, payload: UserLogin) -> UserLoginResponse:
        """Verify credentials and return a signed JWT.

        The user is looked up by username first, then by email.
        """
        try:
            user = None
            if payload.username:
                user = self.user_repo.find_by_name("username", payload.username)
            if user is None and payload.email:
                user = self.user_repo.find_by_name("email", payload.email)
        except SQLAlchemyError as e:
            raise Internal("failed to find user", e)
        if user is None:
            raise NotFound("username/email not found")
        if not self.signature.check_password_hash(payload.password, user.password):
            raise PermissionDenied("username/password unmatched")
        login_name = user.username or user.email
        return UserLoginResponse(username=login_name, token=self.signature.generate_jwt(login_name))

    def update(self, id: str, payload: UserLogin) -> UserOut:
        _check_uuid(id, "user")
        try:
            user = self.user_repo.find_by_id(id)
            if user is None:
                raise NotFound("user not found")
            self._check_duplicates(payload, own_id=id)
            user.username = payload.username
            user.email = payload.email
            user.password = self.signature.hash_password(payload.password)
            user = self.user_repo.update(user)
        except SQLAlchemyError as e:
            raise Internal("failed to update user", e)
        return to_user_out(user)

    def delete(self, id: str):
        _check_uuid(id, "user")
        try:
            self.user_repo.delete_by_id(id)
        except SQLAlchemyError as e:
            raise Internal("failed to delete user", e)

    def list(self, req: ListReq):
        result = _list(self.user_repo, req, "User")
        return pagination_of(result), [to_user_out(u) for u in result.data]

    def find_one(self, id: str) -> UserOut:
        _check_uuid(id, "user")
        try:
            user = self.user_repo.find_by_id(id)
        except SQLAlchemyError as e:
            raise Internal("failed to find user", e)
        if user is None:
            raise NotFound("user not found")
        return to_user_out(user)


class ExampleService:
    """CRUD for examples; creation is announced on Kafka when configured."""
    def __init__(self, session: Session, producer: Optional[ExampleProducer] = None):
        self.session = session
        self.producer = producer
        self.example_repo = repositories.ExampleRepository(session)

    def create_example(self, payload: ExampleIn) -> ExampleOut:
        try:
            if self.example_repo.find_by_column("year", payload.year) is not None:
                raise AlreadyExists("example already exists")
            example = self.example_repo.create(models.Example(id=str(uuid.uuid4()), **payload.model_dump()))
        except SQLAlchemyError as e:
            raise Internal("failed to create example", e)
        if self.producer is not None:
            self.producer.send(ExampleMessage(id=example.id, name=example.name, year=example.year))
        return to_example_out(example)

    def list(self, req: ListReq):
        result = _list(self.example_repo, req, "Example")
        return pagination_of(result), [to_example_out(e) for e in result.data]

    def find_one(self, id: str) -> ExampleOut:
        _check_uuid(id, "example")
        try:
            example = self.example_repo.find_by_id(id)
        except SQLAlchemyError as e:
            raise Internal("failed to find example", e)
        if example is None:
            raise NotFound("example not found")
        return to_example_out(example)

    def update(self, id: str, payload: ExampleIn) -> ExampleOut:
        _check_uuid(id, "example")
        try:
            example = self.example_repo.find_by_id(id)
            if example is None:
                raise NotFound("example not found")
            clash = self.example_repo.find_by_column("year", payload.year)
            if clash is not None and clash.id != id:
                raise AlreadyExists("example already exists")
            example.name = payload.name
            example.year = payload.year
            example.description = payload.description
            example = self.example_repo.update(example)
        except SQLAlchemyError as e:
            raise Internal("failed to update example", e)
        return to_example_out(example)

    def delete(self, id: str):
        _check_uuid(id, "example")
        try:
            self.example_repo.delete_by_id(id)
        except SQLAlchemyError as e:
            raise Internal("failed to delete example", e)
