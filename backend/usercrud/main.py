"""FastAPI application entrypoint and HTTP controllers.

Controllers are intentionally thin: they bind requests, delegate to
services, and wrap results in the response envelopes from `schemas`.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- POST, GET /users and GET, PUT, DELETE /users/{id}  (bearer token)
- POST /campaign, GET /campaign/select, GET, PUT, DELETE /campaign/{id}
- GET /health

List endpoints accept `page`, `pageSize`, `sort` and `filter` query
parameters (see `utils.query_params`).
"""

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
import json
import logging
import time
import uuid
from . import models, services
from .auth import Signature, get_current_user, get_signature
from .config import settings
from .database import create_db_and_tables, get_session
from .exceptions import InvalidArgument, ServiceError
from .messaging import ExampleProducer, build_producer
from .schemas import (
    DataResponse,
    ErrorResponse,
    ExampleIn,
    ListReq,
    PaginationResponse,
    SuccessResponse,
    UserLogin,
)
from .utils.logger import setup_logger
from .utils.query_params import QueryParamError, parse_pagination_params

setup_logger(settings.ENV, settings.LOG_PATH, settings.APP_DEBUG)
logger = logging.getLogger("usercrud.api")

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

if settings.ALLOW_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.ALLOW_METHODS,
        allow_headers=settings.ALLOW_HEADERS,
    )

create_db_and_tables()

_kafka_producer = build_producer(settings)
_example_producer = ExampleProducer(_kafka_producer, settings.KAFKA_TOPIC_EXAMPLE) if _kafka_producer else None


def _error_json(status_code: int, message, error=None) -> JSONResponse:
    body = ErrorResponse(response_code=status_code, response_message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    error = None
    if exc.error is not None:
        logger.error("request failed path=%s error=%s", request.url.path, exc.error)
        if settings.APP_DEBUG:
            error = str(exc.error)
    return _error_json(exc.http_code, exc.message, error)


def _validation_message(error: dict) -> str:
    # ValueErrors raised in schema validators carry the client-facing text
    cause = error.get("ctx", {}).get("error")
    return str(cause) if isinstance(cause, ValueError) else error["msg"]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {".".join(str(p) for p in e["loc"][1:]) or "body": _validation_message(e) for e in exc.errors()}
    return _error_json(400, "invalid request body", errors)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("request halted path=%s", request.url.path)
    return _error_json(
        500,
        "Request is halted unexpectedly, please contact the administrator.",
        str(exc) if settings.APP_DEBUG else None,
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


def list_params(request: Request) -> ListReq:
    """Parse `page`, `pageSize`, `sort` and `filter` into a `ListReq`."""
    try:
        page, order, filters = parse_pagination_params(request.query_params)
    except QueryParamError as e:
        raise InvalidArgument(str(e))
    return ListReq(page=page, order=order, filter=filters)


def get_user_service(db: Session = Depends(get_session), signer: Signature = Depends(get_signature)):
    return services.UserService(db, signer)


def get_example_producer():
    return _example_producer


def get_example_service(db: Session = Depends(get_session), producer=Depends(get_example_producer)):
    return services.ExampleService(db, producer)


@app.post('/auth/register')
def register(payload: UserLogin, svc: services.UserService = Depends(get_user_service)):
    """Register a new user; either `username` or `email` must be set."""
    return DataResponse(data=svc.create(payload))


@app.post('/auth/login')
def login(payload: UserLogin, svc: services.UserService = Depends(get_user_service)):
    """Authenticate a user and return a short-lived JWT token."""
    return DataResponse(data=svc.login(payload))


@app.post('/users')
def create_user(
    payload: UserLogin,
    svc: services.UserService = Depends(get_user_service),
    user: models.User = Depends(get_current_user),
):
    return DataResponse(data=svc.create(payload))


@app.get('/users')
def list_users(
    req: ListReq = Depends(list_params),
    svc: services.UserService = Depends(get_user_service),
    user: models.User = Depends(get_current_user),
):
    """List users with optional ordering and filtering.

    - `filter`: `{field}:{value}:{op}` joined by `|`; op is one of eq, lt,
      gt, lte, gte, in, like, is, not. Fields: id, username, email.
    - `sort`: `{field}:{asc|desc}` joined by `,`; the last rule wins.
    """
    pagination, data = svc.list(req)
    return PaginationResponse(pagination=pagination, data=data)


@app.get('/users/{id}')
def find_user(id: str, svc: services.UserService = Depends(get_user_service), user: models.User = Depends(get_current_user)):
    return DataResponse(data=svc.find_one(id))


@app.put('/users/{id}')
def update_user(
    id: str,
    payload: UserLogin,
    svc: services.UserService = Depends(get_user_service),
    user: models.User = Depends(get_current_user),
):
    return DataResponse(data=svc.update(id, payload))


@app.delete('/users/{id}')
def delete_user(id: str, svc: services.UserService = Depends(get_user_service), user: models.User = Depends(get_current_user)):
    svc.delete(id)
    return SuccessResponse(response_message=f"{id} has been deleted")


@app.post('/campaign')
def create_example(payload: ExampleIn, svc: services.ExampleService = Depends(get_example_service)):
    return DataResponse(data=svc.create_example(payload))


@app.get('/campaign/select')
def list_examples(req: ListReq = Depends(list_params), svc: services.ExampleService = Depends(get_example_service)):
    pagination, data = svc.list(req)
    return PaginationResponse(pagination=pagination, data=data)


@app.get('/campaign/{id}')
def find_example(id: str, svc: services.ExampleService = Depends(get_example_service)):
    return DataResponse(data=svc.find_one(id))


@app.put('/campaign/{id}')
def update_example(id: str, payload: ExampleIn, svc: services.ExampleService = Depends(get_example_service)):
    return DataResponse(data=svc.update(id, payload))


@app.delete('/campaign/{id}')
def delete_example(id: str, svc: services.ExampleService = Depends(get_example_service)):
    svc.delete(id)
    return SuccessResponse(response_message=f"{id} has been deleted")


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


def run():
    """Serve the API with uvicorn on `HTTP_PORT`."""
    import uvicorn

    uvicorn.run("usercrud.main:app", host="0.0.0.0", port=settings.HTTP_PORT)
