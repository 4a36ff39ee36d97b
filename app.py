import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from auth import Authenticator
from config import AUTH_RATE_LIMIT, Settings
from errors import NotFound, TodoError, Unauthenticated
from schemas import (
    Account,
    Identity,
    LoginRequest,
    Message,
    Priority,
    RegisterRequest,
    Status,
    Task,
    TaskCreate,
    TaskPatch,
    TaskSummary,
    Token,
)
from storage import TaskRepository, UserRepository, build_repositories
from tasks import TaskService

logger = logging.getLogger(__name__)

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


# Dependencies

def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service


def get_users(request: Request) -> UserRepository:
    return request.app.state.users


async def get_current_identity(
    token: Optional[str] = Depends(oauth2_scheme),
    authenticator: Authenticator = Depends(get_authenticator),
) -> Identity:
    return authenticator.verify(token)


# Error handlers

async def todo_error_handler(request: Request, exc: TodoError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": exc.kind},
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())[1:])
        problems.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "; ".join(problems) or "Invalid input", "error": "InvalidInput"},
    )


# Authentication endpoints (routed per app, see build_auth_router)

async def register(
    request: Request,
    body: RegisterRequest,
    authenticator: Authenticator = Depends(get_authenticator),
):
    # bcrypt is CPU-bound; keep it off the event loop
    await run_in_threadpool(authenticator.register, body.name, body.email, body.password)
    return {"message": "User registered"}


async def login(
    request: Request,
    body: LoginRequest,
    authenticator: Authenticator = Depends(get_authenticator),
):
    token = await run_in_threadpool(authenticator.login, body.email, body.password)
    return {"token": token, "token_type": "bearer"}


def build_auth_router(limiter: Limiter) -> APIRouter:
    """Register and login, rate limited by ``limiter``."""
    auth_router = APIRouter()
    auth_router.add_api_route(
        "/register", limiter.limit(AUTH_RATE_LIMIT)(register), methods=["POST"], response_model=Message
    )
    auth_router.add_api_route(
        "/login", limiter.limit(AUTH_RATE_LIMIT)(login), methods=["POST"], response_model=Token
    )
    return auth_router


@router.get("/accounts", response_model=Account)
async def account(
    identity: Identity = Depends(get_current_identity),
    users: UserRepository = Depends(get_users),
):
    user = users.get(identity.user_id)
    if user is None:
        raise NotFound("User not found")
    return Account(id=user.id, name=user.name, email=user.email)


# Todo endpoints

@router.get("/todos", response_model=List[Task])
async def list_todos(
    status_filter: Optional[Status] = Query(None, alias="status"),
    priority: Optional[Priority] = None,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.list(identity, status=status_filter, priority=priority)


@router.get("/todos/summary", response_model=TaskSummary)
async def todo_summary(
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.summary(identity)


@router.post("/todos", response_model=Task)
async def create_todo(
    body: TaskCreate,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.create(identity, body.content, priority=body.priority, date=body.date)


@router.put("/todos/{task_id}", response_model=Task)
async def update_todo(
    task_id: str,
    patch: TaskPatch,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    return service.update(identity, task_id, patch)


@router.delete("/todos/{task_id}", response_model=Message)
async def delete_todo(
    task_id: str,
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    service.delete(identity, task_id)
    return {"message": "Todo deleted"}


@router.delete("/todos")
async def clear_todos(
    status_filter: Status = Query(..., alias="status"),
    identity: Identity = Depends(get_current_identity),
    service: TaskService = Depends(get_task_service),
):
    deleted = service.clear(identity, status_filter)
    return {"message": f"Deleted {deleted} todo(s)", "deleted": deleted}


@router.get("/health")
async def health():
    return {"status": "ok"}


def create_app(
    settings: Settings,
    users: Optional[UserRepository] = None,
    tasks: Optional[TaskRepository] = None,
    clock=None,
) -> FastAPI:
    if users is None or tasks is None:
        users, tasks = build_repositories(settings)

    app = FastAPI(title="Todo API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

    limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(TodoError, todo_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.state.settings = settings
    app.state.users = users
    app.state.authenticator = Authenticator.from_settings(settings, users, clock=clock)
    app.state.task_service = TaskService(tasks, users, clock=clock)

    app.include_router(build_auth_router(limiter), prefix=settings.api_prefix)
    app.include_router(router, prefix=settings.api_prefix)
    logger.info(
        "Todo API configured backend=%s prefix=%r rate_limit=%s",
        settings.storage_backend,
        settings.api_prefix,
        settings.rate_limit_enabled,
    )
    return app
