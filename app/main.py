from fastapi.middleware.cors import CORSMiddleware
from app.routers.teams import router as team_router
from app.routers.members import router as member_router
from app.routers.invite import router as invite_router
from app.routers.items import router as item_router
from app.routers.entities import router as entity_router
from app.routers.tags import router as tag_router
from app.routers.categories import router as category_router

from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from fastapi.exceptions import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager
import logging

from sqlmodel import Session

from .config import CORS_ORIGINS, DEFAULT_CATEGORIES, LOG_LEVEL
from .database import engine, init_db
from .errors import AppError, InfrastructureError
from .services.categories import seed_categories
from .services.context import apply_active_team_cookie

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

# Logger
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and seed categories on startup."""
    init_db()
    with Session(engine) as session:
        seed_categories(DEFAULT_CATEGORIES, session)
    logger.info("Database ready")

    yield


# App instance
app = FastAPI(lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    response = JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
    apply_active_team_cookie(request, response)
    return response


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    error = InfrastructureError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Custom HTTP exception handler
@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTPException on {request.url}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

# API routers
prefix = "/api"

app.include_router(team_router, prefix=prefix)
app.include_router(member_router, prefix=prefix)
app.include_router(invite_router, prefix=prefix)
app.include_router(item_router, prefix=prefix)
app.include_router(entity_router, prefix=prefix)
app.include_router(tag_router, prefix=prefix)
app.include_router(category_router, prefix=prefix)
