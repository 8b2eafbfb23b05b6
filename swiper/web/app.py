"""FastAPI backend Base Swiper: выдача токенов, поиск, статистика и ручное обновление."""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlmodel.ext.asyncio.session import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import get_settings
from swiper import repositories as repo
from swiper.context import AppContext, build_context
from swiper.db import ping
from swiper.loader import on_shutdown, on_startup
from swiper.web.rate_limit import RateLimitExceeded, rate_limit

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
MIN_SEARCH_LENGTH = 2
MAX_PAGE = 100_000


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_db_session(context: AppContext = Depends(get_context)) -> AsyncIterator[AsyncSession]:
    async with context.session_maker() as session:
        yield session


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure_list_type(context: AppContext, list_type: str) -> str:
    if list_type not in context.settings.refresh.list_types:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid list type")
    return list_type


router = APIRouter(prefix="/api/tokens", dependencies=[Depends(rate_limit("api"))])


@router.get("/featured")
async def list_featured_tokens(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(20, ge=1, le=100),
    context: AppContext = Depends(get_context),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    return await _paginated(session, context.refresh_job.list_type, page, limit)


@router.get("/list/{list_type}")
async def list_tokens(
    list_type: str,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(20, ge=1, le=100),
    context: AppContext = Depends(get_context),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    _ensure_list_type(context, list_type)
    return await _paginated(session, list_type, page, limit)


async def _paginated(session: AsyncSession, list_type: str, page: int, limit: int) -> dict:
    result = await repo.get_tokens_by_list_type(session, list_type, page, limit)
    return {
        "success": True,
        "data": [token.as_dict() for token in result.tokens],
        "pagination": result.pagination.as_dict(),
        "listType": list_type,
    }


@router.get("/address/{address}")
async def get_token_by_address(
    address: str,
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    if not ADDRESS_RE.match(address):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid address format")
    token = await repo.get_token_by_address(session, address)
    if token is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token not found")
    return {"success": True, "data": token.as_dict()}


@router.get("/search", dependencies=[Depends(rate_limit("search"))])
async def search_tokens(
    q: str | None = Query(None),
    list_type: str | None = Query(None, alias="listType"),
    limit: int = Query(20, ge=1, le=100),
    context: AppContext = Depends(get_context),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    query = (q or "").strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Search query must be at least 2 characters long",
        )
    if list_type:
        _ensure_list_type(context, list_type)
    tokens = await repo.search_tokens(session, query, list_type, limit)
    return {
        "success": True,
        "data": [token.as_dict() for token in tokens],
        "query": query,
        "listType": list_type or "all",
        "count": len(tokens),
    }


@router.get("/top/{list_type}")
async def top_tokens(
    list_type: str,
    limit: int = Query(10, ge=1, le=100),
    context: AppContext = Depends(get_context),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    _ensure_list_type(context, list_type)
    tokens = await repo.get_top_tokens_by_market_cap(session, list_type, limit)
    return {
        "success": True,
        "data": [token.as_dict() for token in tokens],
        "listType": list_type,
        "count": len(tokens),
    }


@router.get("/trending/{list_type}")
async def trending_tokens(
    list_type: str,
    limit: int = Query(10, ge=1, le=100),
    context: AppContext = Depends(get_context),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    _ensure_list_type(context, list_type)
    tokens = await repo.get_trending_tokens(session, list_type, limit)
    return {
        "success": True,
        "data": [token.as_dict() for token in tokens],
        "listType": list_type,
        "count": len(tokens),
    }


@router.get("/stats")
async def token_stats(session: AsyncSession = Depends(get_db_session)) -> dict:
    stats = await repo.get_stats(session)
    return {"success": True, "data": stats.as_dict()}


@router.get("/health")
async def tokens_health(session: AsyncSession = Depends(get_db_session)) -> dict:
    stats = await repo.get_stats(session)
    return {
        "success": True,
        "message": "API is healthy",
        "timestamp": _now_iso(),
        "stats": {
            "totalTokens": stats.total_tokens,
            "lastUpdated": stats.last_updated.isoformat(),
        },
    }


@router.post("/refresh", dependencies=[Depends(rate_limit("refresh"))])
async def refresh_tokens(
    list_type: str | None = Query(None, alias="listType"),
    context: AppContext = Depends(get_context),
) -> JSONResponse:
    """Ручной запуск цикла обновления (через тот же cooldown, что и таймер)."""

    job = context.refresh_job
    target = list_type or job.list_type
    if list_type:
        _ensure_list_type(context, list_type)
    logger.info("Ручное обновление {list_type} токенов", list_type=target)
    try:
        if list_type:
            result = await job.refresh_list_type(list_type)
        else:
            result = await job.force_refresh()
    except Exception as exc:  # noqa: BLE001
        logger.error("Ручное обновление {list_type} упало: {error}", list_type=target, error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": f"Failed to refresh {target} tokens",
                "error": str(exc),
            },
        )
    if result is None:
        return JSONResponse(
            content={
                "success": True,
                "message": f"Refresh skipped, last run started less than {int(job.cooldown.total_seconds())}s ago",
                "skipped": True,
                "data": None,
            }
        )
    return JSONResponse(
        content={
            "success": True,
            "message": f"Successfully refreshed {target} tokens",
            "skipped": False,
            "data": result.as_dict(),
        }
    )


def create_app(context: AppContext | None = None, *, manage_lifecycle: bool = True) -> FastAPI:
    """Собирает FastAPI приложение поверх готового контекста сервисов."""

    if context is None:
        context = build_context(get_settings())
    settings = context.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_lifecycle:
            await on_startup(context)
        try:
            yield
        finally:
            if manage_lifecycle:
                await on_shutdown(context)

    app = FastAPI(title="Base Swiper API", version=settings.server.version, lifespan=lifespan)
    app.state.context = context

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.server.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)

    @app.get("/")
    async def root() -> dict:
        return {
            "success": True,
            "message": "Base Swiper API",
            "version": settings.server.version,
            "endpoints": {
                "health": "/health",
                "tokens": "/api/tokens",
            },
        }

    @app.get("/health")
    async def health(request: Request) -> dict:
        ctx: AppContext = request.app.state.context
        return {
            "success": True,
            "message": "Base Swiper API is healthy",
            "timestamp": _now_iso(),
            "version": settings.server.version,
            "database": await ping(ctx.engine),
            "dataRefresh": ctx.refresh_job.get_status().as_dict(),
        }

    app.include_router(router)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            content = {"success": False, "message": "Endpoint not found", "path": request.url.path}
        else:
            content = {"success": False, "message": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "message": "Invalid request parameters",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "success": False,
                "message": exc.rule.message,
                "retryAfter": exc.retry_after,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Необработанная ошибка {path}: {error}", path=request.url.path, error=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "Internal server error",
                "error": str(exc),
            },
        )


__all__ = ["create_app", "get_context", "get_db_session", "router"]
