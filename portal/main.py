"""
应用工厂

create_app() 组装路由、异常处理与系统接口；模块级 app 供 uvicorn 加载。
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.routing import APIRoute
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from portal.core import database
from portal.core.config import settings
from portal.core.response import success_response, DictResponse, ErrorResponseModel
from portal.core.exceptions import (
    AppException,
    InfrastructureException,
    app_exception_handler,
    database_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from portal.api import api_router

API_VERSION = "1.0.0"


def operation_id(route: APIRoute) -> str:
    return route.name


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"门户服务启动: {settings.app_name} env={settings.app_env} debug={settings.debug}")
    await database.init_db()
    logger.info("业务库与计数器库已就绪")
    yield
    await database.close_db()
    logger.info("门户服务已停止")


def register_exception_handlers(app: FastAPI) -> None:
    """业务异常、框架异常与存储故障统一转为错误信封"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)


async def _ping(name: str, engine: AsyncEngine) -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning(f"{name} 不可用: {exc}")
        raise InfrastructureException(f"{name} 不可用") from exc


def register_system_routes(app: FastAPI) -> None:
    """存活、就绪与根路径"""

    @app.get("/health", tags=["系统"], response_model=DictResponse)
    async def health_check():
        return success_response(data={"status": "healthy"})

    @app.get(
        "/ready",
        tags=["系统"],
        response_model=DictResponse,
        responses={503: {"model": ErrorResponseModel}},
    )
    async def readiness_check():
        """
        就绪检查

        业务库和计数器库都能连通才返回 200；任一不可用返回 503，
        此时创建类接口无法分配 id。
        """
        await _ping("业务数据库", database.engine)
        await _ping("计数器数据库", database.sequence_engine)
        return success_response(data={"status": "ready", "database": "ok", "sequences": "ok"})

    @app.get("/", tags=["系统"], response_model=DictResponse)
    async def root():
        return success_response(data={
            "name": settings.app_name,
            "version": API_VERSION,
            "docs": "/docs" if settings.debug else None,
        })


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="招聘与奖学金申请门户 API",
        version=API_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        generate_unique_id_function=operation_id,
    )
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")
    register_system_routes(app)

    # 最后添加的中间件最先执行
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


app = create_app()
