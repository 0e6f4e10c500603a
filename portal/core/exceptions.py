"""
异常处理模块

定义业务异常和全局异常处理器

业务异常按 kind 分类，调用方据此渲染提示信息；核心层从不自动重试。
"""
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from loguru import logger
from sqlalchemy.exc import OperationalError

from .response import error_response


class AppException(Exception):
    """应用基础异常"""

    kind: str = "internal"

    def __init__(
        self,
        message: str = "服务器内部错误",
        code: int = 500,
        data: dict = None
    ):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(self.message)


class NotFoundException(AppException):
    """资源不存在异常"""

    kind = "not_found"

    def __init__(self, message: str = "资源不存在"):
        super().__init__(message=message, code=404)


class ConflictException(AppException):
    """资源冲突 / 非法状态转换异常"""

    kind = "conflict"

    def __init__(self, message: str = "资源已存在"):
        super().__init__(message=message, code=409)


class PreconditionFailedException(AppException):
    """前置条件不满足（进度不足、截止日期已过等）"""

    kind = "precondition_failed"

    def __init__(self, message: str = "前置条件不满足", data: dict = None):
        super().__init__(message=message, code=412, data=data)


class ForbiddenException(AppException):
    """无权访问异常"""

    kind = "forbidden"

    def __init__(self, message: str = "无权执行此操作"):
        super().__init__(message=message, code=403)


class UnauthorizedException(AppException):
    """未认证异常"""

    kind = "unauthorized"

    def __init__(self, message: str = "未登录或登录已失效"):
        super().__init__(message=message, code=401)


class ValidationFailedException(AppException):
    """输入校验失败异常"""

    kind = "validation_failed"

    def __init__(self, message: str = "请求参数错误", data: dict = None):
        super().__init__(message=message, code=422, data=data)


class InfrastructureException(AppException):
    """存储 / 序列号生成器不可用"""

    kind = "infrastructure"

    def __init__(self, message: str = "存储服务不可用"):
        super().__init__(message=message, code=503)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """应用异常处理器"""
    logger.warning(f"AppException[{exc.kind}]: {exc.message} | Path: {request.url.path}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.code == 401 else None
    return JSONResponse(
        status_code=exc.code,
        content=error_response(message=exc.message, code=exc.code, data=exc.data, kind=exc.kind),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP 异常处理器"""
    logger.warning(f"HTTPException: {exc.detail} | Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message=str(exc.detail), code=exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """请求验证异常处理器"""
    errors = exc.errors()
    error_messages = []
    for error in errors:
        loc = " -> ".join(str(l) for l in error["loc"])
        error_messages.append(f"{loc}: {error['msg']}")

    message = "; ".join(error_messages)
    logger.warning(f"ValidationError: {message} | Path: {request.url.path}")

    return JSONResponse(
        status_code=422,
        content=error_response(
            message="请求参数验证失败",
            code=422,
            data={"errors": jsonable_encoder(errors)},
            kind=ValidationFailedException.kind,
        )
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理器"""
    logger.exception(f"Unhandled Exception: {exc} | Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_response(message="服务器内部错误", code=500, kind=AppException.kind)
    )


async def database_exception_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """数据库不可用时返回 503，不暴露底层错误"""
    logger.error(f"DatabaseError: {exc} | Path: {request.url.path}")
    unavailable = InfrastructureException("数据库暂时不可用")
    return JSONResponse(
        status_code=unavailable.code,
        content=error_response(message=unavailable.message, code=unavailable.code, kind=unavailable.kind)
    )
