"""
响应信封

成功: {"success": true, "code", "message", "data"}
失败: 额外带 "kind"，取值见 portal.core.exceptions 中各异常类
"""
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_SUCCESS_MESSAGE = "操作成功"


class ResponseModel(BaseModel, Generic[T]):
    """成功信封，data 的类型由路由声明"""
    success: bool = True
    code: int = 200
    message: str = DEFAULT_SUCCESS_MESSAGE
    data: Optional[T] = None


class ErrorResponseModel(BaseModel):
    """错误信封（写入 OpenAPI 的错误响应说明）"""
    success: bool = False
    code: int
    kind: Optional[str] = None
    message: str
    data: Optional[Any] = None


class PagedData(BaseModel, Generic[T]):
    items: list[T]
    total: int
    page: int
    page_size: int
    pages: int


class PagedResponseModel(ResponseModel[PagedData[T]], Generic[T]):
    pass


class MessageResponse(ResponseModel[None]):
    """只有提示信息，没有 data"""
    pass


class DictResponse(ResponseModel[dict]):
    pass


def page_count(total: int, page_size: int) -> int:
    """总页数；page_size 非正时为 0"""
    if page_size <= 0:
        return 0
    return (total + page_size - 1) // page_size


def success_response(data: Any = None, message: str = DEFAULT_SUCCESS_MESSAGE, code: int = 200) -> dict:
    return {"success": True, "code": code, "message": message, "data": data}


def error_response(
    message: str = "操作失败",
    code: int = 400,
    data: Any = None,
    kind: Optional[str] = None,
) -> dict:
    """错误信封；kind 为空表示框架层错误（如 405）"""
    return ErrorResponseModel(code=code, kind=kind, message=message, data=data).model_dump()


def paged_response(items: list, total: int, page: int, page_size: int, message: str = "查询成功") -> dict:
    """列表接口的分页信封"""
    data = {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": page_count(total, page_size),
    }
    return success_response(data=data, message=message)
