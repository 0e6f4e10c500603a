"""
站内消息 API 路由
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.deps import get_current_principal, page_window
from portal.core.database import get_db
from portal.core.response import (
    page_count,
    success_response,
    ResponseModel,
    MessageResponse,
    DictResponse,
)
from portal.schemas.message import ChatMessageResponse, ConversationSummary, MessageSend
from portal.services.chat import get_chat_service, participant_info
from portal.services.policy import Principal

router = APIRouter()


def _dump(message) -> dict:
    return ChatMessageResponse.model_validate(message).model_dump()


@router.get("/conversations", summary="获取会话列表", response_model=ResponseModel[list[ConversationSummary]])
async def list_conversations(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """每个对话对象一行，包含最后一条消息和未读数，最近的在前"""
    rows = await get_chat_service().conversations(db, principal)
    data = [
        ConversationSummary.model_validate({**row, "last_message": _dump(row["last_message"])}).model_dump()
        for row in rows
    ]
    return success_response(data=data)


@router.get("/conversation/{user_id}", summary="获取与某用户的对话", response_model=DictResponse)
async def get_conversation(
    user_id: int,
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(50, ge=1, le=100, description="每页数量"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    返回当前页消息（按时间正序）与对方信息

    对方发来的未读消息同时标记为已读。
    """
    messages, total, other = await get_chat_service().conversation(
        db,
        principal,
        user_id,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return success_response(data={
        "messages": [_dump(m) for m in messages],
        "other_user": participant_info(other),
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": page_count(total, page_size),
    })


@router.post("/send", summary="发送消息", response_model=ResponseModel[ChatMessageResponse], status_code=201)
async def send_message(
    data: MessageSend,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    message = await get_chat_service().send(db, principal, data)
    return success_response(data=_dump(message), message="消息发送成功", code=201)


@router.get("/unread-count", summary="获取未读消息数", response_model=DictResponse)
async def unread_count(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    count = await get_chat_service().unread_count(db, principal)
    return success_response(data={"unread_count": count})


@router.get("/search", summary="搜索消息", response_model=ResponseModel[list[ChatMessageResponse]])
async def search_messages(
    q: str = Query(..., description="搜索词（至少 2 个字符）"),
    limit: int = Query(20, ge=1, le=100, description="最多返回条数"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    messages = await get_chat_service().search(db, principal, q, limit=limit)
    return success_response(data=[_dump(m) for m in messages])


@router.get("/stats/overview", summary="消息统计", response_model=DictResponse)
async def chat_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=await get_chat_service().stats(db, principal))


@router.put("/{message_id}/read", summary="标记消息已读", response_model=ResponseModel[ChatMessageResponse])
async def mark_message_read(
    message_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    message = await get_chat_service().mark_read(db, principal, message_id)
    return success_response(data=_dump(message), message="已标记为已读")


@router.delete("/{message_id}", summary="删除消息", response_model=MessageResponse)
async def delete_message(
    message_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await get_chat_service().delete(db, principal, message_id)
    return success_response(message="消息已删除")
