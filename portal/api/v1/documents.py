"""
文档 API 路由
"""
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.deps import get_current_principal, page_window
from portal.core.database import get_db
from portal.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    MessageResponse,
    DictResponse,
)
from portal.models.document import DocumentType
from portal.schemas.document import DocumentMeta, DocumentResponse, DocumentUpdate, DocumentVerify
from portal.services.documents import get_document_service, read_upload
from portal.services.policy import Principal

router = APIRouter()


def _dump(document) -> dict:
    return DocumentResponse.model_validate(document).model_dump()


@router.post("/upload", summary="上传文档", response_model=ResponseModel[DocumentResponse], status_code=201)
async def upload_document(
    file: UploadFile = File(..., description="文档文件"),
    type: DocumentType = Form(DocumentType.OTHER, description="文档类别"),
    application_id: Optional[int] = Form(None, ge=1, description="关联申请ID"),
    description: Optional[str] = Form(None, max_length=500, description="说明"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    上传文档

    大小与扩展名按配置校验；可选关联到自己的某个申请。
    """
    meta = DocumentMeta(type=type, application_id=application_id, description=description)
    content = await read_upload(file)
    document = await get_document_service().upload(
        db,
        principal,
        content=content,
        filename=file.filename or "unnamed",
        mime_type=file.content_type,
        meta=meta,
    )
    return success_response(data=_dump(document), message="文档上传成功", code=201)


@router.get("/my/list", summary="获取我的文档", response_model=PagedResponseModel[DocumentResponse])
async def list_my_documents(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    type: Optional[DocumentType] = Query(None, description="类别筛选"),
    application_id: Optional[int] = Query(None, description="关联申请ID"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    documents, total = await get_document_service().list_own(
        db,
        principal,
        type=type.value if type else None,
        application_id=application_id,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return paged_response([_dump(d) for d in documents], total, page, page_size)


@router.get("", summary="获取文档列表（员工）", response_model=PagedResponseModel[DocumentResponse])
async def list_documents(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    applicant_id: Optional[int] = Query(None, description="申请人ID"),
    application_id: Optional[int] = Query(None, description="关联申请ID"),
    type: Optional[DocumentType] = Query(None, description="类别筛选"),
    is_verified: Optional[bool] = Query(None, description="是否已审核"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    documents, total = await get_document_service().list_admin(
        db,
        principal,
        applicant_id=applicant_id,
        application_id=application_id,
        type=type.value if type else None,
        is_verified=is_verified,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return paged_response([_dump(d) for d in documents], total, page, page_size)


@router.get("/stats/overview", summary="文档统计", response_model=DictResponse)
async def document_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=await get_document_service().stats(db, principal))


@router.get("/{document_id}", summary="获取文档详情", response_model=ResponseModel[DocumentResponse])
async def get_document(
    document_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document_service().get(db, principal, document_id)
    return success_response(data=_dump(document))


@router.get("/{document_id}/download", summary="下载文档")
async def download_document(
    document_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    document, content = await get_document_service().download(db, principal, document_id)
    return Response(
        content=content,
        media_type=document.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(document.original_filename)}",
        },
    )


@router.patch("/{document_id}", summary="更新文档信息", response_model=ResponseModel[DocumentResponse])
async def update_document(
    document_id: int,
    data: DocumentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document_service().update(db, principal, document_id, data)
    return success_response(data=_dump(document), message="文档已更新")


@router.post("/{document_id}/verify", summary="审核文档", response_model=ResponseModel[DocumentResponse])
async def verify_document(
    document_id: int,
    data: DocumentVerify,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document_service().verify(db, principal, document_id, data.notes)
    return success_response(data=_dump(document), message="文档已审核")


@router.post("/{document_id}/unverify", summary="撤销文档审核", response_model=ResponseModel[DocumentResponse])
async def unverify_document(
    document_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    document = await get_document_service().unverify(db, principal, document_id)
    return success_response(data=_dump(document), message="文档审核已撤销")


@router.delete("/{document_id}", summary="删除文档", response_model=MessageResponse)
async def delete_document(
    document_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await get_document_service().delete(db, principal, document_id)
    return success_response(message="文档已删除")
