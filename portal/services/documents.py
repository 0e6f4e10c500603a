"""
文档服务

只负责元数据：大小与扩展名在创建时按配置校验，文件本体交给 FileStore。
"""
from typing import Optional, List, Tuple

from fastapi import UploadFile
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.exceptions import ForbiddenException, NotFoundException, ValidationFailedException
from portal.core.storage import LocalFileStore, file_store
from portal.crud import applicant_crud, application_crud, document_crud
from portal.models.document import Document, file_extension
from portal.models.user import UserRole
from portal.schemas.document import DocumentMeta, DocumentUpdate
from .policy import Action, Principal, ensure_access, ensure_role
from .profile import get_profile_service


READ_CHUNK_SIZE = 64 * 1024


async def read_upload(file: UploadFile, limit: Optional[int] = None) -> bytes:
    """
    分块读取上传内容

    最多读取 limit + 1 字节（默认 limit 为 max_file_size），
    多出的 1 字节足以让 validate_upload 判定超限，剩余部分不会进入内存。
    """
    limit = settings.max_file_size if limit is None else limit
    remaining = limit + 1
    chunks: List[bytes] = []
    while remaining > 0:
        chunk = await file.read(min(READ_CHUNK_SIZE, remaining))
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def validate_upload(filename: str, size: int) -> str:
    """校验文件大小与扩展名，返回小写扩展名"""
    if size <= 0:
        raise ValidationFailedException("文件内容为空", data={"filename": filename})
    if size > settings.max_file_size:
        raise ValidationFailedException(
            f"文件大小超过限制 ({settings.max_file_size} 字节)",
            data={"filename": filename, "size": size, "max_size": settings.max_file_size},
        )
    extension = file_extension(filename)
    if extension not in settings.allowed_file_types:
        raise ValidationFailedException(
            f"不支持的文件类型: {extension or '无扩展名'}",
            data={"filename": filename, "allowed": settings.allowed_file_types},
        )
    return extension


class DocumentService:
    """文档操作"""

    def __init__(self, store: LocalFileStore = file_store):
        self.store = store

    async def _load(self, db: AsyncSession, document_id: int) -> Document:
        document = await document_crud.get(db, document_id)
        if document is None:
            raise NotFoundException(f"文档不存在: {document_id}")
        return document

    async def upload(
        self,
        db: AsyncSession,
        principal: Principal,
        *,
        content: bytes,
        filename: str,
        mime_type: Optional[str],
        meta: DocumentMeta,
    ) -> Document:
        """上传文档（仅申请人，归属其档案）"""
        ensure_role(principal, UserRole.APPLICANT)
        applicant = await applicant_crud.get_by_user_id(db, principal.id)
        if applicant is None:
            raise NotFoundException("申请人档案不存在")

        validate_upload(filename, len(content))

        if meta.application_id is not None:
            application = await application_crud.get(db, meta.application_id)
            if application is None:
                raise NotFoundException(f"申请不存在: {meta.application_id}")
            if application.applicant_id != applicant.id:
                raise ForbiddenException("不能把文档关联到他人的申请")

        stored_path = self.store.save(content, filename)
        try:
            document = await document_crud.create(db, obj_in={
                "applicant_id": applicant.id,
                "application_id": meta.application_id,
                "type": meta.type,
                "filename": stored_path,
                "original_filename": filename,
                "filepath": stored_path,
                "file_size": len(content),
                "mime_type": mime_type or "application/octet-stream",
                "description": meta.description,
            })
            await get_profile_service().recompute_completion(db, applicant)
        except Exception:
            self.store.delete(stored_path)
            raise

        logger.info(f"文档已上传: document={document.id} applicant={applicant.id} size={len(content)}")
        return document

    async def get(self, db: AsyncSession, principal: Principal, document_id: int) -> Document:
        document = await self._load(db, document_id)
        ensure_access(principal, document, Action.READ)
        return document

    async def download(self, db: AsyncSession, principal: Principal, document_id: int) -> Tuple[Document, bytes]:
        document = await self.get(db, principal, document_id)
        content = self.store.read(document.filepath)
        document.mark_downloaded()
        await document_crud.save(db, document)
        return document, content

    async def update(
        self,
        db: AsyncSession,
        principal: Principal,
        document_id: int,
        data: DocumentUpdate,
    ) -> Document:
        document = await self._load(db, document_id)
        ensure_access(principal, document, Action.WRITE)
        return await document_crud.update(db, db_obj=document, obj_in=data)

    async def verify(
        self,
        db: AsyncSession,
        principal: Principal,
        document_id: int,
        notes: str = "",
    ) -> Document:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        document = await self._load(db, document_id)
        ensure_access(principal, document, Action.WRITE)
        document.verify(principal.id, notes)
        await document_crud.save(db, document)
        logger.info(f"文档已审核: document={document.id} by={principal.id}")
        return document

    async def unverify(self, db: AsyncSession, principal: Principal, document_id: int) -> Document:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        document = await self._load(db, document_id)
        ensure_access(principal, document, Action.WRITE)
        document.unverify()
        await document_crud.save(db, document)
        logger.info(f"文档审核已撤销: document={document.id} by={principal.id}")
        return document

    async def delete(self, db: AsyncSession, principal: Principal, document_id: int) -> None:
        document = await self._load(db, document_id)
        ensure_access(principal, document, Action.DELETE)

        applicant = document.applicant
        filepath = document.filepath
        await document_crud.delete(db, id=document.id)
        if applicant is not None:
            await get_profile_service().recompute_completion(db, applicant)

        if not self.store.delete(filepath):
            logger.warning(f"文档文件已不存在: {filepath}")
        logger.info(f"文档已删除: document={document_id} by={principal.id}")

    async def list_own(
        self,
        db: AsyncSession,
        principal: Principal,
        **filters,
    ) -> Tuple[List[Document], int]:
        ensure_role(principal, UserRole.APPLICANT)
        applicant = await applicant_crud.get_by_user_id(db, principal.id)
        if applicant is None:
            raise NotFoundException("申请人档案不存在")
        return await document_crud.search(db, applicant_id=applicant.id, **filters)

    async def list_admin(
        self,
        db: AsyncSession,
        principal: Principal,
        **filters,
    ) -> Tuple[List[Document], int]:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await document_crud.search(db, **filters)

    async def stats(self, db: AsyncSession, principal: Principal) -> dict:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await document_crud.get_stats(db)


_document_service: Optional[DocumentService] = None


def get_document_service() -> DocumentService:
    """获取 DocumentService 单例实例"""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
