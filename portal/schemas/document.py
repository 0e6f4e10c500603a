"""
文档相关 Schema
"""
from typing import Optional
from datetime import datetime
from pydantic import Field

from portal.models.document import DocumentType
from .base import BaseSchema, TimestampSchema


class DocumentMeta(BaseSchema):
    """上传时随文件提交的元数据"""

    type: DocumentType = DocumentType.OTHER
    application_id: Optional[int] = Field(None, ge=1)
    description: Optional[str] = Field(None, max_length=500)


class DocumentUpdate(BaseSchema):
    type: Optional[DocumentType] = None
    description: Optional[str] = Field(None, max_length=500)


class DocumentVerify(BaseSchema):
    notes: str = Field("", max_length=500)


class DocumentResponse(TimestampSchema):
    """文档响应"""

    applicant_id: int
    application_id: Optional[int]
    type: DocumentType
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    file_extension: str
    description: Optional[str]
    is_verified: bool
    verified_by: Optional[int]
    verified_at: Optional[datetime]
    verification_notes: Optional[str]
    download_count: int
    download_url: str
