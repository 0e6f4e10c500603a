"""
文档模型模块
"""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, utcnow

if TYPE_CHECKING:
    from .applicant import Applicant


class DocumentType(str, Enum):
    """文档类别"""
    CV = "CV"
    RESUME = "Resume"
    TRANSCRIPT = "Transcript"
    RECOMMENDATION = "Recommendation"
    COVER_LETTER = "Cover_Letter"
    PASSPORT = "Passport"
    ID_CARD = "ID_Card"
    BIRTH_CERTIFICATE = "Birth_Certificate"
    PORTFOLIO = "Portfolio"
    CERTIFICATES = "Certificates"
    RESEARCH_PAPERS = "Research_Papers"
    PUBLICATIONS = "Publications"
    OTHER = "Other"


def file_extension(filename: str) -> str:
    """小写扩展名，无扩展名时为空串"""
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


class Document(BaseModel):
    """
    文档元数据模型

    只记录文件元数据；文件本体由 FileStore 保存。
    """
    __tablename__ = "documents"
    __sequence_name__ = "document_id"
    resource_kind = "document"

    applicant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="申请人ID"
    )
    application_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("applications.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="申请ID"
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True, comment="文档类别")

    # ========== 文件元数据 ==========
    filename: Mapped[str] = mapped_column(String(255), nullable=False, comment="存储文件名")
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False, comment="原始文件名")
    filepath: Mapped[str] = mapped_column(String(500), nullable=False, comment="存储路径")
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, comment="文件大小(字节)")
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, comment="MIME 类型")
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="说明")
    extra: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False, comment="附加元数据")

    # ========== 审核状态 ==========
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True, comment="是否已审核")
    verified_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="审核人ID")
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="审核时间")
    verification_notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True, comment="审核备注")

    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="下载次数")
    last_downloaded: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="最后下载时间")

    applicant: Mapped["Applicant"] = relationship("Applicant", lazy="selectin")

    @property
    def owner_id(self) -> Optional[int]:
        """所属 Principal ID（继承自 Applicant）"""
        return self.applicant.user_id if self.applicant else None

    @property
    def file_extension(self) -> str:
        return file_extension(self.filename)

    @property
    def download_url(self) -> str:
        return f"/api/v1/documents/{self.id}/download"

    def verify(self, verifier_id: int, notes: str = "") -> None:
        """标记为已审核"""
        self.is_verified = True
        self.verified_by = verifier_id
        self.verified_at = utcnow()
        self.verification_notes = notes

    def unverify(self) -> None:
        """撤销审核"""
        self.is_verified = False
        self.verified_by = None
        self.verified_at = None
        self.verification_notes = None

    def mark_downloaded(self) -> None:
        self.download_count = (self.download_count or 0) + 1
        self.last_downloaded = utcnow()

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, type={self.type})>"
