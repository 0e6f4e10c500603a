"""
申请人档案模型模块
"""
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from sqlalchemy import Date, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import flag_modified

from .base import BaseModel

if TYPE_CHECKING:
    from .user import User


class Gender(str, Enum):
    """性别枚举"""
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class Proficiency(str, Enum):
    """语言熟练度枚举"""
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    NATIVE = "Native"


class Applicant(BaseModel):
    """
    申请人档案模型

    与 User 一对一；profile_completion 为派生字段，每次保存时重新计算。

    work_experience JSON 格式示例:
    [
        {
            "seq": 1,
            "company": "ACME",
            "position": "Engineer",
            "start_date": "2020-01-01",
            "end_date": null,
            "current": true,
            "description": "..."
        }
    ]
    """
    __tablename__ = "applicants"
    __sequence_name__ = "applicant_id"
    resource_kind = "applicant"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
        comment="用户ID"
    )

    # ========== 基本信息 ==========
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="出生日期")
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, comment="性别")
    nationality: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, comment="国籍")
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="个人简介")

    # ========== 技能与经历 ==========
    skills: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="技能")
    languages: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="语言能力")
    work_experience: Mapped[list] = mapped_column(JSON, default=list, nullable=False, comment="工作经历")
    additional_info: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False, comment="附加信息")

    # ========== 派生字段 ==========
    profile_completion: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False, index=True, comment="档案完整度"
    )

    # ========== 关联关系 ==========
    user: Mapped["User"] = relationship("User", back_populates="applicant_profile")
    education: Mapped[List["Education"]] = relationship(
        "Education",
        back_populates="applicant",
        lazy="selectin",
        order_by="Education.id",
    )

    @property
    def owner_id(self) -> int:
        """所属 Principal ID"""
        return self.user_id

    @property
    def age(self) -> Optional[int]:
        """年龄"""
        if not self.dob:
            return None
        today = date.today()
        years = today.year - self.dob.year
        if (today.month, today.day) < (self.dob.month, self.dob.day):
            years -= 1
        return years

    # ========== 技能 ==========

    def add_skill(self, skill: str) -> None:
        """添加技能（已存在则忽略）"""
        skills = list(self.skills or [])
        if skill not in skills:
            skills.append(skill)
        self.skills = skills
        flag_modified(self, "skills")

    def remove_skill(self, skill: str) -> None:
        """移除技能"""
        self.skills = [s for s in (self.skills or []) if s != skill]
        flag_modified(self, "skills")

    # ========== 语言 ==========

    def set_language(self, language: str, proficiency: str) -> None:
        """添加语言或更新熟练度"""
        languages = [dict(item) for item in (self.languages or [])]
        for item in languages:
            if item["language"] == language:
                item["proficiency"] = proficiency
                break
        else:
            languages.append({"language": language, "proficiency": proficiency})
        self.languages = languages
        flag_modified(self, "languages")

    def remove_language(self, language: str) -> None:
        """移除语言"""
        self.languages = [l for l in (self.languages or []) if l["language"] != language]
        flag_modified(self, "languages")

    # ========== 工作经历 ==========

    def add_work_experience(self, experience: dict) -> dict:
        """追加工作经历，分配稳定的 seq"""
        entries = list(self.work_experience or [])
        next_seq = max((e["seq"] for e in entries), default=0) + 1
        entry = {"seq": next_seq, **experience}
        entries.append(entry)
        self.work_experience = entries
        flag_modified(self, "work_experience")
        return entry

    def update_work_experience(self, seq: int, updates: dict) -> Optional[dict]:
        """按 seq 更新工作经历，不存在返回 None"""
        entries = [dict(e) for e in (self.work_experience or [])]
        for entry in entries:
            if entry["seq"] == seq:
                entry.update(updates)
                self.work_experience = entries
                flag_modified(self, "work_experience")
                return entry
        return None

    def remove_work_experience(self, seq: int) -> bool:
        """按 seq 删除工作经历"""
        entries = list(self.work_experience or [])
        remaining = [e for e in entries if e["seq"] != seq]
        if len(remaining) == len(entries):
            return False
        self.work_experience = remaining
        flag_modified(self, "work_experience")
        return True

    def __repr__(self) -> str:
        return f"<Applicant(id={self.id}, user_id={self.user_id})>"


class Education(BaseModel):
    """教育经历模型"""
    __tablename__ = "education"
    __sequence_name__ = "education_id"

    applicant_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("applicants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="申请人ID"
    )
    institution: Mapped[str] = mapped_column(String(150), nullable=False, comment="院校")
    degree: Mapped[str] = mapped_column(String(100), nullable=False, comment="学位")
    field_of_study: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="专业")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="开始日期")
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, comment="结束日期")
    gpa: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="GPA")

    applicant: Mapped["Applicant"] = relationship("Applicant", back_populates="education")

    def __repr__(self) -> str:
        return f"<Education(id={self.id}, applicant_id={self.applicant_id})>"
