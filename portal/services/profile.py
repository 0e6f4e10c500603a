"""
申请人档案服务

profile_completion 为派生字段：每次档案、教育经历或文档变化后重新计算。
"""
from typing import Optional, List, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.exceptions import NotFoundException
from portal.crud import applicant_crud, education_crud
from portal.models.applicant import Applicant, Education
from portal.models.user import UserRole
from portal.schemas.applicant import (
    ApplicantUpdate,
    EducationCreate,
    WorkExperienceCreate,
    WorkExperienceUpdate,
)
from .policy import Action, Principal, ensure_access, ensure_role

# 基本信息字段，每项 25 分
BASIC_FIELDS = ("dob", "gender", "nationality", "bio")
BASIC_FIELD_POINTS = 25
EDUCATION_POINTS = 10
DOCUMENT_POINTS = 10
SKILL_POINTS = 5
LANGUAGE_POINTS = 5


def compute_profile_completion(
    applicant: Applicant,
    education_count: int,
    document_count: int,
) -> int:
    """
    计算档案完整度

    dob / gender / nationality / bio 每项 25 分，至少一条教育经历 +10，
    至少一份文档 +10，至少一项技能 +5，至少一门语言 +5，上限 100。
    """
    score = sum(BASIC_FIELD_POINTS for name in BASIC_FIELDS if getattr(applicant, name))
    if education_count > 0:
        score += EDUCATION_POINTS
    if document_count > 0:
        score += DOCUMENT_POINTS
    if applicant.skills:
        score += SKILL_POINTS
    if applicant.languages:
        score += LANGUAGE_POINTS
    return min(score, 100)


class ProfileService:
    """申请人档案操作"""

    async def recompute_completion(self, db: AsyncSession, applicant: Applicant) -> int:
        """重新计算并写回档案完整度"""
        await db.flush()
        await db.refresh(applicant)
        document_count = await applicant_crud.count_documents(db, applicant.id)
        applicant.profile_completion = compute_profile_completion(
            applicant, len(applicant.education), document_count
        )
        await applicant_crud.save(db, applicant)
        return applicant.profile_completion

    async def get_own(self, db: AsyncSession, principal: Principal) -> Applicant:
        """获取调用方自己的档案"""
        applicant = await applicant_crud.get_by_user_id(db, principal.id)
        if applicant is None:
            raise NotFoundException("申请人档案不存在")
        return applicant

    async def get(self, db: AsyncSession, principal: Principal, applicant_id: int) -> Applicant:
        applicant = await applicant_crud.get(db, applicant_id)
        if applicant is None:
            raise NotFoundException(f"申请人档案不存在: {applicant_id}")
        ensure_access(principal, applicant, Action.READ)
        return applicant

    async def search(
        self,
        db: AsyncSession,
        principal: Principal,
        **filters,
    ) -> Tuple[List[Applicant], int]:
        """员工 / 管理员按条件筛选档案"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await applicant_crud.search(db, **filters)

    async def create_for_user(self, db: AsyncSession, user_id: int) -> Applicant:
        """为新注册用户创建空档案"""
        applicant = await applicant_crud.create(db, obj_in={"user_id": user_id})
        logger.info(f"已创建申请人档案: applicant={applicant.id} user={user_id}")
        return applicant

    async def update(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        data: ApplicantUpdate,
    ) -> Applicant:
        ensure_access(principal, applicant, Action.WRITE)
        await applicant_crud.update(db, db_obj=applicant, obj_in=data)
        await self.recompute_completion(db, applicant)
        return applicant

    # ========== 技能 / 语言 ==========

    async def add_skill(self, db: AsyncSession, principal: Principal, applicant: Applicant, skill: str) -> Applicant:
        ensure_access(principal, applicant, Action.WRITE)
        applicant.add_skill(skill)
        await self.recompute_completion(db, applicant)
        return applicant

    async def remove_skill(self, db: AsyncSession, principal: Principal, applicant: Applicant, skill: str) -> Applicant:
        ensure_access(principal, applicant, Action.WRITE)
        if skill not in (applicant.skills or []):
            raise NotFoundException(f"技能不存在: {skill}")
        applicant.remove_skill(skill)
        await self.recompute_completion(db, applicant)
        return applicant

    async def set_language(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        language: str,
        proficiency: str,
    ) -> Applicant:
        ensure_access(principal, applicant, Action.WRITE)
        applicant.set_language(language, proficiency)
        await self.recompute_completion(db, applicant)
        return applicant

    async def remove_language(self, db: AsyncSession, principal: Principal, applicant: Applicant, language: str) -> Applicant:
        ensure_access(principal, applicant, Action.WRITE)
        if not any(item["language"] == language for item in (applicant.languages or [])):
            raise NotFoundException(f"语言不存在: {language}")
        applicant.remove_language(language)
        await self.recompute_completion(db, applicant)
        return applicant

    # ========== 工作经历 ==========

    async def add_work_experience(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        data: WorkExperienceCreate,
    ) -> dict:
        ensure_access(principal, applicant, Action.WRITE)
        entry = applicant.add_work_experience(data.model_dump(mode="json"))
        await applicant_crud.save(db, applicant)
        return entry

    async def update_work_experience(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        seq: int,
        data: WorkExperienceUpdate,
    ) -> dict:
        ensure_access(principal, applicant, Action.WRITE)
        entry = applicant.update_work_experience(seq, data.model_dump(mode="json", exclude_unset=True))
        if entry is None:
            raise NotFoundException(f"工作经历不存在: {seq}")
        await applicant_crud.save(db, applicant)
        return entry

    async def remove_work_experience(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        seq: int,
    ) -> None:
        ensure_access(principal, applicant, Action.WRITE)
        if not applicant.remove_work_experience(seq):
            raise NotFoundException(f"工作经历不存在: {seq}")
        await applicant_crud.save(db, applicant)

    # ========== 教育经历 ==========

    async def add_education(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        data: EducationCreate,
    ) -> Education:
        ensure_access(principal, applicant, Action.WRITE)
        education = await education_crud.create(
            db, obj_in={**data.model_dump(), "applicant_id": applicant.id}
        )
        await self.recompute_completion(db, applicant)
        return education

    async def remove_education(
        self,
        db: AsyncSession,
        principal: Principal,
        applicant: Applicant,
        education_id: int,
    ) -> None:
        ensure_access(principal, applicant, Action.WRITE)
        education = await education_crud.get_for_applicant(db, applicant.id, education_id)
        if education is None:
            raise NotFoundException(f"教育经历不存在: {education_id}")
        await education_crud.delete(db, id=education.id)
        await self.recompute_completion(db, applicant)


_profile_service: Optional[ProfileService] = None


def get_profile_service() -> ProfileService:
    """获取 ProfileService 单例实例"""
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService()
    return _profile_service
