"""
申请人档案 API 路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
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
from portal.models.applicant import Applicant
from portal.schemas.applicant import (
    ApplicantListResponse,
    ApplicantResponse,
    ApplicantUpdate,
    EducationCreate,
    EducationResponse,
    LanguageRequest,
    SkillRequest,
    WorkExperienceCreate,
    WorkExperienceUpdate,
)
from portal.services.policy import Principal
from portal.services.profile import get_profile_service

router = APIRouter()


def _dump(applicant: Applicant) -> dict:
    return ApplicantResponse.model_validate(applicant).model_dump()


@router.get("", summary="获取申请人列表", response_model=PagedResponseModel[ApplicantListResponse])
async def list_applicants(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    nationality: Optional[str] = Query(None, description="国籍筛选"),
    min_completion: Optional[int] = Query(None, ge=0, le=100, description="最低档案完整度"),
    skill: Optional[str] = Query(None, description="技能筛选"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    applicants, total = await get_profile_service().search(
        db,
        principal,
        nationality=nationality,
        min_completion=min_completion,
        skill=skill,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    items = [ApplicantListResponse.model_validate(a).model_dump() for a in applicants]
    return paged_response(items, total, page, page_size)


# ========== 当前申请人 ==========

@router.get("/me", summary="获取我的档案", response_model=ResponseModel[ApplicantResponse])
async def get_my_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    applicant = await get_profile_service().get_own(db, principal)
    return success_response(data=_dump(applicant))


@router.patch("/me", summary="更新我的档案", response_model=ResponseModel[ApplicantResponse])
async def update_my_profile(
    data: ApplicantUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.update(db, principal, applicant, data)
    return success_response(data=_dump(applicant), message="档案已更新")


@router.post("/me/skills", summary="添加技能", response_model=ResponseModel[ApplicantResponse])
async def add_skill(
    data: SkillRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.add_skill(db, principal, applicant, data.skill)
    return success_response(data=_dump(applicant), message="技能已添加")


@router.delete("/me/skills/{skill}", summary="移除技能", response_model=ResponseModel[ApplicantResponse])
async def remove_skill(
    skill: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.remove_skill(db, principal, applicant, skill)
    return success_response(data=_dump(applicant), message="技能已移除")


@router.put("/me/languages", summary="添加或更新语言", response_model=ResponseModel[ApplicantResponse])
async def set_language(
    data: LanguageRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.set_language(db, principal, applicant, data.language, data.proficiency)
    return success_response(data=_dump(applicant), message="语言已更新")


@router.delete("/me/languages/{language}", summary="移除语言", response_model=ResponseModel[ApplicantResponse])
async def remove_language(
    language: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.remove_language(db, principal, applicant, language)
    return success_response(data=_dump(applicant), message="语言已移除")


@router.post("/me/work-experience", summary="添加工作经历", response_model=DictResponse, status_code=201)
async def add_work_experience(
    data: WorkExperienceCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    entry = await service.add_work_experience(db, principal, applicant, data)
    return success_response(data=entry, message="工作经历已添加", code=201)


@router.patch("/me/work-experience/{seq}", summary="更新工作经历", response_model=DictResponse)
async def update_work_experience(
    seq: int,
    data: WorkExperienceUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    entry = await service.update_work_experience(db, principal, applicant, seq, data)
    return success_response(data=entry, message="工作经历已更新")


@router.delete("/me/work-experience/{seq}", summary="删除工作经历", response_model=MessageResponse)
async def remove_work_experience(
    seq: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.remove_work_experience(db, principal, applicant, seq)
    return success_response(message="工作经历已删除")


@router.post("/me/education", summary="添加教育经历", response_model=ResponseModel[EducationResponse], status_code=201)
async def add_education(
    data: EducationCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    education = await service.add_education(db, principal, applicant, data)
    return success_response(
        data=EducationResponse.model_validate(education).model_dump(),
        message="教育经历已添加",
        code=201,
    )


@router.delete("/me/education/{education_id}", summary="删除教育经历", response_model=MessageResponse)
async def remove_education(
    education_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get_own(db, principal)
    await service.remove_education(db, principal, applicant, education_id)
    return success_response(message="教育经历已删除")


# ========== 按 ID 访问 ==========

@router.get("/{applicant_id}", summary="获取申请人档案", response_model=ResponseModel[ApplicantResponse])
async def get_applicant(
    applicant_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    applicant = await get_profile_service().get(db, principal, applicant_id)
    return success_response(data=_dump(applicant))


@router.patch("/{applicant_id}", summary="更新申请人档案", response_model=ResponseModel[ApplicantResponse])
async def update_applicant(
    applicant_id: int,
    data: ApplicantUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = get_profile_service()
    applicant = await service.get(db, principal, applicant_id)
    await service.update(db, principal, applicant, data)
    return success_response(data=_dump(applicant), message="档案已更新")
