"""
申请 API 路由
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
    DictResponse,
)
from portal.models.application import Application, ApplicationStatus, ApplicationType
from portal.schemas.application import (
    ApplicationContentUpdate,
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    ApplicationStatusUpdate,
    InterviewSchedule,
    PaymentUpdate,
    ReviewNoteCreate,
)
from portal.services.lifecycle import get_lifecycle_service
from portal.services.policy import Principal

router = APIRouter()


async def _detail(db: AsyncSession, application: Application) -> dict:
    response = ApplicationResponse.model_validate(application)
    response.listing_name = await get_lifecycle_service().listing_name(db, application)
    return response.model_dump()


async def _items(db: AsyncSession, applications) -> list:
    service = get_lifecycle_service()
    items = []
    for app in applications:
        item = ApplicationListResponse.model_validate(app)
        item.listing_name = await service.listing_name(db, app)
        items.append(item.model_dump())
    return items


@router.get("", summary="获取申请列表（员工）", response_model=PagedResponseModel[ApplicationListResponse])
async def list_applications(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    status: Optional[ApplicationStatus] = Query(None, description="状态筛选"),
    type: Optional[ApplicationType] = Query(None, description="类型筛选"),
    job_id: Optional[int] = Query(None, description="招聘岗位ID"),
    scholarship_id: Optional[int] = Query(None, description="奖学金项目ID"),
    applicant_id: Optional[int] = Query(None, description="申请人ID"),
    min_progress: Optional[int] = Query(None, ge=0, le=100, description="最低完成度"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    applications, total = await get_lifecycle_service().list_admin(
        db,
        principal,
        status=status.value if status else None,
        type=type.value if type else None,
        job_id=job_id,
        scholarship_id=scholarship_id,
        applicant_id=applicant_id,
        min_progress=min_progress,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return paged_response(await _items(db, applications), total, page, page_size)


@router.get("/my/list", summary="获取我的申请", response_model=PagedResponseModel[ApplicationListResponse])
async def list_my_applications(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    status: Optional[ApplicationStatus] = Query(None, description="状态筛选"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    applications, total = await get_lifecycle_service().list_for_applicant(
        db,
        principal,
        status=status.value if status else None,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return paged_response(await _items(db, applications), total, page, page_size)


@router.get("/stats/overview", summary="申请统计", response_model=DictResponse)
async def application_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    stats = await get_lifecycle_service().stats(db, principal)
    return success_response(data=stats)


@router.get("/pending/list", summary="待处理申请", response_model=ResponseModel[list[ApplicationListResponse]])
async def list_pending(
    limit: int = Query(20, ge=1, le=100, description="数量"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    applications = await get_lifecycle_service().list_pending(db, principal, limit=limit)
    return success_response(data=await _items(db, applications))


@router.post("", summary="创建申请", response_model=ResponseModel[ApplicationResponse], status_code=201)
async def create_application(
    data: ApplicationCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """job_id 与 scholarship_id 必须且只能提供一个，与 type 对应"""
    application = await get_lifecycle_service().create_application(db, principal, data)
    return success_response(data=await _detail(db, application), message="申请创建成功", code=201)


@router.get("/{application_id}", summary="获取申请详情", response_model=ResponseModel[ApplicationResponse])
async def get_application(
    application_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().get_application(db, principal, application_id)
    return success_response(data=await _detail(db, application))


@router.patch("/{application_id}", summary="更新申请内容", response_model=ResponseModel[ApplicationResponse])
async def update_application(
    application_id: int,
    data: ApplicationContentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """各分节按键合并，完成度自动重新计算"""
    application = await get_lifecycle_service().update_content(db, principal, application_id, data)
    return success_response(data=await _detail(db, application), message="申请已保存")


@router.post("/{application_id}/submit", summary="提交申请", response_model=ResponseModel[ApplicationResponse])
async def submit_application(
    application_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().submit(db, principal, application_id)
    return success_response(data=await _detail(db, application), message="申请已提交")


@router.post("/{application_id}/restart", summary="重新开始申请", response_model=ResponseModel[ApplicationResponse])
async def restart_application(
    application_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().restart(db, principal, application_id)
    return success_response(data=await _detail(db, application), message="申请已重新开始")


@router.post("/{application_id}/withdraw", summary="撤回申请", response_model=ResponseModel[ApplicationResponse])
async def withdraw_application(
    application_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().withdraw(db, principal, application_id)
    return success_response(data=await _detail(db, application), message="申请已撤回")


# ========== 员工 / 管理员操作 ==========

@router.patch("/{application_id}/status", summary="设置申请状态", response_model=ResponseModel[ApplicationResponse])
async def set_application_status(
    application_id: int,
    data: ApplicationStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().set_status(
        db, principal, application_id, ApplicationStatus(data.status)
    )
    return success_response(data=await _detail(db, application), message="状态已更新")


@router.post("/{application_id}/notes", summary="添加评审备注", response_model=ResponseModel[ApplicationResponse])
async def add_review_note(
    application_id: int,
    data: ReviewNoteCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().add_review_note(
        db, principal, application_id, data.note, data.severity
    )
    return success_response(data=await _detail(db, application), message="备注已添加")


@router.put("/{application_id}/interview", summary="安排面试", response_model=ResponseModel[ApplicationResponse])
async def schedule_interview(
    application_id: int,
    data: InterviewSchedule,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().schedule_interview(db, principal, application_id, data)
    return success_response(data=await _detail(db, application), message="面试安排已更新")


@router.put("/{application_id}/payment", summary="更新缴费信息", response_model=ResponseModel[ApplicationResponse])
async def update_payment(
    application_id: int,
    data: PaymentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    application = await get_lifecycle_service().update_payment(db, principal, application_id, data)
    return success_response(data=await _detail(db, application), message="缴费信息已更新")
