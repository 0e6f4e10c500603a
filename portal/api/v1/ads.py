"""
公告 API 路由
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.deps import get_current_principal, get_optional_principal, page_window
from portal.core.database import get_db
from portal.core.response import (
    success_response,
    paged_response,
    ResponseModel,
    PagedResponseModel,
    MessageResponse,
    DictResponse,
)
from portal.models.ad import AdApprovalStatus, AdCategory
from portal.schemas.ad import AdApprove, AdCreate, AdFeature, AdPin, AdReject, AdResponse, AdUpdate
from portal.services.listings import ad_service
from portal.services.policy import Principal

router = APIRouter()


def _dump(ad) -> dict:
    return AdResponse.model_validate(ad).model_dump()


@router.get("", summary="获取公告列表", response_model=PagedResponseModel[AdResponse])
async def list_ads(
    page: int = Query(1, ge=1, description="页码"),
    page_size: int = Query(20, ge=1, le=100, description="每页数量"),
    category: Optional[AdCategory] = Query(None, description="分类筛选"),
    approval_status: Optional[AdApprovalStatus] = Query(None, description="审核状态（员工）"),
    featured: Optional[bool] = Query(None, description="是否推荐"),
    pinned: Optional[bool] = Query(None, description="是否置顶"),
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    匿名与申请人只看到审核通过、启用且处于展示期内的公告；
    员工与管理员可以看到全部并按审核状态筛选。置顶优先。
    """
    ads, total = await ad_service.search(
        db,
        principal,
        category=category.value if category else None,
        approval_status=approval_status.value if approval_status else None,
        is_featured=featured,
        is_pinned=pinned,
        skip=page_window(page, page_size),
        limit=page_size,
    )
    return paged_response([_dump(ad) for ad in ads], total, page, page_size)


@router.get("/stats/overview", summary="公告统计", response_model=DictResponse)
async def ad_stats(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return success_response(data=await ad_service.stats(db, principal))


@router.post("", summary="创建公告", response_model=ResponseModel[AdResponse], status_code=201)
async def create_ad(
    data: AdCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.create(db, principal, data)
    return success_response(data=_dump(ad), message="公告创建成功", code=201)


@router.get("/{ad_id}", summary="获取公告详情", response_model=ResponseModel[AdResponse])
async def get_ad(
    ad_id: int,
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.view(db, principal, ad_id)
    return success_response(data=_dump(ad))


@router.patch("/{ad_id}", summary="更新公告", response_model=ResponseModel[AdResponse])
async def update_ad(
    ad_id: int,
    data: AdUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.update(db, principal, ad_id, data)
    return success_response(data=_dump(ad), message="公告更新成功")


@router.delete("/{ad_id}", summary="删除公告", response_model=MessageResponse)
async def delete_ad(
    ad_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await ad_service.delete(db, principal, ad_id)
    return success_response(message="公告删除成功")


# ========== 审核与展示控制 ==========

@router.put("/{ad_id}/approve", summary="审核通过公告", response_model=ResponseModel[AdResponse])
async def approve_ad(
    ad_id: int,
    data: AdApprove,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.approve(db, principal, ad_id, data.notes)
    return success_response(data=_dump(ad), message="公告已审核通过")


@router.put("/{ad_id}/reject", summary="驳回公告", response_model=ResponseModel[AdResponse])
async def reject_ad(
    ad_id: int,
    data: AdReject,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.reject(db, principal, ad_id, data.reason)
    return success_response(data=_dump(ad), message="公告已驳回")


@router.put("/{ad_id}/publish", summary="上线公告", response_model=ResponseModel[AdResponse])
async def publish_ad(
    ad_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.publish(db, principal, ad_id)
    return success_response(data=_dump(ad), message="公告已上线")


@router.put("/{ad_id}/unpublish", summary="下线公告", response_model=ResponseModel[AdResponse])
async def unpublish_ad(
    ad_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.unpublish(db, principal, ad_id)
    return success_response(data=_dump(ad), message="公告已下线")


@router.put("/{ad_id}/feature", summary="设置推荐", response_model=ResponseModel[AdResponse])
async def feature_ad(
    ad_id: int,
    data: AdFeature,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.set_flag(db, principal, ad_id, "is_featured", data.is_featured)
    return success_response(data=_dump(ad), message="已推荐" if data.is_featured else "已取消推荐")


@router.put("/{ad_id}/pin", summary="设置置顶", response_model=ResponseModel[AdResponse])
async def pin_ad(
    ad_id: int,
    data: AdPin,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.set_flag(db, principal, ad_id, "is_pinned", data.is_pinned)
    return success_response(data=_dump(ad), message="已置顶" if data.is_pinned else "已取消置顶")


@router.post("/{ad_id}/click", summary="记录公告点击", response_model=DictResponse)
async def click_ad(
    ad_id: int,
    db: AsyncSession = Depends(get_db),
):
    ad = await ad_service.click(db, ad_id)
    return success_response(data={"id": ad.id, "click_count": ad.click_count})
