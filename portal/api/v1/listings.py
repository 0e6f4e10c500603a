"""
招聘岗位 / 奖学金项目 API 路由

两类岗位的接口完全对称，由 build_listing_router 按类型生成。
"""
from typing import Optional, Type
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
)
from portal.models.listing import ListingStatus
from portal.schemas.base import BaseSchema
from portal.schemas.listing import (
    JobCreate,
    JobResponse,
    JobUpdate,
    ScholarshipCreate,
    ScholarshipResponse,
    ScholarshipUpdate,
)
from portal.services.listings import ListingService, job_service, scholarship_service
from portal.services.policy import Principal


def build_listing_router(
    service: ListingService,
    create_schema: Type[BaseSchema],
    update_schema: Type[BaseSchema],
    response_schema: Type[BaseSchema],
) -> APIRouter:
    router = APIRouter(generate_unique_id_function=lambda route: f"{service.kind}_{route.name}")
    label = service.label

    def _dump(listing) -> dict:
        return response_schema.model_validate(listing).model_dump()

    @router.get("", summary=f"获取{label}列表", response_model=PagedResponseModel[response_schema])
    async def list_listings(
        page: int = Query(1, ge=1, description="页码"),
        page_size: int = Query(20, ge=1, le=100, description="每页数量"),
        status: Optional[ListingStatus] = Query(None, description="状态筛选（仅员工）"),
        country: Optional[str] = Query(None, description="国家筛选"),
        keyword: Optional[str] = Query(None, description="关键词"),
        featured: Optional[bool] = Query(None, description="是否推荐"),
        accepting_only: Optional[bool] = Query(None, description="只看正在接受申请的"),
        principal: Optional[Principal] = Depends(get_optional_principal),
        db: AsyncSession = Depends(get_db),
    ):
        """
        匿名用户与申请人默认只能看到正在接受申请的岗位
        """
        filters = dict(
            status=status.value if status else None,
            country=country,
            keyword=keyword,
            featured=featured,
            skip=page_window(page, page_size),
            limit=page_size,
        )
        if accepting_only is not None and principal is not None and principal.is_staff_or_admin:
            filters["accepting_only"] = accepting_only
        listings, total = await service.search(db, principal, **filters)
        return paged_response([_dump(item) for item in listings], total, page, page_size)

    @router.get("/countries", summary=f"{label}国家列表", response_model=ResponseModel[list[str]])
    async def list_countries(db: AsyncSession = Depends(get_db)):
        return success_response(data=await service.crud.countries(db))

    @router.post("", summary=f"创建{label}", response_model=ResponseModel[response_schema], status_code=201)
    async def create_listing(
        data: create_schema,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ):
        listing = await service.create(db, principal, data)
        return success_response(data=_dump(listing), message=f"{label}创建成功", code=201)

    @router.get("/{listing_id}", summary=f"获取{label}详情", response_model=ResponseModel[response_schema])
    async def get_listing(
        listing_id: int,
        db: AsyncSession = Depends(get_db),
    ):
        """查看详情时浏览次数 +1"""
        listing = await service.get(db, listing_id, count_view=True)
        return success_response(data=_dump(listing))

    @router.patch("/{listing_id}", summary=f"更新{label}", response_model=ResponseModel[response_schema])
    async def update_listing(
        listing_id: int,
        data: update_schema,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ):
        listing = await service.update(db, principal, listing_id, data)
        return success_response(data=_dump(listing), message=f"{label}更新成功")

    @router.delete("/{listing_id}", summary=f"删除{label}", response_model=MessageResponse)
    async def delete_listing(
        listing_id: int,
        principal: Principal = Depends(get_current_principal),
        db: AsyncSession = Depends(get_db),
    ):
        await service.delete(db, principal, listing_id)
        return success_response(message=f"{label}删除成功")

    return router


job_router = build_listing_router(job_service, JobCreate, JobUpdate, JobResponse)
scholarship_router = build_listing_router(scholarship_service, ScholarshipCreate, ScholarshipUpdate, ScholarshipResponse)
