"""
岗位（招聘 / 奖学金）与公告服务
"""
from typing import Optional, List, Tuple

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.events import ADMIN_ROOM, EventRelay, event_relay, user_room
from portal.core.exceptions import ConflictException, NotFoundException, ValidationFailedException
from portal.crud import ad_crud, application_crud, job_crud, scholarship_crud
from portal.crud.listing import CRUDListing
from portal.models.ad import Ad, AdApprovalStatus
from portal.models.base import as_utc
from portal.models.listing import Job, Listing
from portal.models.user import UserRole
from portal.schemas.base import BaseSchema
from .policy import Action, Principal, ResourceRef, ensure_access, ensure_role

_DATETIME_FIELDS = ("deadline", "start_date", "end_date", "intake_date")


def _normalize(data: dict) -> dict:
    """时间统一换算为 UTC 后再入库"""
    return {
        key: as_utc(value) if key in _DATETIME_FIELDS else value
        for key, value in data.items()
    }


class ListingService:
    """招聘岗位 / 奖学金项目的通用操作"""

    def __init__(self, crud: CRUDListing, label: str):
        self.crud = crud
        self.kind = crud.model.resource_kind
        self.label = label

    def _validate_dates(self, listing: Listing) -> None:
        error = listing.validate_dates()
        if error:
            raise ValidationFailedException(error, data={"resource": self.kind})

    async def get(self, db: AsyncSession, listing_id: int, *, count_view: bool = False) -> Listing:
        listing = await self.crud.get(db, listing_id)
        if listing is None:
            raise NotFoundException(f"{self.label}不存在: {listing_id}")
        if count_view:
            await self.crud.increment_view_count(db, listing)
        return listing

    async def search(
        self,
        db: AsyncSession,
        principal: Optional[Principal],
        **filters,
    ) -> Tuple[List[Listing], int]:
        """匿名与申请人默认只看到正在接受申请的岗位"""
        if principal is None or not principal.is_staff_or_admin:
            filters.setdefault("accepting_only", True)
        return await self.crud.search(db, **filters)

    async def create(self, db: AsyncSession, principal: Principal, data: BaseSchema) -> Listing:
        ensure_access(principal, ResourceRef(self.kind), Action.WRITE)
        payload = _normalize(data.model_dump())
        positions = payload.pop("positions", None)

        # 校验失败时整个工作单元回滚；已发放的序列号随之作废，不再复用
        listing = await self.crud.create(db, obj_in={
            **payload,
            "created_by": principal.id,
            "last_modified_by": principal.id,
        })
        if positions:
            listing.set_positions(positions)
        self._validate_dates(listing)
        await self.crud.save(db, listing)

        logger.info(f"{self.label}已创建: {self.kind}={listing.id} by={principal.id}")
        return listing

    async def update(
        self,
        db: AsyncSession,
        principal: Principal,
        listing_id: int,
        data: BaseSchema,
    ) -> Listing:
        listing = await self.get(db, listing_id)
        ensure_access(principal, listing, Action.WRITE)

        changes = _normalize(data.model_dump(exclude_unset=True))
        positions = changes.pop("positions", None)
        for field, value in changes.items():
            setattr(listing, field, value)
        if positions is not None:
            listing.set_positions(positions)
        listing.last_modified_by = principal.id
        self._validate_dates(listing)

        await self.crud.save(db, listing)
        logger.info(f"{self.label}已更新: {self.kind}={listing.id} by={principal.id}")
        return listing

    async def delete(self, db: AsyncSession, principal: Principal, listing_id: int) -> None:
        listing = await self.get(db, listing_id)
        ensure_access(principal, listing, Action.DELETE)

        column = "job_id" if isinstance(listing, Job) else "scholarship_id"
        if await application_crud.count(db, filters=[getattr(application_crud.model, column) == listing.id]):
            raise ConflictException(f"{self.label}已有申请，不能删除")

        await self.crud.delete(db, id=listing.id)
        logger.info(f"{self.label}已删除: {self.kind}={listing_id} by={principal.id}")


class AdService:
    """
    公告操作与审核流程

    admin 创建的公告直接审核通过；staff 创建的进入 Pending，等待 admin 审核。
    审核、上下线、推荐与置顶只允许 admin。
    """

    def __init__(self, relay: EventRelay = event_relay):
        self.relay = relay

    async def get(self, db: AsyncSession, ad_id: int) -> Ad:
        ad = await ad_crud.get(db, ad_id)
        if ad is None:
            raise NotFoundException(f"公告不存在: {ad_id}")
        return ad

    async def view(self, db: AsyncSession, principal: Optional[Principal], ad_id: int) -> Ad:
        """查看公告：匿名与申请人只能看到展示中的公告，并计一次浏览"""
        ad = await self.get(db, ad_id)
        if principal is not None and principal.is_staff_or_admin:
            return ad
        if not ad.is_running:
            raise NotFoundException(f"公告不存在: {ad_id}")
        await ad_crud.increment_counter(db, ad.id, "view_count")
        await db.refresh(ad)
        return ad

    async def search(
        self,
        db: AsyncSession,
        principal: Optional[Principal],
        **filters,
    ) -> Tuple[List[Ad], int]:
        """员工可按审核状态查看全部公告，其他调用方只看展示中的"""
        if principal is not None and principal.is_staff_or_admin:
            filters.setdefault("running_only", False)
        else:
            filters["running_only"] = True
            filters.pop("approval_status", None)
        return await ad_crud.search(db, **filters)

    async def create(self, db: AsyncSession, principal: Principal, data: BaseSchema) -> Ad:
        ensure_access(principal, ResourceRef("ad"), Action.WRITE)
        payload = _normalize(data.model_dump())
        if payload.get("start_date") is None:
            payload.pop("start_date", None)

        if principal.is_admin:
            approval = {"approval_status": AdApprovalStatus.APPROVED.value, "approved_by": principal.id}
        else:
            approval = {"approval_status": AdApprovalStatus.PENDING.value}
        ad = await ad_crud.create(db, obj_in={
            **payload,
            **approval,
            "created_by": principal.id,
            "last_modified_by": principal.id,
        })
        logger.info(f"公告已创建: ad={ad.id} status={ad.approval_status} by={principal.id}")
        if not principal.is_admin:
            self.relay.emit("ad_pending_approval", ADMIN_ROOM, {"ad_id": ad.id, "created_by": principal.id})
        return ad

    async def update(self, db: AsyncSession, principal: Principal, ad_id: int, data: BaseSchema) -> Ad:
        ad = await self.get(db, ad_id)
        ensure_access(principal, ad, Action.WRITE)
        changes = _normalize(data.model_dump(exclude_unset=True))
        if changes.get("start_date") is None:
            changes.pop("start_date", None)
        start = changes.get("start_date", ad.start_date)
        end = changes["end_date"] if "end_date" in changes else ad.end_date
        if start and end and as_utc(end) < as_utc(start):
            raise ValidationFailedException("结束时间不能早于开始时间")

        await ad_crud.update(db, db_obj=ad, obj_in={**changes, "last_modified_by": principal.id})
        logger.info(f"公告已更新: ad={ad.id} by={principal.id}")
        return ad

    async def delete(self, db: AsyncSession, principal: Principal, ad_id: int) -> None:
        ad = await self.get(db, ad_id)
        ensure_access(principal, ad, Action.DELETE)
        await ad_crud.delete(db, id=ad.id)
        logger.info(f"公告已删除: ad={ad_id} by={principal.id}")

    # ========== 审核与展示控制（仅 admin） ==========

    async def _moderate(self, db: AsyncSession, principal: Principal, ad_id: int) -> Ad:
        ensure_role(principal, UserRole.ADMIN)
        return await self.get(db, ad_id)

    async def approve(self, db: AsyncSession, principal: Principal, ad_id: int, notes: str = "") -> Ad:
        ad = await self._moderate(db, principal, ad_id)
        ad.approve(principal.id, notes)
        ad.last_modified_by = principal.id
        await ad_crud.save(db, ad)
        logger.info(f"公告审核通过: ad={ad.id} by={principal.id}")
        self.relay.emit("ad_approved", user_room(ad.created_by), {"ad_id": ad.id, "notes": notes})
        return ad

    async def reject(self, db: AsyncSession, principal: Principal, ad_id: int, reason: str = "") -> Ad:
        ad = await self._moderate(db, principal, ad_id)
        ad.reject(principal.id, reason)
        ad.last_modified_by = principal.id
        await ad_crud.save(db, ad)
        logger.info(f"公告已驳回: ad={ad.id} by={principal.id}")
        self.relay.emit("ad_rejected", user_room(ad.created_by), {"ad_id": ad.id, "reason": reason})
        return ad

    async def publish(self, db: AsyncSession, principal: Principal, ad_id: int) -> Ad:
        ad = await self._moderate(db, principal, ad_id)
        ad.publish(principal.id)
        ad.last_modified_by = principal.id
        await ad_crud.save(db, ad)
        logger.info(f"公告已上线: ad={ad.id} by={principal.id}")
        return ad

    async def unpublish(self, db: AsyncSession, principal: Principal, ad_id: int) -> Ad:
        ad = await self._moderate(db, principal, ad_id)
        ad.unpublish()
        ad.last_modified_by = principal.id
        await ad_crud.save(db, ad)
        logger.info(f"公告已下线: ad={ad.id} by={principal.id}")
        return ad

    async def set_flag(self, db: AsyncSession, principal: Principal, ad_id: int, flag: str, value: bool) -> Ad:
        """切换 is_featured / is_pinned"""
        if flag not in ("is_featured", "is_pinned"):
            raise ValidationFailedException(f"不支持的开关: {flag}")
        ad = await self._moderate(db, principal, ad_id)
        setattr(ad, flag, value)
        ad.last_modified_by = principal.id
        await ad_crud.save(db, ad)
        logger.info(f"公告 {flag}={value}: ad={ad.id} by={principal.id}")
        return ad

    async def click(self, db: AsyncSession, ad_id: int) -> Ad:
        """记录一次点击；只统计展示中的公告"""
        ad = await self.get(db, ad_id)
        if not ad.is_running:
            raise NotFoundException(f"公告不存在: {ad_id}")
        await ad_crud.increment_counter(db, ad.id, "click_count")
        await db.refresh(ad)
        return ad

    async def stats(self, db: AsyncSession, principal: Principal) -> dict:
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await ad_crud.get_stats(db)


job_service = ListingService(job_crud, "招聘岗位")
scholarship_service = ListingService(scholarship_crud, "奖学金项目")
ad_service = AdService()
