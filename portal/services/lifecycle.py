"""
申请生命周期服务

状态机:
    Draft -> In Progress -> Submitted -> Under Review -> {Approved | Rejected}
    任意非终态 -> Withdrawn；Restart 回到 Draft
    Approved / Rejected / Withdrawn 为终态

所有操作显式接收 Principal；任何一步失败都抛出带 kind 的业务异常，
由 get_db 回滚整个工作单元。
"""
from typing import Optional, List, Tuple

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.config import settings
from portal.core.events import ADMIN_ROOM, EventRelay, event_relay, user_room
from portal.core.exceptions import (
    ConflictException,
    NotFoundException,
    PreconditionFailedException,
)
from portal.crud import applicant_crud, application_crud, job_crud, scholarship_crud
from portal.models.application import (
    Application,
    ApplicationStatus,
    JobRef,
    ListingRef,
    NON_RESTARTABLE_STATUSES,
    SUBMITTABLE_STATUSES,
    empty_application_data,
)
from portal.models.listing import Listing, is_accepting_applications
from portal.models.user import UserRole
from portal.schemas.application import (
    ApplicationContentUpdate,
    ApplicationCreate,
    InterviewSchedule,
    PaymentUpdate,
)
from .policy import Action, Principal, ResourceRef, ensure_access, ensure_role


class ApplicationLifecycleService:
    """申请生命周期操作"""

    def __init__(self, relay: EventRelay = event_relay):
        self.relay = relay

    # ========== 内部工具 ==========

    @staticmethod
    def _crud_for(target: ListingRef):
        return job_crud if isinstance(target, JobRef) else scholarship_crud

    async def get_listing(self, db: AsyncSession, target: ListingRef) -> Optional[Listing]:
        """加载申请目标（加载时执行惰性状态修正）"""
        return await self._crud_for(target).get(db, target.id)

    async def _load(self, db: AsyncSession, application_id: int) -> Application:
        application = await application_crud.get(db, application_id)
        if application is None:
            raise NotFoundException(f"申请不存在: {application_id}")
        return application

    def _event_payload(self, application: Application, **extra) -> dict:
        return {
            "application_id": application.id,
            "applicant_id": application.applicant_id,
            "type": application.type,
            "target_id": application.target.id,
            "status": application.status,
            **extra,
        }

    def _notify_owner(self, event: str, application: Application, **extra) -> None:
        if application.owner_id is not None:
            self.relay.emit(event, user_room(application.owner_id), self._event_payload(application, **extra))

    # ========== 申请人操作 ==========

    async def create_application(
        self,
        db: AsyncSession,
        principal: Principal,
        data: ApplicationCreate,
    ) -> Application:
        """
        创建申请

        目标必须存在（否则 NotFound）、处于 Active 且未过截止时间（否则 PreconditionFailed），
        且申请人尚未申请过该目标（否则 Conflict）。成功后目标的 application_count +1。
        """
        ensure_role(principal, UserRole.APPLICANT)
        applicant = await applicant_crud.get_by_user_id(db, principal.id)
        if applicant is None:
            raise NotFoundException("申请人档案不存在")

        target = data.target
        listing = await self.get_listing(db, target)
        if listing is None:
            raise NotFoundException(f"{target.type.value} 不存在: {target.id}")

        if not is_accepting_applications(listing):
            raise PreconditionFailedException(
                f"{target.type.value} {target.id} 当前不接受申请",
                data={"status": listing.status, "deadline": listing.deadline.isoformat()},
            )

        if await application_crud.get_for_target(db, applicant.id, target) is not None:
            raise ConflictException(f"已申请过该{target.type.value}: {target.id}")

        try:
            application = await application_crud.create(db, obj_in={
                "applicant_id": applicant.id,
                "type": target.type.value,
                "job_id": target.id if isinstance(target, JobRef) else None,
                "scholarship_id": None if isinstance(target, JobRef) else target.id,
                "status": ApplicationStatus.DRAFT.value,
                "progress": 0,
                "current_step": 0,
                "application_data": empty_application_data(),
                "last_modified_by": principal.id,
            })
        except IntegrityError as exc:
            # 并发创建时由唯一约束兜底
            raise ConflictException(f"已申请过该{target.type.value}: {target.id}") from exc

        await self._crud_for(target).increment_application_count(db, target.id)

        logger.info(
            f"申请已创建: application={application.id} applicant={applicant.id} "
            f"target={target.type.value}:{target.id}"
        )
        self.relay.emit("application_created", ADMIN_ROOM, self._event_payload(application))
        return application

    async def update_content(
        self,
        db: AsyncSession,
        principal: Principal,
        application_id: int,
        data: ApplicationContentUpdate,
    ) -> Application:
        """合并申请内容并重新计算进度；不改变状态"""
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)
        if application.is_terminal:
            raise ConflictException(f"申请已处于终态 {application.status}，不能修改内容")

        application.merge_content(data.sections())
        changes = data.model_dump(exclude_unset=True)
        for field in ("current_step", "passport_number", "job_interest"):
            if field in changes:
                setattr(application, field, changes[field])
        application.last_modified_by = principal.id

        await application_crud.save(db, application)
        logger.info(f"申请内容已更新: application={application.id} progress={application.progress}")
        return application

    async def submit(self, db: AsyncSession, principal: Principal, application_id: int) -> Application:
        """提交申请：仅限 Draft / In Progress，且进度不低于阈值"""
        ensure_role(principal, UserRole.APPLICANT)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        if application.status_enum not in SUBMITTABLE_STATUSES:
            raise ConflictException(f"当前状态 {application.status} 不能提交")

        threshold = settings.submit_progress_threshold
        if application.progress < threshold:
            raise PreconditionFailedException(
                f"申请完成度需达到 {threshold}% 才能提交",
                data={"progress": application.progress, "required": threshold},
            )

        application.update_status(ApplicationStatus.SUBMITTED, principal.id)
        await application_crud.save(db, application)

        logger.info(f"申请已提交: application={application.id}")
        payload = self._event_payload(application)
        self.relay.emit("application_submitted", ADMIN_ROOM, payload)
        self.relay.emit("application_submitted", user_room(principal.id), payload)
        return application

    async def restart(self, db: AsyncSession, principal: Principal, application_id: int) -> Application:
        """重新开始：Submitted / Approved 以外的状态可以回到 Draft"""
        ensure_role(principal, UserRole.APPLICANT)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        if application.status_enum in NON_RESTARTABLE_STATUSES:
            raise ConflictException(f"当前状态 {application.status} 不能重新开始")

        previous = application.status
        application.restart(principal.id)
        await application_crud.save(db, application)

        logger.info(f"申请已重新开始: application={application.id} ({previous} -> Draft)")
        return application

    async def withdraw(self, db: AsyncSession, principal: Principal, application_id: int) -> Application:
        """撤回申请：任意非终态 -> Withdrawn"""
        ensure_role(principal, UserRole.APPLICANT)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        if application.is_terminal:
            raise ConflictException(f"申请已处于终态 {application.status}")

        previous = application.status
        application.update_status(ApplicationStatus.WITHDRAWN, principal.id)
        await application_crud.save(db, application)

        logger.info(f"申请已撤回: application={application.id} ({previous} -> Withdrawn)")
        self.relay.emit(
            "application_status_changed",
            ADMIN_ROOM,
            self._event_payload(application, previous_status=previous),
        )
        return application

    # ========== 员工 / 管理员操作 ==========

    async def set_status(
        self,
        db: AsyncSession,
        principal: Principal,
        application_id: int,
        status: ApplicationStatus,
    ) -> Application:
        """直接设置任意状态；首次进入 Submitted 时记录提交时间"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        previous = application.status
        application.update_status(status, principal.id)
        await application_crud.save(db, application)

        logger.info(
            f"申请状态变更: application={application.id} {previous} -> {application.status} "
            f"by={principal.id}"
        )
        self._notify_owner("application_status_changed", application, previous_status=previous)
        return application

    async def add_review_note(
        self,
        db: AsyncSession,
        principal: Principal,
        application_id: int,
        note: str,
        severity: str,
    ) -> Application:
        """追加评审备注；任何状态都可以，不改变状态"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        entry = application.add_review_note(principal.id, note, severity)
        await application_crud.save(db, application)

        logger.info(
            f"评审备注已添加: application={application.id} seq={entry['seq']} severity={entry['severity']}"
        )
        self._notify_owner("application_review_note", application, note=entry)
        return application

    async def schedule_interview(
        self,
        db: AsyncSession,
        principal: Principal,
        application_id: int,
        data: InterviewSchedule,
    ) -> Application:
        """合并面试安排；不改变状态"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        details = application.schedule_interview(data.model_dump(mode="json", exclude_unset=True))
        application.last_modified_by = principal.id
        await application_crud.save(db, application)

        logger.info(f"面试安排已更新: application={application.id}")
        self._notify_owner("application_interview_scheduled", application, interview=details)
        return application

    async def update_payment(
        self,
        db: AsyncSession,
        principal: Principal,
        application_id: int,
        data: PaymentUpdate,
    ) -> Application:
        """合并缴费信息；不改变状态"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.WRITE)

        application.update_payment(data.model_dump(mode="json", exclude_unset=True))
        application.last_modified_by = principal.id
        await application_crud.save(db, application)

        logger.info(f"缴费信息已更新: application={application.id}")
        return application

    # ========== 查询 ==========

    async def get_application(self, db: AsyncSession, principal: Principal, application_id: int) -> Application:
        application = await self._load(db, application_id)
        ensure_access(principal, application, Action.READ)
        return application

    async def list_for_applicant(
        self,
        db: AsyncSession,
        principal: Principal,
        *,
        applicant_id: Optional[int] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Application], int]:
        """
        某申请人的申请列表

        申请人只能查看自己的；员工 / 管理员需指定 applicant_id。
        """
        if principal.role == UserRole.APPLICANT:
            applicant = await applicant_crud.get_by_user_id(db, principal.id)
        elif applicant_id is not None:
            applicant = await applicant_crud.get(db, applicant_id)
        else:
            raise NotFoundException("请指定申请人")

        if applicant is None:
            raise NotFoundException("申请人档案不存在")
        ensure_access(principal, applicant, Action.READ)

        return await application_crud.get_by_applicant(
            db, applicant.id, status=status, skip=skip, limit=limit
        )

    async def list_admin(
        self,
        db: AsyncSession,
        principal: Principal,
        **filters,
    ) -> Tuple[List[Application], int]:
        """管理端筛选列表"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        ensure_access(principal, ResourceRef("application"), Action.READ)
        return await application_crud.search(db, **filters)

    async def list_pending(self, db: AsyncSession, principal: Principal, limit: int = 20) -> List[Application]:
        """待处理申请"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await application_crud.get_pending(db, limit=limit)

    async def stats(self, db: AsyncSession, principal: Principal) -> dict:
        """申请统计"""
        ensure_role(principal, UserRole.STAFF, UserRole.ADMIN)
        return await application_crud.get_stats(db)

    async def listing_name(self, db: AsyncSession, application: Application) -> Optional[str]:
        """申请目标的名称，用于响应展示"""
        listing = await self.get_listing(db, application.target)
        return listing.name if listing else None


_lifecycle_service: Optional[ApplicationLifecycleService] = None


def get_lifecycle_service() -> ApplicationLifecycleService:
    """获取 ApplicationLifecycleService 单例实例"""
    global _lifecycle_service
    if _lifecycle_service is None:
        _lifecycle_service = ApplicationLifecycleService()
    return _lifecycle_service
