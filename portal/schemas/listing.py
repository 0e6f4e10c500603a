"""
招聘岗位 / 奖学金项目相关 Schema
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import Field

from portal.models.listing import ListingStatus, ScholarshipProgram
from .base import BaseSchema, TimestampSchema


class ListingBase(BaseSchema):
    """岗位公共字段"""

    name: str = Field(..., min_length=1, max_length=100, description="名称")
    description: str = Field(..., min_length=1, description="描述")
    requirements: Optional[str] = Field(None, description="申请要求")
    benefits: Optional[str] = Field(None, description="福利")
    country: str = Field(..., min_length=1, max_length=50, description="国家")
    application_fee: float = Field(0, ge=0, description="申请费")
    status: ListingStatus = Field(ListingStatus.DRAFT, description="状态")
    deadline: datetime = Field(..., description="截止时间")
    tags: List[str] = Field(default_factory=list, description="标签")
    is_featured: bool = Field(False, description="是否推荐")


class ListingUpdateBase(BaseSchema):
    """岗位公共可更新字段"""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1)
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    country: Optional[str] = Field(None, min_length=1, max_length=50)
    application_fee: Optional[float] = Field(None, ge=0)
    status: Optional[ListingStatus] = None
    deadline: Optional[datetime] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None


class ListingResponseBase(TimestampSchema):
    """岗位公共响应字段"""

    name: str
    description: str
    requirements: Optional[str]
    benefits: Optional[str]
    country: str
    application_fee: float
    status: ListingStatus
    deadline: datetime
    tags: List[str]
    is_featured: bool
    application_count: int
    view_count: int
    created_by: int
    is_deadline_passed: bool
    days_until_deadline: int
    is_accepting_applications: bool


# ========== 招聘岗位 ==========

class JobPosition(BaseSchema):
    """职位子记录"""

    title: str = Field(..., min_length=1, max_length=100)
    level: Optional[str] = Field(None, max_length=50)
    employment_type: Optional[str] = Field(None, max_length=50)
    salary_range: Optional[Dict[str, Any]] = None
    vacancies: int = Field(1, ge=1)


class JobCreate(ListingBase):
    """创建招聘岗位请求"""

    city: Optional[str] = Field(None, max_length=50)
    responsibilities: Optional[str] = None
    company: Dict[str, Any] = Field(default_factory=dict, description="公司信息")
    positions: List[JobPosition] = Field(default_factory=list, description="职位列表")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class JobUpdate(ListingUpdateBase):
    """更新招聘岗位请求"""

    city: Optional[str] = Field(None, max_length=50)
    responsibilities: Optional[str] = None
    company: Optional[Dict[str, Any]] = None
    positions: Optional[List[JobPosition]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class JobResponse(ListingResponseBase):
    """招聘岗位响应"""

    city: Optional[str]
    responsibilities: Optional[str]
    company: Dict[str, Any]
    positions: List[Dict[str, Any]]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    total_vacancies: int


# ========== 奖学金项目 ==========

class ScholarshipCreate(ListingBase):
    """创建奖学金项目请求"""

    university_name: str = Field(..., min_length=1, max_length=150)
    university_website: Optional[str] = Field(None, max_length=255)
    program: List[ScholarshipProgram] = Field(default_factory=list, description="项目层次")
    major: str = Field(..., min_length=1, max_length=100)
    intake_date: datetime = Field(..., description="入学时间")
    coverage: Dict[str, Any] = Field(default_factory=dict)
    financial_support: Dict[str, Any] = Field(default_factory=dict)


class ScholarshipUpdate(ListingUpdateBase):
    """更新奖学金项目请求"""

    university_name: Optional[str] = Field(None, min_length=1, max_length=150)
    university_website: Optional[str] = Field(None, max_length=255)
    program: Optional[List[ScholarshipProgram]] = None
    major: Optional[str] = Field(None, min_length=1, max_length=100)
    intake_date: Optional[datetime] = None
    coverage: Optional[Dict[str, Any]] = None
    financial_support: Optional[Dict[str, Any]] = None


class ScholarshipResponse(ListingResponseBase):
    """奖学金项目响应"""

    university_name: str
    university_website: Optional[str]
    program: List[str]
    major: str
    intake_date: datetime
    coverage: Dict[str, Any]
    financial_support: Dict[str, Any]
